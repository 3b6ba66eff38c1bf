"""
Directory protocol collaborators.

The engine only ever talks to a :class:`DirectoryClient`; one client instance
belongs to exactly one worker. :class:`Ldap3Client` is the stock
implementation built on the ``ldap3`` library.
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from ldap3 import ALL_ATTRIBUTES, AUTO_BIND_NONE, BASE, LEVEL, NONE, SIMPLE, SUBTREE
from ldap3 import Connection, Server
from ldap3.core.exceptions import LDAPException
from ldap3.core.results import RESULT_SUCCESS

from .config import Configuration, ConfigurationError, SearchScope

LOGGER = logging.getLogger("ldapperf.client")

PROTOCOL_VERSION = 3
MATCH_ALL_FILTER = "(objectClass=*)"

LDAP3_SCOPES: dict[SearchScope, str] = {
    SearchScope.BASE: BASE,
    SearchScope.ONE: LEVEL,
    SearchScope.SUB: SUBTREE,
}


class DirectoryError(Exception):
    """Base class for failed directory operations."""


class SessionInitError(DirectoryError):
    """Raised when a session to the directory server cannot be established."""


class BindError(DirectoryError):
    """Raised when the server rejects the bind credentials."""


class SearchError(DirectoryError):
    """Raised when a search does not complete successfully."""


@dataclass(frozen=True)
class SearchEntry:
    dn: str
    attributes: dict[str, list[Any]] = field(default_factory=dict)


class DirectoryClient(ABC):
    """Opaque protocol session used by a single worker.

    Implementations raise :class:`SessionInitError`, :class:`BindError` or
    :class:`SearchError` on failure and must allow ``unbind`` to be called
    on a session that never connected.
    """

    @abstractmethod
    def connect(self) -> None:
        pass

    @abstractmethod
    def bind(self, identity: str, credential: str) -> None:
        pass

    @abstractmethod
    def search(
        self,
        base: str,
        scope: SearchScope,
        search_filter: str | None,
    ) -> list[SearchEntry]:
        pass

    @abstractmethod
    def unbind(self) -> None:
        pass


ClientFactory = Callable[[Configuration], DirectoryClient]


class Ldap3Client(DirectoryClient):
    """:class:`DirectoryClient` backed by a synchronous ``ldap3`` connection."""

    def __init__(self, config: Configuration) -> None:
        if config.scope not in LDAP3_SCOPES:
            raise ConfigurationError(
                f"Scope {config.scope.value!r} is not supported by the ldap3 client"
            )
        self._uri = config.uri
        self._timeout_s = config.timeout_s
        self._scope = LDAP3_SCOPES[config.scope]
        self._connection: Connection | None = None

    def connect(self) -> None:
        # A malformed URI surfaces from the Server constructor, not from open().
        try:
            server = Server(self._uri, connect_timeout=self._timeout_s, get_info=NONE)
            connection = Connection(
                server,
                version=PROTOCOL_VERSION,
                auto_bind=AUTO_BIND_NONE,
                receive_timeout=self._timeout_s,
                raise_exceptions=False,
            )
            connection.open()
        except LDAPException as exc:
            raise SessionInitError(f"LDAP session initialization failed: {exc}") from exc
        self._connection = connection

    def bind(self, identity: str, credential: str) -> None:
        connection = self._require_connection(BindError)
        connection.user = identity
        connection.password = credential
        connection.authentication = SIMPLE
        try:
            bound = connection.bind()
        except LDAPException as exc:
            raise BindError(f"bind: {exc}") from exc
        if not bound:
            raise BindError(f"bind: {_describe(connection.result)}")

    def search(
        self,
        base: str,
        scope: SearchScope,
        search_filter: str | None,
    ) -> list[SearchEntry]:
        connection = self._require_connection(SearchError)
        try:
            connection.search(
                search_base=base,
                search_filter=search_filter or MATCH_ALL_FILTER,
                search_scope=LDAP3_SCOPES.get(scope, self._scope),
                attributes=ALL_ATTRIBUTES,
                time_limit=int(math.ceil(self._timeout_s)),
            )
        except LDAPException as exc:
            raise SearchError(f"search: {exc}") from exc

        # ldap3 reports False for an empty result set, so judge by result code.
        result = connection.result or {}
        if result.get("result") != RESULT_SUCCESS:
            raise SearchError(f"search: {_describe(result)}")

        return [
            SearchEntry(dn=item.get("dn", ""), attributes=dict(item.get("attributes") or {}))
            for item in connection.response or []
            if item.get("type") == "searchResEntry"
        ]

    def unbind(self) -> None:
        connection, self._connection = self._connection, None
        if connection is None:
            return
        try:
            connection.unbind()
        except LDAPException as exc:
            LOGGER.debug("unbind failed: %s", exc)

    def _require_connection(self, error: type[DirectoryError]) -> Connection:
        if self._connection is None:
            raise error("no open LDAP session")
        return self._connection


def _describe(result: dict[str, Any] | None) -> str:
    if not result:
        return "no result"
    description = result.get("description") or "unknown error"
    message = result.get("message")
    if message:
        return f"{description} ({message})"
    return description


__all__ = [
    "DirectoryError",
    "SessionInitError",
    "BindError",
    "SearchError",
    "SearchEntry",
    "DirectoryClient",
    "ClientFactory",
    "Ldap3Client",
]
