from __future__ import annotations

import enum
import logging

from .client import BindError, DirectoryClient, DirectoryError, SessionInitError
from .config import Configuration
from .stats import Stats

LOGGER = logging.getLogger("ldapperf.session")


class SessionState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    BOUND = "bound"


class Session:
    """Connection lifecycle for one worker: CLOSED -> OPEN -> BOUND -> CLOSED."""

    def __init__(self, client: DirectoryClient, config: Configuration, stats: Stats) -> None:
        self._client = client
        self._config = config
        self._stats = stats
        self.state = SessionState.CLOSED

    @property
    def client(self) -> DirectoryClient:
        return self._client

    @property
    def usable(self) -> bool:
        if self._config.authenticated:
            return self.state is SessionState.BOUND
        return self.state is not SessionState.CLOSED

    def open(self) -> bool:
        if self.state is not SessionState.CLOSED:
            return True
        try:
            self._client.connect()
        except SessionInitError as exc:
            LOGGER.error("%s", exc)
            self._stats.session_init_failures += 1
            self._discard()
            return False

        LOGGER.debug("LDAP session initialised")
        self.state = SessionState.OPEN
        return True

    def bind(self) -> bool:
        if self.state is SessionState.CLOSED:
            return False
        if not self._config.authenticated or self.state is SessionState.BOUND:
            return True
        try:
            self._client.bind(self._config.bind_dn, self._config.password)
        except BindError as exc:
            LOGGER.error("%s", exc)
            self._stats.bind_failures += 1
            self.close()
            return False

        LOGGER.debug("Bind successful")
        self.state = SessionState.BOUND
        return True

    def establish(self) -> bool:
        return self.open() and self.bind()

    def close(self) -> None:
        if self.state is SessionState.CLOSED:
            return
        self._discard()

    def _discard(self) -> None:
        try:
            self._client.unbind()
        except DirectoryError as exc:
            LOGGER.debug("unbind failed: %s", exc)
        self.state = SessionState.CLOSED


__all__ = ["Session", "SessionState"]
