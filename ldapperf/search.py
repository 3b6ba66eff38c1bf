from __future__ import annotations

import logging
from typing import Iterable

from .client import SearchEntry, SearchError
from .config import Configuration
from .session import Session
from .stats import Stats

LOGGER = logging.getLogger("ldapperf.search")


class SearchExecutor:
    """Issues one search per call against an established session."""

    def __init__(self, config: Configuration) -> None:
        self._scope = config.scope
        self._decode = config.decode_entries

    def execute(
        self,
        session: Session,
        base: str,
        search_filter: str | None,
        stats: Stats,
    ) -> bool:
        LOGGER.debug(
            'Searching in "%s" filter "%s" scope "%s"',
            base,
            search_filter or "none",
            self._scope.value,
        )
        try:
            entries = session.client.search(base, self._scope, search_filter)
        except SearchError as exc:
            LOGGER.error("%s", exc)
            stats.search_failures += 1
            return False

        LOGGER.debug("Search completed successfully. Got %d entries", len(entries))
        if entries and self._decode:
            try:
                decode_entries(entries)
            except Exception:  # noqa: BLE001
                LOGGER.debug("failed to decode search result", exc_info=True)

        stats.successful += 1
        return True


def decode_entries(entries: Iterable[SearchEntry]) -> None:
    for entry in entries:
        if entry.dn:
            LOGGER.debug("Decoding object with dn: %s", entry.dn)
        for attribute, values in entry.attributes.items():
            if isinstance(values, (list, tuple)):
                items = values
            else:
                items = [values]
            for value in items:
                LOGGER.debug("\t%s: %s", attribute, _format_value(value))


def _format_value(value: object) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


__all__ = ["SearchExecutor", "decode_entries"]
