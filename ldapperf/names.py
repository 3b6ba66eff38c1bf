from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Iterator, Sequence

LOGGER = logging.getLogger("ldapperf.names")


class LoadError(OSError):
    """Raised when the names file cannot be read."""


@dataclass(frozen=True)
class NameEntry:
    name: str

    def __len__(self) -> int:
        return len(self.name)


@dataclass(frozen=True)
class NameCorpus:
    """Ordered, read-only list of substitution values loaded from a names file."""

    entries: Sequence[NameEntry] = field(default_factory=tuple)

    @cached_property
    def max_length(self) -> int:
        return max((len(entry) for entry in self.entries), default=0)

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> NameEntry:
        return self.entries[index]

    def __iter__(self) -> Iterator[NameEntry]:
        return iter(self.entries)


def parse_names(lines: Iterator[str], trace: bool = False) -> NameCorpus:
    entries: list[NameEntry] = []
    for line in lines:
        name = line.rstrip("\r\n")
        if not name:
            continue
        if trace:
            LOGGER.debug("[%d] %s", len(entries), name)
        entries.append(NameEntry(name))
    return NameCorpus(entries=tuple(entries))


def load_names(path: str | Path, trace: bool = False) -> NameCorpus:
    path = Path(path)
    LOGGER.debug('Reading names from "%s"', path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            corpus = parse_names(handle, trace=trace)
    except (OSError, UnicodeDecodeError) as exc:
        raise LoadError(f'Failed opening name file "{path}": {exc}') from exc

    LOGGER.debug("Loaded %d name(s), longest is %d", len(corpus), corpus.max_length)
    return corpus


__all__ = [
    "LoadError",
    "NameEntry",
    "NameCorpus",
    "load_names",
    "parse_names",
]
