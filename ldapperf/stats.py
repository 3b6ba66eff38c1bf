from __future__ import annotations

import io
from dataclasses import dataclass, replace
from typing import Iterable

import pandas as pd

CSV_COLUMNS = [
    "time",
    "success",
    "success_s",
    "search_fail",
    "init_fail",
    "bind_fail",
]


@dataclass
class Stats:
    """Counters and timestamps owned by a single worker."""

    successful: int = 0
    session_init_failures: int = 0
    bind_failures: int = 0
    search_failures: int = 0
    started_at: float = 0.0
    finished_at: float = 0.0

    @property
    def duration_s(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)

    @property
    def failures(self) -> int:
        return self.session_init_failures + self.bind_failures + self.search_failures

    def snapshot(self) -> "Stats":
        return replace(self)

    def merge(self, other: "Stats") -> "Stats":
        return Stats(
            successful=self.successful + other.successful,
            session_init_failures=self.session_init_failures + other.session_init_failures,
            bind_failures=self.bind_failures + other.bind_failures,
            search_failures=self.search_failures + other.search_failures,
            started_at=self.started_at,
            finished_at=self.finished_at,
        )


@dataclass(frozen=True)
class AggregateStats:
    successful: int
    session_init_failures: int
    bind_failures: int
    search_failures: int
    started_at: float
    finished_at: float

    @property
    def duration_s(self) -> float:
        return max(self.finished_at - self.started_at, 0.0)

    @property
    def successes_per_second(self) -> float:
        if self.duration_s == 0:
            return 0.0
        return self.successful / self.duration_s

    @property
    def failed(self) -> bool:
        return (
            self.session_init_failures > 0
            or self.bind_failures > 0
            or self.search_failures > 0
        )


def aggregate(stats: Iterable[Stats], started_at: float, finished_at: float) -> AggregateStats:
    """Sum per-worker counters; elapsed time comes from the run-level timestamps."""
    total = Stats()
    for item in stats:
        total = total.merge(item)
    return AggregateStats(
        successful=total.successful,
        session_init_failures=total.session_init_failures,
        bind_failures=total.bind_failures,
        search_failures=total.search_failures,
        started_at=started_at,
        finished_at=finished_at,
    )


def build_dataframe(stats: AggregateStats) -> pd.DataFrame:
    row = {
        "time": int(stats.duration_s),
        "success": stats.successful,
        "success_s": int(stats.successes_per_second),
        "search_fail": stats.search_failures,
        "init_fail": stats.session_init_failures,
        "bind_fail": stats.bind_failures,
    }
    return pd.DataFrame([row], columns=CSV_COLUMNS)


def render_csv(stats: AggregateStats) -> str:
    buffer = io.StringIO()
    build_dataframe(stats).to_csv(buffer, index=False, lineterminator="\n")
    return buffer.getvalue()


def render_report(stats: AggregateStats) -> str:
    lines = [
        "Statistics:",
        f"\tTotal time (seconds)  : {stats.duration_s:f}",
        f"\tSuccessful searches   : {stats.successful}",
        f"\tSuccessful searches/s : {stats.successes_per_second:f}",
        f"\tSearch failures       : {stats.search_failures}",
        f"\tSession init errors   : {stats.session_init_failures}",
        f"\tBind failures         : {stats.bind_failures}",
    ]
    return "\n".join(lines)


__all__ = [
    "CSV_COLUMNS",
    "Stats",
    "AggregateStats",
    "aggregate",
    "build_dataframe",
    "render_csv",
    "render_report",
]
