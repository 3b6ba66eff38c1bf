from __future__ import annotations

import logging
import random
import threading
import time

from .client import DirectoryClient
from .config import Configuration
from .names import NameCorpus, NameEntry
from .search import SearchExecutor
from .session import Session
from .stats import Stats
from .template import SubstitutionBuffer, substitute

LOGGER = logging.getLogger("ldapperf.worker")


class Worker:
    """One benchmark thread: its own session, buffers, generator and stats."""

    def __init__(
        self,
        index: int,
        config: Configuration,
        corpus: NameCorpus,
        client: DirectoryClient,
        rng: random.Random,
    ) -> None:
        self.index = index
        self.stats = Stats()
        self._config = config
        self._corpus = corpus
        self._rng = rng
        self._session = Session(client, config, self.stats)
        self._executor = SearchExecutor(config)
        self._base_buffer = SubstitutionBuffer.for_template(config.base_dn, corpus.max_length)
        self._filter_buffer = SubstitutionBuffer.for_template(
            config.search_filter, corpus.max_length
        )
        self._thread: threading.Thread | None = None
        self.error: Exception | None = None

    @property
    def name(self) -> str:
        return f"worker-{self.index:03d}"

    def start(self) -> None:
        thread = threading.Thread(target=self.run, name=self.name)
        thread.start()
        self._thread = thread

    def join(self) -> Stats:
        if self._thread is not None:
            self._thread.join()
        return self.stats.snapshot()

    def run(self) -> Stats:
        config = self._config
        LOGGER.debug("Starting new thread with %d searches", config.iterations)

        self.stats.started_at = time.time()
        try:
            for iteration in range(config.iterations):
                self._iterate(iteration)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("worker crashed after %d searches", self.stats.successful)
            self.error = exc
        finally:
            self._session.close()
            self.stats.finished_at = time.time()

        LOGGER.debug("Thread exiting after: %fs", self.stats.duration_s)
        return self.stats

    def _iterate(self, iteration: int) -> None:
        if not self._session.usable and not self._session.establish():
            return

        base = self._config.base_dn
        search_filter = self._config.search_filter
        entry = self._pick_entry(iteration)
        if entry is not None:
            base = substitute(base, entry, self._base_buffer)
            if search_filter:
                search_filter = substitute(search_filter, entry, self._filter_buffer)

        if not self._executor.execute(self._session, base, search_filter, self.stats):
            self._session.close()
            return

        if self._config.rebind:
            self._session.close()

    def _pick_entry(self, iteration: int) -> NameEntry | None:
        if not self._config.substitute:
            return None
        if self._config.ordered:
            return self._corpus[iteration]
        return self._corpus[self._rng.randrange(len(self._corpus))]


__all__ = ["Worker"]
