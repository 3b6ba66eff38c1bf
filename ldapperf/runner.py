from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field

from .client import ClientFactory, Ldap3Client
from .config import Configuration, ConfigurationError
from .names import NameCorpus
from .stats import AggregateStats, Stats, aggregate
from .worker import Worker

LOGGER = logging.getLogger("ldapperf.runner")


@dataclass
class RunResult:
    config: Configuration
    stats: AggregateStats
    worker_stats: list[Stats] = field(default_factory=list)
    crashed_workers: int = 0

    @property
    def exit_code(self) -> int:
        return 1 if self.stats.failed or self.crashed_workers else 0


class RunController:
    """Spawns the worker pool, waits for it and folds the results together."""

    def __init__(
        self,
        config: Configuration,
        corpus: NameCorpus | None = None,
        client_factory: ClientFactory = Ldap3Client,
    ) -> None:
        self._requested = config
        self._corpus = corpus if corpus is not None else NameCorpus()
        self._client_factory = client_factory
        self.config = config

    def prepare(self) -> Configuration:
        config = self._requested
        if config.ordered and not config.substitute:
            raise ConfigurationError("List of names needed to perform ordered search")
        if config.substitute and len(self._corpus) == 0:
            raise ConfigurationError(f'No names found in "{config.names_file}"')

        if config.ordered:
            size = len(self._corpus)
            if config.workers != 1 or config.iterations != size:
                LOGGER.warning(
                    "Ordered search: overriding threads=%d loops=%d with threads=1 loops=%d",
                    config.workers,
                    config.iterations,
                    size,
                )
            config = config.with_overrides(workers=1, iterations=size)

        self.config = config
        return config

    def run(self) -> RunResult:
        config = self.prepare()
        LOGGER.info(
            "Performing %d search(es) total, with %d threads, %s",
            config.total_searches,
            config.workers,
            "rebinding after each search" if config.rebind else "with persistent connections",
        )

        run_seed = config.seed
        if run_seed is None:
            run_seed = random.SystemRandom().randrange(2**32)
        LOGGER.debug("Random seed: %d", run_seed)

        workers = [
            Worker(
                index=index,
                config=config,
                corpus=self._corpus,
                client=self._client_factory(config),
                rng=random.Random(f"{run_seed}-{index}"),
            )
            for index in range(config.workers)
        ]

        started_at = time.time()
        for worker in workers:
            worker.start()

        LOGGER.debug("Waiting for threads to finish...")
        worker_stats = [worker.join() for worker in workers]
        finished_at = time.time()
        LOGGER.debug("... All threads done")

        crashed = [worker for worker in workers if worker.error is not None]
        for worker in crashed:
            LOGGER.error("%s stopped early: %r", worker.name, worker.error)

        return RunResult(
            config=config,
            stats=aggregate(worker_stats, started_at, finished_at),
            worker_stats=worker_stats,
            crashed_workers=len(crashed),
        )


__all__ = ["RunController", "RunResult"]
