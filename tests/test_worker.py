"""Tests for the per-worker iteration loop."""

import random

from ldapperf.names import NameCorpus, NameEntry
from ldapperf.worker import Worker

from tests.conftest import Behaviour, FakeClient, make_config


def _worker(config, corpus=None, behaviour=None, seed=0):
    client = FakeClient(behaviour or Behaviour())
    worker = Worker(
        index=0,
        config=config,
        corpus=corpus if corpus is not None else NameCorpus(),
        client=client,
        rng=random.Random(seed),
    )
    return worker, client


def test_persistent_session_is_reused() -> None:
    worker, client = _worker(make_config(iterations=5))

    stats = worker.run()

    assert stats.successful == 5
    assert client.connects == 1
    assert client.unbinds == 1
    assert stats.started_at <= stats.finished_at


def test_rebind_opens_a_session_per_search() -> None:
    worker, client = _worker(make_config(iterations=4, rebind=True))

    stats = worker.run()

    assert stats.successful == 4
    assert client.connects == 4


def test_search_failure_drops_session_and_continues() -> None:
    worker, client = _worker(make_config(iterations=4), behaviour=Behaviour(fail_search_calls={1}))

    stats = worker.run()

    assert stats.successful == 3
    assert stats.search_failures == 1
    assert client.connects == 2
    assert len(client.searches) == 4


def test_connect_failures_skip_every_iteration() -> None:
    worker, client = _worker(make_config(iterations=3), behaviour=Behaviour(fail_connect=True))

    stats = worker.run()

    assert stats.session_init_failures == 3
    assert stats.successful == 0
    assert client.searches == []


def test_bind_failures_skip_every_iteration() -> None:
    config = make_config(iterations=3, bind_dn="cn=manager", password="wrong")
    worker, client = _worker(config, behaviour=Behaviour(fail_bind=True))

    stats = worker.run()

    assert stats.bind_failures == 3
    assert stats.successful == 0
    assert client.connects == 3


def test_ordered_mode_walks_corpus_in_order(corpus) -> None:
    config = make_config(
        base_dn="ou=@,dc=example,dc=com",
        search_filter="(uid=@)",
        names_file="names.txt",
        ordered=True,
        iterations=len(corpus),
    )
    worker, client = _worker(config, corpus)

    worker.run()

    assert [search[0] for search in client.searches] == [
        "ou=alice,dc=example,dc=com",
        "ou=bob,dc=example,dc=com",
        "ou=carol,dc=example,dc=com",
        "ou=dave,dc=example,dc=com",
    ]
    assert [search[2] for search in client.searches] == [
        "(uid=alice)",
        "(uid=bob)",
        "(uid=carol)",
        "(uid=dave)",
    ]


def test_random_mode_draws_from_corpus(corpus) -> None:
    config = make_config(search_filter="(uid=@)", names_file="names.txt", iterations=50)
    worker, client = _worker(config, corpus, seed=7)

    worker.run()

    names = {entry.name for entry in corpus}
    filters = [search[2] for search in client.searches]
    assert len(filters) == 50
    assert all(f[len("(uid="):-1] in names for f in filters)
    assert [search[0] for search in client.searches] == ["dc=example,dc=com"] * 50


def test_random_mode_is_reproducible_per_seed(corpus) -> None:
    config = make_config(search_filter="(uid=@)", names_file="names.txt", iterations=20)
    first, first_client = _worker(config, corpus, seed=3)
    second, second_client = _worker(config, corpus, seed=3)

    first.run()
    second.run()

    assert first_client.searches == second_client.searches


def test_missing_filter_stays_missing() -> None:
    config = make_config(base_dn="uid=@,dc=example,dc=com", names_file="names.txt", iterations=2)
    worker, client = _worker(config, NameCorpus((NameEntry("zed"),)))

    worker.run()

    assert client.searches[0][0] == "uid=zed,dc=example,dc=com"
    assert client.searches[0][2] is None


def test_join_returns_a_copy_of_the_counters() -> None:
    worker, _ = _worker(make_config(iterations=2))
    worker.run()

    joined = worker.join()
    joined.successful += 10

    assert joined is not worker.stats
    assert worker.stats.successful == 2


def test_unexpected_client_error_is_recorded_and_session_closed() -> None:
    class Broken(FakeClient):
        def search(self, base, scope, search_filter):
            raise RuntimeError("client bug")

    client = Broken(Behaviour())
    worker = Worker(
        index=0,
        config=make_config(iterations=3),
        corpus=NameCorpus(),
        client=client,
        rng=random.Random(0),
    )

    stats = worker.run()

    assert isinstance(worker.error, RuntimeError)
    assert client.unbinds == 1
    assert stats.successful == 0
    assert stats.started_at <= stats.finished_at
