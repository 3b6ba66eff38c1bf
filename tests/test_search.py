"""Tests for the search executor."""

from ldapperf.client import SearchEntry
from ldapperf.config import SearchScope
from ldapperf.search import SearchExecutor
from ldapperf.session import Session
from ldapperf.stats import Stats

from tests.conftest import Behaviour, FakeClient, make_config


def _open_session(behaviour: Behaviour, **overrides):
    config = make_config(**overrides)
    stats = Stats()
    client = FakeClient(behaviour)
    session = Session(client, config, stats)
    assert session.establish()
    return config, client, session, stats


def test_successful_search_counts_success() -> None:
    config, client, session, stats = _open_session(Behaviour(), scope=SearchScope.SUB)

    assert SearchExecutor(config).execute(session, "dc=example,dc=com", "(uid=bob)", stats)

    assert stats.successful == 1
    assert stats.search_failures == 0
    assert client.searches == [("dc=example,dc=com", SearchScope.SUB, "(uid=bob)")]


def test_failed_search_counts_failure() -> None:
    config, _, session, stats = _open_session(Behaviour(fail_search=True))

    assert not SearchExecutor(config).execute(session, "dc=example,dc=com", None, stats)

    assert stats.successful == 0
    assert stats.search_failures == 1


def test_decode_logs_entries(caplog) -> None:
    entries = [
        SearchEntry(
            dn="uid=bob,dc=example,dc=com",
            attributes={"cn": ["Bob"], "jpegPhoto": [b"\xff\xd8"], "uidNumber": 1000},
        )
    ]
    config, _, session, stats = _open_session(Behaviour(entries=entries), decode_entries=True)
    caplog.set_level("DEBUG", logger="ldapperf.search")

    assert SearchExecutor(config).execute(session, "dc=example,dc=com", None, stats)

    assert "Decoding object with dn: uid=bob,dc=example,dc=com" in caplog.text
    assert "cn: Bob" in caplog.text
    assert "uidNumber: 1000" in caplog.text


def test_decode_errors_never_fail_the_search() -> None:
    class Unprintable:
        def __str__(self) -> str:
            raise RuntimeError("cannot render")

    entries = [SearchEntry(dn="uid=x", attributes={"broken": [Unprintable()]})]
    config, _, session, stats = _open_session(Behaviour(entries=entries), decode_entries=True)

    assert SearchExecutor(config).execute(session, "dc=example,dc=com", None, stats)
    assert stats.successful == 1
    assert stats.search_failures == 0
