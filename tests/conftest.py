"""Shared fixtures: an in-memory directory client that can be told to fail."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

import pytest

from ldapperf.client import (
    BindError,
    DirectoryClient,
    SearchEntry,
    SearchError,
    SessionInitError,
)
from ldapperf.config import Configuration, SearchScope
from ldapperf.names import NameCorpus, NameEntry


@dataclass
class Behaviour:
    fail_connect: bool = False
    fail_bind: bool = False
    fail_search: bool = False
    fail_search_calls: set[int] = field(default_factory=set)
    entries: list[SearchEntry] = field(default_factory=list)


class FakeClient(DirectoryClient):
    def __init__(self, behaviour: Behaviour) -> None:
        self.behaviour = behaviour
        self.connected = False
        self.connects = 0
        self.binds: list[tuple[str, str]] = []
        self.searches: list[tuple[str, SearchScope, str | None]] = []
        self.unbinds = 0

    def connect(self) -> None:
        self.connects += 1
        if self.behaviour.fail_connect:
            raise SessionInitError("connection refused")
        self.connected = True

    def bind(self, identity: str, credential: str) -> None:
        assert self.connected
        self.binds.append((identity, credential))
        if self.behaviour.fail_bind:
            raise BindError("invalid credentials")

    def search(self, base, scope, search_filter):
        assert self.connected
        call = len(self.searches)
        self.searches.append((base, scope, search_filter))
        if self.behaviour.fail_search or call in self.behaviour.fail_search_calls:
            raise SearchError("no such object")
        return list(self.behaviour.entries)

    def unbind(self) -> None:
        self.unbinds += 1
        self.connected = False


class FakeClientFactory:
    def __init__(self, behaviour: Behaviour | None = None) -> None:
        self.behaviour = behaviour or Behaviour()
        self.clients: list[FakeClient] = []
        self._lock = threading.Lock()

    def __call__(self, config: Configuration) -> FakeClient:
        client = FakeClient(self.behaviour)
        with self._lock:
            self.clients.append(client)
        return client

    @property
    def searches(self) -> list[tuple[str, SearchScope, str | None]]:
        return [search for client in self.clients for search in client.searches]


@pytest.fixture
def factory() -> FakeClientFactory:
    return FakeClientFactory()


@pytest.fixture
def corpus() -> NameCorpus:
    return NameCorpus(entries=tuple(NameEntry(name) for name in ("alice", "bob", "carol", "dave")))


@pytest.fixture
def names_file(tmp_path):
    path = tmp_path / "names.txt"
    path.write_text("alice\nbob\n\ncarol\ndave\n", encoding="utf-8")
    return path


def make_config(**overrides) -> Configuration:
    values = {"base_dn": "dc=example,dc=com", "workers": 1, "iterations": 3}
    values.update(overrides)
    return Configuration(**values)
