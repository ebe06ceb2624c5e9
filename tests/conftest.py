"""Shared test fixtures."""

import copy
import random
from typing import Any

import pytest

from src.config import Settings
from src.responder.cascade import Responder
from src.responder.lexicon import Lexicon


class FakeStore:
    """Dict-backed key-value store honouring the responder's store contract.

    Values are deep-copied on the way in and out, like a JSON round trip.
    """

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.calls: list[tuple[str, str]] = []

    async def has(self, key: str) -> bool:
        self.calls.append(("has", key))
        return key in self.data

    async def get(self, key: str) -> Any | None:
        self.calls.append(("get", key))
        return copy.deepcopy(self.data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self.calls.append(("set", key))
        self.data[key] = copy.deepcopy(value)

    async def push(self, key: str, item: Any) -> None:
        self.calls.append(("push", key))
        current = self.data.get(key)
        if not isinstance(current, list):
            current = []
        current.append(copy.deepcopy(item))
        self.data[key] = current

    async def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        self.data.pop(key, None)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def lexicon() -> Lexicon:
    return Lexicon()


@pytest.fixture
def config() -> Settings:
    """Deterministic settings: greedy Markov walk, no web search."""
    return Settings(markov_sampling="greedy", markov_start="first", search_enabled=False)


@pytest.fixture
def responder(store: FakeStore, lexicon: Lexicon, config: Settings) -> Responder:
    return Responder(store, lexicon=lexicon, rng=random.Random(7), config=config)


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("src.config.settings.turso_database_url", "")
