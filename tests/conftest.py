from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from kvlock.core.errors import StoreUnavailable
from kvlock.core.store import KeyValueStore
from kvlock.core.store_memory import InMemoryStore


class ManualClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class SlowStore(InMemoryStore):
    """Answers only after ``delay`` seconds, to exercise per-call timeouts."""

    def __init__(self, delay: float) -> None:
        super().__init__()
        self.delay = delay

    async def put_if_absent(self, key: str, value: str, ttl: float) -> bool:
        await asyncio.sleep(self.delay)
        return await super().put_if_absent(key, value, ttl)

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        await asyncio.sleep(self.delay)
        return await super().compare_and_delete(key, expected)


class DownStore(KeyValueStore):
    """Every call fails as if the server were unreachable."""

    async def put_if_absent(self, key: str, value: str, ttl: float) -> bool:
        raise StoreUnavailable("put_if_absent", key, reason="connection refused")

    async def get(self, key: str) -> Optional[str]:
        raise StoreUnavailable("get", key, reason="connection refused")

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        raise StoreUnavailable("compare_and_delete", key, reason="connection refused")

    async def remaining_ttl(self, key: str) -> Optional[float]:
        raise StoreUnavailable("remaining_ttl", key, reason="connection refused")


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store(clock: ManualClock) -> InMemoryStore:
    return InMemoryStore(clock=clock)


@pytest.fixture
def down_store() -> DownStore:
    return DownStore()


@pytest.fixture
def slow_store() -> SlowStore:
    return SlowStore(delay=1.0)
