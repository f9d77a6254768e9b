"""In-process key-value store with per-key expiry."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .store import KeyValueStore, validate_ttl


Clock = Callable[[], float]


@dataclass(slots=True)
class _Entry:
    value: str
    expires_at: Optional[float]


class InMemoryStore(KeyValueStore):
    """Reference store for tests and local experiments. NOT shared across processes.

    Expired entries are dropped lazily whenever they are looked at, so an
    advancing clock is all it takes to simulate TTL expiry.
    """

    def __init__(self, *, clock: Clock = time.monotonic) -> None:
        self._clock = clock
        self._data: Dict[str, _Entry] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> Optional[_Entry]:
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            del self._data[key]
            return None
        return entry

    async def put_if_absent(self, key: str, value: str, ttl: float) -> bool:
        ttl = validate_ttl(ttl)
        async with self._lock:
            if self._live(key) is not None:
                return False
            self._data[key] = _Entry(value=value, expires_at=self._clock() + ttl)
            return True

    async def set(self, key: str, value: str, ttl: Optional[float] = None) -> None:
        """Unconditional write, used to seed fixtures."""
        async with self._lock:
            expires_at = self._clock() + validate_ttl(ttl) if ttl is not None else None
            self._data[key] = _Entry(value=value, expires_at=expires_at)

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            entry = self._live(key)
            return entry.value if entry else None

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        async with self._lock:
            entry = self._live(key)
            if entry is None or entry.value != expected:
                return False
            del self._data[key]
            return True

    async def remaining_ttl(self, key: str) -> Optional[float]:
        async with self._lock:
            entry = self._live(key)
            if entry is None or entry.expires_at is None:
                return None
            return entry.expires_at - self._clock()

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._live(key) is not None

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._data.pop(key, None) is not None

    async def flush(self) -> None:
        async with self._lock:
            self._data.clear()
