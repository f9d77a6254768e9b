"""Abstract interface for the key-value store backing the locks."""

from __future__ import annotations

import abc
import math
from typing import Optional


def validate_ttl(ttl: float) -> float:
    if not math.isfinite(ttl) or ttl <= 0:
        raise ValueError(f"ttl must be a positive finite number of seconds, got {ttl!r}")
    return float(ttl)


class KeyValueStore(abc.ABC):
    """The primitives a lock needs. Both mutating calls must be atomic store-side."""

    @abc.abstractmethod
    async def put_if_absent(self, key: str, value: str, ttl: float) -> bool:  # pragma: no cover - interface
        """Insert ``value`` with a ``ttl`` in seconds only if ``key`` is absent."""
        raise NotImplementedError

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[str]:  # pragma: no cover - interface
        raise NotImplementedError

    @abc.abstractmethod
    async def compare_and_delete(self, key: str, expected: str) -> bool:  # pragma: no cover - interface
        """Delete ``key`` only if its value equals ``expected``, in one atomic step."""
        raise NotImplementedError

    @abc.abstractmethod
    async def remaining_ttl(self, key: str) -> Optional[float]:  # pragma: no cover - interface
        """Seconds until expiry, or None when the key is missing or never expires."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release client resources. No-op by default."""
