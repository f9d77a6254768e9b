"""Exception hierarchy for lock and store failures.

``AlreadyLocked`` is deliberately absent: contention is reported as ``False``
from :meth:`DistributedLock.try_acquire`, not as an exception.
"""

from __future__ import annotations

from typing import Optional


class LockError(Exception):
    """Base class for every error raised by kvlock."""

    def __init__(self, message: str, *, operation: Optional[str] = None, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.key = key


class StoreUnavailable(LockError):
    """The key-value store could not be reached or rejected the call.

    It is unknown whether a mutating call took effect. A caller that treats
    this as a successful acquire breaks mutual exclusion.
    """

    def __init__(self, operation: str, key: Optional[str] = None, *, reason: str = "") -> None:
        target = f" on key {key!r}" if key is not None else ""
        detail = f": {reason}" if reason else ""
        super().__init__(f"store {operation} failed{target}{detail}", operation=operation, key=key)


class StoreTimeout(StoreUnavailable):
    """The per-call deadline elapsed before the store answered."""

    def __init__(self, operation: str, key: Optional[str] = None, *, timeout: float) -> None:
        super().__init__(operation, key, reason=f"timed out after {timeout:g}s")
        self.timeout = timeout


class ReleaseNotOwner(LockError):
    """Release removed nothing because the key is missing or owned by someone else."""

    def __init__(self, key: str, token: str) -> None:
        super().__init__(
            f"lock {key!r} is not held by token {token!r} (expired or owned by another holder)",
            operation="release",
            key=key,
        )
        self.token = token
