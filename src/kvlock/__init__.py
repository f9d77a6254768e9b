"""Distributed try-lock over a shared key-value store with per-key expiry."""

from .core import (
    DistributedLock,
    InMemoryStore,
    KeyValueStore,
    LockError,
    LockRegistry,
    RedisStore,
    ReleaseNotOwner,
    StoreTimeout,
    StoreUnavailable,
    SubmissionGuard,
    new_owner_token,
)

__all__ = [
    "__version__",
    "DistributedLock",
    "InMemoryStore",
    "KeyValueStore",
    "LockError",
    "LockRegistry",
    "RedisStore",
    "ReleaseNotOwner",
    "StoreTimeout",
    "StoreUnavailable",
    "SubmissionGuard",
    "new_owner_token",
]

__version__ = "0.1.0"
