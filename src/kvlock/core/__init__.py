"""Lock core: store interface, implementations and the lock state machine."""

from .dedupe import SubmissionGuard
from .errors import LockError, ReleaseNotOwner, StoreTimeout, StoreUnavailable
from .lock import DistributedLock
from .registry import LockRegistry
from .settings import KvLockSettings, LockSettings, RedisSettings
from .store import KeyValueStore
from .store_memory import InMemoryStore
from .store_redis import RedisStore
from .tokens import new_owner_token

__all__ = [
    "DistributedLock",
    "InMemoryStore",
    "KeyValueStore",
    "KvLockSettings",
    "LockError",
    "LockRegistry",
    "LockSettings",
    "RedisSettings",
    "RedisStore",
    "ReleaseNotOwner",
    "StoreTimeout",
    "StoreUnavailable",
    "SubmissionGuard",
    "new_owner_token",
]
