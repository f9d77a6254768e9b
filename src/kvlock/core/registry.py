"""Factory binding locks to one shared store handle."""

from __future__ import annotations

from typing import Optional

from kvlock.services.audit_logger import LockAuditLogger
from kvlock.utils.logging import get_logger

from .lock import DistributedLock
from .settings import KvLockSettings
from .store import KeyValueStore, validate_ttl
from .store_redis import RedisStore
from .tokens import new_owner_token


class LockRegistry:
    """Builds :class:`DistributedLock` instances sharing a store, prefix and defaults."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        key_prefix: str = "lock:",
        default_ttl: float = 30.0,
        timeout: Optional[float] = None,
        audit: Optional[LockAuditLogger] = None,
    ) -> None:
        self._store = store
        self._prefix = key_prefix
        self._default_ttl = validate_ttl(default_ttl)
        self._timeout = timeout
        self._audit = audit
        self.logger = get_logger("LockRegistry")

    @classmethod
    def from_settings(
        cls, settings: KvLockSettings, *, audit: Optional[LockAuditLogger] = None
    ) -> "LockRegistry":
        store = RedisStore.from_settings(settings.redis)
        return cls(
            store,
            key_prefix=settings.lock.key_prefix,
            default_ttl=settings.lock.default_ttl_seconds,
            timeout=settings.lock.operation_timeout_seconds,
            audit=audit,
        )

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def key_for(self, name: str) -> str:
        return f"{self._prefix}{name}"

    def lock(self, name: str, *, token: Optional[str] = None, ttl: Optional[float] = None) -> DistributedLock:
        """Return a lock on ``name``. Without a token, a fresh one is minted per call."""
        return DistributedLock(
            self._store,
            self.key_for(name),
            token or new_owner_token(),
            ttl if ttl is not None else self._default_ttl,
            timeout=self._timeout,
            audit=self._audit,
        )

    async def close(self) -> None:
        self.logger.debug("Closing lock store")
        await self._store.close()
