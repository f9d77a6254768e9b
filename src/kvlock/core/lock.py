"""Non-blocking distributed mutex over a key-value store with expiry."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Awaitable, Optional, TypeVar

from kvlock.utils.logging import get_logger

from .errors import ReleaseNotOwner, StoreTimeout, StoreUnavailable
from .store import KeyValueStore, validate_ttl

if TYPE_CHECKING:
    from kvlock.services.audit_logger import LockAuditLogger


T = TypeVar("T")

logger = get_logger("lock")


class DistributedLock:
    """One ``(key, token, ttl)`` triple and the protocol to claim and give it back.

    The store key is the only source of truth. ``held`` is an advisory flag that
    cannot observe a TTL expiry; use :meth:`is_held` to ask the store.

    Callers own retry and backoff: a contended :meth:`try_acquire` simply
    returns ``False``. Any :class:`StoreUnavailable` means ownership is unknown
    and the critical section must not run.

    Not reentrant, and not meant to be shared by concurrent tasks.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: str,
        token: str,
        ttl: float,
        *,
        timeout: Optional[float] = None,
        audit: Optional["LockAuditLogger"] = None,
    ) -> None:
        if not key:
            raise ValueError("lock key must be a non-empty string")
        if not token:
            raise ValueError("owner token must be a non-empty string")
        self._store = store
        self._key = key
        self._token = token
        self._ttl = validate_ttl(ttl)
        self._timeout = timeout
        self._audit = audit
        self._held = False

    def __repr__(self) -> str:
        return f"DistributedLock(key={self._key!r}, token={self._token!r}, ttl={self._ttl:g}, held={self._held})"

    @property
    def key(self) -> str:
        return self._key

    @property
    def token(self) -> str:
        return self._token

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def held(self) -> bool:
        """Whether this instance believes it holds the lock. May be stale."""
        return self._held

    async def try_acquire(self, timeout: Optional[float] = None) -> bool:
        """Make one atomic attempt to claim the key. ``False`` means someone else holds it."""
        try:
            acquired = await self._call(
                "try_acquire", self._store.put_if_absent(self._key, self._token, self._ttl), timeout
            )
        except StoreUnavailable as exc:
            logger.error("Acquire of %s failed, ownership unknown: %s", self._key, exc)
            await self._record("store_error", operation="try_acquire", error=str(exc))
            raise
        if acquired:
            self._held = True
            logger.debug("Acquired %s as %s for %.3fs", self._key, self._token, self._ttl)
            await self._record("acquire", ttl=self._ttl)
        else:
            logger.debug("Lock %s is held by another owner", self._key)
        return acquired

    async def release(self, timeout: Optional[float] = None) -> None:
        """Delete the key if, and only if, it still carries this token.

        Raises :class:`ReleaseNotOwner` when nothing was removed, which includes
        the lock having expired already.
        """
        try:
            removed = await self._call(
                "release", self._store.compare_and_delete(self._key, self._token), timeout
            )
        except StoreUnavailable as exc:
            logger.error("Release of %s failed: %s", self._key, exc)
            await self._record("store_error", operation="release", error=str(exc))
            raise
        finally:
            self._held = False
        if not removed:
            logger.warning("Release of %s by %s removed nothing", self._key, self._token)
            await self._record("release_not_owner")
            raise ReleaseNotOwner(self._key, self._token)
        logger.debug("Released %s", self._key)
        await self._record("release")

    async def is_held(self, timeout: Optional[float] = None) -> bool:
        """Ask the store whether the key currently carries this token."""
        current = await self._call("is_held", self._store.get(self._key), timeout)
        return current == self._token

    async def remaining_ttl(self, timeout: Optional[float] = None) -> Optional[float]:
        """Seconds left on the key, whoever owns it. None when the key is gone."""
        return await self._call("remaining_ttl", self._store.remaining_ttl(self._key), timeout)

    async def __aenter__(self) -> bool:
        return await self.try_acquire()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if not self._held:
            return
        try:
            await self.release()
        except ReleaseNotOwner:
            logger.warning("Lock %s expired before the critical section finished", self._key)

    async def _call(self, operation: str, awaitable: Awaitable[T], timeout: Optional[float]) -> T:
        effective = timeout if timeout is not None else self._timeout
        if effective is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, effective)
        except asyncio.TimeoutError as exc:
            raise StoreTimeout(operation, self._key, timeout=effective) from exc

    async def _record(self, event: str, **extra: Any) -> None:
        if self._audit is None:
            return
        try:
            await self._audit.log(event=event, key=self._key, token=self._token, **extra)
        except OSError as exc:
            logger.warning("Could not write audit record for %s: %s", self._key, exc)
