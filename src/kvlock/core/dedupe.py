"""Reject repeated submissions of the same request inside a time window."""

from __future__ import annotations

from typing import Optional

from .store import KeyValueStore, validate_ttl


class SubmissionGuard:
    """First claim of ``(user_id, request_id)`` wins until the window expires.

    Markers normally age out; :meth:`forget` clears one early.
    """

    def __init__(self, store: KeyValueStore, *, prefix: str = "submit:", window: float = 60.0) -> None:
        self._store = store
        self._prefix = prefix
        self._window = validate_ttl(window)

    def key_for(self, user_id: str, request_id: str) -> str:
        return f"{self._prefix}{user_id}:{request_id}"

    async def claim(self, user_id: str, request_id: str) -> bool:
        return await self._store.put_if_absent(self.key_for(user_id, request_id), "processing", self._window)

    async def remaining(self, user_id: str, request_id: str) -> Optional[float]:
        return await self._store.remaining_ttl(self.key_for(user_id, request_id))

    async def forget(self, user_id: str, request_id: str) -> bool:
        """Close the window early. Only removes a marker this guard wrote."""
        return await self._store.compare_and_delete(self.key_for(user_id, request_id), "processing")
