"""Redis-backed store using SET NX PX and a Lua compare-and-delete."""

from __future__ import annotations

import math
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .errors import StoreUnavailable
from .settings import RedisSettings
from .store import KeyValueStore, validate_ttl


# Comparing and deleting inside one script keeps another holder's lock safe
# when ours expires between a client-side GET and DEL.
COMPARE_AND_DELETE_LUA = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
else
    return 0
end
"""


@contextmanager
def _wrap_errors(operation: str, key: Optional[str] = None) -> Iterator[None]:
    try:
        yield
    except (RedisError, OSError) as exc:
        raise StoreUnavailable(operation, key, reason=str(exc) or type(exc).__name__) from exc


class RedisStore(KeyValueStore):
    """Lock primitives plus a little connection plumbing over ``redis.asyncio``."""

    def __init__(self, client: Redis) -> None:
        self._client = client
        self._compare_and_delete = client.register_script(COMPARE_AND_DELETE_LUA)

    @classmethod
    def from_settings(cls, settings: Optional[RedisSettings] = None) -> "RedisStore":
        settings = settings or RedisSettings()
        options: Dict[str, Any] = {
            "decode_responses": True,
            "max_connections": settings.pool_size,
            "socket_connect_timeout": settings.connect_timeout,
            "socket_timeout": settings.socket_timeout,
        }
        if settings.url:
            client = Redis.from_url(settings.url, **options)
        else:
            client = Redis(
                host=settings.host,
                port=settings.port,
                db=settings.db,
                password=settings.password,
                **options,
            )
        return cls(client)

    @property
    def client(self) -> Redis:
        """Underlying client for operations this store does not wrap."""
        return self._client

    async def put_if_absent(self, key: str, value: str, ttl: float) -> bool:
        ttl_ms = max(1, math.ceil(validate_ttl(ttl) * 1000))
        with _wrap_errors("put_if_absent", key):
            return bool(await self._client.set(key, value, px=ttl_ms, nx=True))

    async def get(self, key: str) -> Optional[str]:
        with _wrap_errors("get", key):
            return await self._client.get(key)

    async def compare_and_delete(self, key: str, expected: str) -> bool:
        with _wrap_errors("compare_and_delete", key):
            removed = await self._compare_and_delete(keys=[key], args=[expected])
        return int(removed) == 1

    async def remaining_ttl(self, key: str) -> Optional[float]:
        with _wrap_errors("remaining_ttl", key):
            ttl_ms = await self._client.pttl(key)
        # -2: missing, -1: no expiry
        if ttl_ms is None or ttl_ms < 0:
            return None
        return ttl_ms / 1000.0

    async def ping(self) -> None:
        with _wrap_errors("ping"):
            await self._client.ping()

    async def info(self, section: Optional[str] = None) -> Dict[str, Any]:
        with _wrap_errors("info"):
            if section:
                return await self._client.info(section)
            return await self._client.info()

    async def exists(self, *keys: str) -> int:
        with _wrap_errors("exists", ",".join(keys)):
            return int(await self._client.exists(*keys))

    async def delete(self, *keys: str) -> int:
        """Unconditional delete. Never use this to release a lock."""
        with _wrap_errors("delete", ",".join(keys)):
            return int(await self._client.delete(*keys))

    async def flush_db(self) -> None:
        with _wrap_errors("flush_db"):
            await self._client.flushdb()

    async def close(self) -> None:
        await self._client.aclose()
