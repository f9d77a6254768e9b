"""Runtime settings loader."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from kvlock.utils.env import get_float_env


class RedisSettings(BaseModel):
    """Connection settings for the Redis store. ``url`` wins over the discrete fields."""

    url: Optional[str] = None
    host: str = "localhost"
    port: int = Field(default=6379, gt=0, lt=65536)
    password: Optional[str] = None
    db: int = Field(default=0, ge=0)
    pool_size: int = Field(default=10, ge=1)
    connect_timeout: float = Field(default=5.0, gt=0)  # seconds
    socket_timeout: float = Field(default=3.0, gt=0)


class LockSettings(BaseModel):
    key_prefix: str = "lock:"
    default_ttl_seconds: float = Field(default=30.0, gt=0, allow_inf_nan=False)
    operation_timeout_seconds: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)


class KvLockSettings(BaseModel):
    redis: RedisSettings = Field(default_factory=RedisSettings)
    lock: LockSettings = Field(default_factory=LockSettings)

    @classmethod
    def from_file(cls, path: Path) -> "KvLockSettings":
        data = yaml.safe_load(path.read_text()) or {}
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid kvlock settings: {exc}") from exc

    @classmethod
    def from_env(cls) -> "KvLockSettings":
        """Defaults overridden by REDIS_URL, KVLOCK_KEY_PREFIX and KVLOCK_DEFAULT_TTL."""
        data: dict = {"redis": {}, "lock": {}}
        url = os.getenv("REDIS_URL")
        if url:
            data["redis"]["url"] = url
        prefix = os.getenv("KVLOCK_KEY_PREFIX")
        if prefix is not None:
            data["lock"]["key_prefix"] = prefix
        ttl = get_float_env("KVLOCK_DEFAULT_TTL")
        if ttl is not None:
            data["lock"]["default_ttl_seconds"] = ttl
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid kvlock environment settings: {exc}") from exc
