"""Structured audit logger writing JSON Lines for lock events."""

from __future__ import annotations

import asyncio
import datetime as dt
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional


class LockAuditLogger:
    """Persist one JSON record per acquire/release outcome."""

    def __init__(self, path: Optional[Path] = None) -> None:
        target = path or Path(os.getenv("KVLOCK_AUDIT_LOG", "artifacts/lock-audit.log"))
        target.parent.mkdir(parents=True, exist_ok=True)
        self._path = target
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def log(self, *, event: str, key: str, token: str, **extra: Any) -> None:
        record: Dict[str, Any] = {
            "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
            "event": event,
            "key": key,
            "token": token,
        }
        record.update(extra)
        async with self._lock:
            await asyncio.to_thread(self._append_line, record)

    def _append_line(self, record: Dict[str, Any]) -> None:
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(record, ensure_ascii=True))
            fh.write("\n")
