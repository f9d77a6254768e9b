"""Command line entrypoint for inspecting and driving locks."""

from __future__ import annotations

import argparse
import asyncio
import math
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml

from kvlock.core.dedupe import SubmissionGuard
from kvlock.core.errors import ReleaseNotOwner, StoreUnavailable
from kvlock.core.registry import LockRegistry
from kvlock.core.settings import KvLockSettings
from kvlock.core.store_redis import RedisStore
from kvlock.utils.logging import get_logger


logger = get_logger("cli")

EXIT_OK = 0
EXIT_REFUSED = 1
EXIT_STORE_ERROR = 2


def _load_settings(path: Optional[Path]) -> KvLockSettings:
    if path is not None:
        return KvLockSettings.from_file(path)
    return KvLockSettings.from_env()


def _ttl_seconds(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {raw!r}") from exc
    if not math.isfinite(value) or value <= 0:
        raise argparse.ArgumentTypeError(f"ttl must be a positive finite number of seconds, got {raw!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="kvlock", description="Distributed try-lock over Redis.")
    parser.add_argument("--config", type=Path, default=None, help="Path to settings YAML (default: environment)")
    sub = parser.add_subparsers(dest="command", required=True)

    acquire = sub.add_parser("acquire", help="Try once to take a lock; prints the owner token")
    acquire.add_argument("name")
    acquire.add_argument("--ttl", type=_ttl_seconds, default=None, help="Seconds before the lock expires")
    acquire.add_argument("--token", default=None, help="Owner token (default: freshly generated)")

    release = sub.add_parser("release", help="Release a lock owned by TOKEN")
    release.add_argument("name")
    release.add_argument("--token", required=True)

    status = sub.add_parser("status", help="Show the current owner and remaining TTL")
    status.add_argument("name")

    sub.add_parser("ping", help="Check that the store is reachable")
    sub.add_parser("demo", help="Walk through contention, release and duplicate-submission checks")
    return parser


async def _acquire(registry: LockRegistry, args: argparse.Namespace) -> int:
    lock = registry.lock(args.name, token=args.token, ttl=args.ttl)
    if await lock.try_acquire():
        print(lock.token)
        return EXIT_OK
    print(f"{lock.key} is held by another owner", file=sys.stderr)
    return EXIT_REFUSED


async def _release(registry: LockRegistry, args: argparse.Namespace) -> int:
    lock = registry.lock(args.name, token=args.token)
    try:
        await lock.release()
    except ReleaseNotOwner as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_REFUSED
    print(f"released {lock.key}")
    return EXIT_OK


async def _status(registry: LockRegistry, args: argparse.Namespace) -> int:
    key = registry.key_for(args.name)
    owner = await registry.store.get(key)
    if owner is None:
        print(f"{key}: free")
        return EXIT_OK
    remaining = await registry.store.remaining_ttl(key)
    ttl_text = f"{remaining:.3f}s" if remaining is not None else "no expiry"
    print(f"{key}: held by {owner} ({ttl_text} left)")
    return EXIT_OK


async def _ping(registry: LockRegistry) -> int:
    store = registry.store
    if isinstance(store, RedisStore):
        await store.ping()
        info = await store.info("server")
        print(f"PONG (redis {info.get('redis_version', 'unknown')})")
    else:
        print("PONG")
    return EXIT_OK


async def run_demo(registry: LockRegistry, *, hold_seconds: float = 0.5) -> int:
    """Two owners contend for one key, then a request is submitted twice."""
    first = registry.lock("demo:distributed_lock", ttl=10)
    second = registry.lock("demo:distributed_lock", ttl=10)

    if not await first.try_acquire():
        print(f"{first.key} is already held; is another demo running?", file=sys.stderr)
        return EXIT_REFUSED
    print("owner 1 acquires: True")
    print(f"owner 2 acquires: {await second.try_acquire()}")
    await asyncio.sleep(hold_seconds)
    try:
        await second.release()
    except ReleaseNotOwner:
        print("owner 2 cannot release a lock it does not hold")
    try:
        await first.release()
    except ReleaseNotOwner:
        print(f"owner 1 lost {first.key} to expiry", file=sys.stderr)
        return EXIT_REFUSED
    print("owner 1 released")
    reacquired = await second.try_acquire()
    print(f"owner 2 acquires again: {reacquired}")
    if reacquired:
        await second.release()

    guard = SubmissionGuard(registry.store, window=60)
    try:
        for attempt in (1, 2):
            accepted = await guard.claim("user123", "req456")
            print(f"submission {attempt}: {'accepted' if accepted else 'rejected as duplicate'}")
        remaining = await guard.remaining("user123", "req456")
        if remaining is not None:
            print(f"duplicate window closes in {remaining:.1f}s")
    finally:
        await guard.forget("user123", "req456")
    return EXIT_OK


async def main(argv: Optional[Sequence[str]] = None, *, registry: Optional[LockRegistry] = None) -> int:
    args = build_parser().parse_args(argv)
    owns_registry = registry is None
    if registry is None:
        try:
            settings = _load_settings(args.config)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            print(f"Could not load settings: {exc}", file=sys.stderr)
            return EXIT_STORE_ERROR
        registry = LockRegistry.from_settings(settings)

    try:
        if args.command == "acquire":
            return await _acquire(registry, args)
        if args.command == "release":
            return await _release(registry, args)
        if args.command == "status":
            return await _status(registry, args)
        if args.command == "ping":
            return await _ping(registry)
        return await run_demo(registry)
    except ReleaseNotOwner as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_REFUSED
    except StoreUnavailable as exc:
        logger.error("Store error: %s", exc)
        print(str(exc), file=sys.stderr)
        return EXIT_STORE_ERROR
    finally:
        if owns_registry:
            await registry.close()


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
