from __future__ import annotations

import asyncio
import json

import pytest

from kvlock.core.errors import ReleaseNotOwner, StoreTimeout, StoreUnavailable
from kvlock.core.lock import DistributedLock
from kvlock.services.audit_logger import LockAuditLogger


@pytest.mark.asyncio
async def test_round_trip_between_two_owners(store):
    p1 = DistributedLock(store, "lockA", "p1", 5)
    p2 = DistributedLock(store, "lockA", "p2", 5)

    assert await p1.try_acquire() is True
    assert await p2.try_acquire() is False
    await p1.release()
    assert await p2.try_acquire() is True
    assert await store.get("lockA") == "p2"


@pytest.mark.asyncio
async def test_wrong_owner_cannot_release(store):
    p1 = DistributedLock(store, "lockB", "p1", 5)
    p2 = DistributedLock(store, "lockB", "p2", 5)

    assert await p1.try_acquire() is True
    with pytest.raises(ReleaseNotOwner) as info:
        await p2.release()

    assert info.value.key == "lockB"
    assert info.value.token == "p2"
    assert await store.get("lockB") == "p1"
    assert await p1.is_held() is True


@pytest.mark.asyncio
async def test_expiry_frees_the_lock(store, clock):
    p1 = DistributedLock(store, "lockC", "p1", 5)
    p2 = DistributedLock(store, "lockC", "p2", 5)

    assert await p1.try_acquire() is True
    clock.advance(4.9)
    assert await p2.try_acquire() is False

    clock.advance(0.2)
    assert p1.held is True  # advisory flag cannot see the expiry
    assert await p1.is_held() is False
    assert await p2.try_acquire() is True


@pytest.mark.asyncio
async def test_release_after_expiry_and_reacquire_keeps_new_owner(store, clock):
    p1 = DistributedLock(store, "lockD", "p1", 1)
    p2 = DistributedLock(store, "lockD", "p2", 5)

    await p1.try_acquire()
    clock.advance(2)
    await p2.try_acquire()

    with pytest.raises(ReleaseNotOwner):
        await p1.release()
    assert p1.held is False
    assert await p2.is_held() is True


@pytest.mark.asyncio
async def test_double_release_is_not_destructive(store):
    lock = DistributedLock(store, "lockE", "p1", 5)
    await lock.try_acquire()
    await lock.release()

    with pytest.raises(ReleaseNotOwner):
        await lock.release()
    assert await store.exists("lockE") is False


@pytest.mark.asyncio
async def test_release_without_acquire(store):
    lock = DistributedLock(store, "never", "p1", 5)
    with pytest.raises(ReleaseNotOwner):
        await lock.release()
    assert lock.held is False


@pytest.mark.asyncio
async def test_concurrent_acquire_has_single_winner(store):
    locks = [DistributedLock(store, "hot", f"owner-{i}", 5) for i in range(25)]

    results = await asyncio.gather(*(lock.try_acquire() for lock in locks))

    assert results.count(True) == 1
    winner = locks[results.index(True)]
    assert await store.get("hot") == winner.token
    assert [lock.held for lock in locks].count(True) == 1


@pytest.mark.asyncio
async def test_advisory_flag_follows_outcomes(store):
    p1 = DistributedLock(store, "flag", "p1", 5)
    p2 = DistributedLock(store, "flag", "p2", 5)

    assert p1.held is False
    await p1.try_acquire()
    await p2.try_acquire()
    assert p1.held is True
    assert p2.held is False

    await p1.release()
    assert p1.held is False


@pytest.mark.asyncio
async def test_remaining_ttl_reports_store_view(store, clock):
    lock = DistributedLock(store, "ttl", "p1", 10)
    assert await lock.remaining_ttl() is None
    await lock.try_acquire()
    clock.advance(3)
    assert await lock.remaining_ttl() == pytest.approx(7)


@pytest.mark.asyncio
async def test_context_manager_acquires_and_releases(store):
    lock = DistributedLock(store, "ctx", "p1", 5)
    async with lock as acquired:
        assert acquired is True
        assert await store.get("ctx") == "p1"
    assert await store.exists("ctx") is False
    assert lock.held is False


@pytest.mark.asyncio
async def test_context_manager_leaves_foreign_lock_alone(store):
    holder = DistributedLock(store, "ctx", "p1", 5)
    await holder.try_acquire()

    async with DistributedLock(store, "ctx", "p2", 5) as acquired:
        assert acquired is False
    assert await store.get("ctx") == "p1"


@pytest.mark.asyncio
async def test_context_manager_tolerates_expiry_inside_block(store, clock):
    async with DistributedLock(store, "ctx", "p1", 1) as acquired:
        assert acquired is True
        clock.advance(5)
    assert await store.exists("ctx") is False


@pytest.mark.asyncio
async def test_store_outage_propagates_and_does_not_grant_ownership(down_store):
    lock = DistributedLock(down_store, "down", "p1", 5)

    with pytest.raises(StoreUnavailable) as info:
        await lock.try_acquire()
    assert info.value.operation == "put_if_absent"
    assert info.value.key == "down"
    assert lock.held is False

    with pytest.raises(StoreUnavailable):
        await lock.is_held()


@pytest.mark.asyncio
async def test_store_outage_on_release_clears_flag(store, down_store):
    lock = DistributedLock(store, "k", "p1", 5)
    await lock.try_acquire()
    lock._store = down_store

    with pytest.raises(StoreUnavailable):
        await lock.release()
    assert lock.held is False


@pytest.mark.asyncio
async def test_timeout_surfaces_as_store_timeout(slow_store):
    lock = DistributedLock(slow_store, "slow", "p1", 5, timeout=0.05)

    with pytest.raises(StoreTimeout) as info:
        await lock.try_acquire()
    assert isinstance(info.value, StoreUnavailable)
    assert info.value.timeout == pytest.approx(0.05)
    assert lock.held is False


@pytest.mark.asyncio
async def test_release_timeout_clears_flag_without_not_owner(slow_store):
    slow_store.delay = 0
    lock = DistributedLock(slow_store, "slow", "p1", 5)
    assert await lock.try_acquire() is True
    slow_store.delay = 1.0

    with pytest.raises(StoreTimeout) as info:
        await lock.release(timeout=0.01)
    assert not isinstance(info.value, ReleaseNotOwner)
    assert info.value.operation == "release"
    assert lock.held is False


@pytest.mark.asyncio
async def test_per_call_timeout_overrides_default(slow_store):
    slow_store.delay = 0.01
    lock = DistributedLock(slow_store, "slow", "p1", 5, timeout=0.001)

    assert await lock.try_acquire(timeout=2) is True
    await lock.release(timeout=2)


@pytest.mark.asyncio
async def test_cancellation_is_not_wrapped(slow_store):
    lock = DistributedLock(slow_store, "slow", "p1", 5)
    task = asyncio.create_task(lock.try_acquire())
    await asyncio.sleep(0.01)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task
    assert lock.held is False


def test_constructor_rejects_bad_arguments(store):
    with pytest.raises(ValueError):
        DistributedLock(store, "", "p1", 5)
    with pytest.raises(ValueError):
        DistributedLock(store, "k", "", 5)
    for ttl in (0, -1, float("inf"), float("nan")):
        with pytest.raises(ValueError):
            DistributedLock(store, "k", "p1", ttl)


@pytest.mark.asyncio
async def test_audit_trail_records_outcomes(store, tmp_path):
    audit = LockAuditLogger(tmp_path / "audit.log")
    p1 = DistributedLock(store, "audited", "p1", 5, audit=audit)
    p2 = DistributedLock(store, "audited", "p2", 5, audit=audit)

    await p1.try_acquire()
    await p2.try_acquire()
    with pytest.raises(ReleaseNotOwner):
        await p2.release()
    await p1.release()

    lines = (tmp_path / "audit.log").read_text().splitlines()
    records = [json.loads(line) for line in lines]
    assert [(r["event"], r["token"]) for r in records] == [
        ("acquire", "p1"),
        ("release_not_owner", "p2"),
        ("release", "p1"),
    ]
    assert all(r["key"] == "audited" for r in records)
