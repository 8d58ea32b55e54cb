"""Tests for keyed locks, bounded calls and caller-side retry."""

from __future__ import annotations

import asyncio

import pytest

from repair_lifecycle.application.services.bounded import bounded
from repair_lifecycle.application.services.locks import KeyedLocks, LockRegistry
from repair_lifecycle.application.services.retry import backoff_delay, retry_store_timeouts
from repair_lifecycle.domain.errors import (
    LockTimeoutError,
    StoreTimeoutError,
    TransitionError,
)

# ─── Locks ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_same_key_is_serialised():
    locks = KeyedLocks("job")
    order: list[str] = []

    async def worker(name: str):
        async with locks.hold("JOB-1"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])


@pytest.mark.asyncio
async def test_locks_are_dropped_when_unused():
    locks = KeyedLocks("job")
    async with locks.hold("JOB-1"):
        assert locks.locked("JOB-1")
        assert len(locks) == 1
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_released_on_error():
    locks = KeyedLocks("job")
    with pytest.raises(TransitionError):
        async with locks.hold("JOB-1"):
            raise TransitionError("nope")
    assert not locks.locked("JOB-1")


@pytest.mark.asyncio
async def test_lock_wait_is_bounded():
    locks = KeyedLocks("job", timeout=0.01)
    async with locks.hold("JOB-1"):
        with pytest.raises(LockTimeoutError) as exc_info:
            async with locks.hold("JOB-1"):
                pass
    assert exc_info.value.retryable
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_hold_many_skips_none_and_duplicates():
    registry = LockRegistry(timeout=1.0)
    async with registry.technician_set(["T2", None, "T1", "T2"]):
        assert registry.technicians.locked("T1")
        assert registry.technicians.locked("T2")
        assert len(registry.technicians) == 2
    assert len(registry.technicians) == 0


@pytest.mark.asyncio
async def test_opposite_order_requests_do_not_deadlock():
    registry = LockRegistry(timeout=1.0)

    async def grab(ids):
        async with registry.technician_set(ids):
            await asyncio.sleep(0.01)

    await asyncio.wait_for(asyncio.gather(grab(["T1", "T2"]), grab(["T2", "T1"])), 1.0)


# ─── Bounded calls ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_bounded_converts_timeout():
    with pytest.raises(StoreTimeoutError) as exc_info:
        await bounded(asyncio.sleep(1), 0.01, "load job")
    assert exc_info.value.operation == "load job"


@pytest.mark.asyncio
async def test_bounded_passes_result_through():
    async def value():
        return 42

    assert await bounded(value(), 1.0, "load job") == 42


# ─── Retry ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_retry_recovers_from_timeouts():
    calls = 0

    async def flaky():
        nonlocal calls
        calls += 1
        if calls < 3:
            raise StoreTimeoutError("load job", 0.1)
        return "ok"

    assert await retry_store_timeouts(flaky, attempts=3, base_delay=0.0) == "ok"
    assert calls == 3


@pytest.mark.asyncio
async def test_retry_gives_up():
    calls = 0

    async def always_slow():
        nonlocal calls
        calls += 1
        raise StoreTimeoutError("load job", 0.1)

    with pytest.raises(StoreTimeoutError):
        await retry_store_timeouts(always_slow, attempts=2, base_delay=0.0)
    assert calls == 2


@pytest.mark.asyncio
async def test_retry_does_not_retry_validation_errors():
    calls = 0

    async def invalid():
        nonlocal calls
        calls += 1
        raise TransitionError("illegal")

    with pytest.raises(TransitionError):
        await retry_store_timeouts(invalid, attempts=5, base_delay=0.0)
    assert calls == 1


def test_backoff_grows_and_is_capped():
    for _ in range(50):
        assert 0.075 <= backoff_delay(0, 0.1) <= 0.125
        assert 0.3 <= backoff_delay(2, 0.1) <= 0.5
        assert backoff_delay(20, 0.1) <= 5.0
