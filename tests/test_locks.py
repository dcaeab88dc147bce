"""Tests for per-practitioner scheduling locks."""

import asyncio
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import LockNotOwnedError

from app.core.exceptions import StoreException
from app.scheduling.locks import InMemoryPractitionerLocks, RedisPractitionerLocks
from tests.fakes import OTHER_PRACTITIONER_ID, PRACTITIONER_ID


@pytest.mark.asyncio
async def test_in_memory_lock_serializes_same_practitioner():
    """Critical sections for one practitioner never interleave."""
    locks = InMemoryPractitionerLocks()
    events: list[str] = []

    async def critical(name: str) -> None:
        async with locks.hold(PRACTITIONER_ID):
            events.append(f"{name}:enter")
            await asyncio.sleep(0.01)
            events.append(f"{name}:exit")

    await asyncio.gather(critical("a"), critical("b"))

    assert events in (
        ["a:enter", "a:exit", "b:enter", "b:exit"],
        ["b:enter", "b:exit", "a:enter", "a:exit"],
    )


@pytest.mark.asyncio
async def test_in_memory_lock_is_per_practitioner():
    """Different practitioners do not block each other."""
    locks = InMemoryPractitionerLocks()

    async with locks.hold(PRACTITIONER_ID):
        await asyncio.wait_for(_enter_and_leave(locks), timeout=1)


async def _enter_and_leave(locks: InMemoryPractitionerLocks) -> None:
    async with locks.hold(OTHER_PRACTITIONER_ID):
        pass


@pytest.mark.asyncio
async def test_in_memory_lock_released_on_error():
    locks = InMemoryPractitionerLocks()

    with pytest.raises(RuntimeError):
        async with locks.hold(PRACTITIONER_ID):
            raise RuntimeError("boom")

    async with locks.hold(PRACTITIONER_ID):
        pass


@pytest.mark.asyncio
async def test_in_memory_registry_drops_idle_locks():
    """Locks of practitioners with no holder or waiter are forgotten."""
    locks = InMemoryPractitionerLocks()

    for _ in range(1000):
        async with locks.hold(uuid4()):
            pass

    assert locks._locks == {}
    assert locks._holders == {}


@pytest.mark.asyncio
async def test_in_memory_registry_keeps_lock_while_waiters_remain():
    locks = InMemoryPractitionerLocks()
    entered = asyncio.Event()
    release = asyncio.Event()
    order: list[str] = []

    async def first() -> None:
        async with locks.hold(PRACTITIONER_ID):
            entered.set()
            await release.wait()
            order.append("first")

    async def second() -> None:
        await entered.wait()
        async with locks.hold(PRACTITIONER_ID):
            order.append("second")

    tasks = [asyncio.create_task(first()), asyncio.create_task(second())]
    await entered.wait()
    await asyncio.sleep(0)
    assert locks._holders[PRACTITIONER_ID] == 2

    release.set()
    await asyncio.gather(*tasks)

    assert order == ["first", "second"]
    assert PRACTITIONER_ID not in locks._locks


@pytest.mark.asyncio
async def test_in_memory_registry_drops_lock_of_cancelled_waiter():
    locks = InMemoryPractitionerLocks()

    async with locks.hold(PRACTITIONER_ID):
        waiter = asyncio.create_task(_enter_and_leave_same(locks))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

    assert locks._locks == {}


async def _enter_and_leave_same(locks: InMemoryPractitionerLocks) -> None:
    async with locks.hold(PRACTITIONER_ID):
        pass


def _redis_with_lock(lock: MagicMock) -> MagicMock:
    redis_client = MagicMock()
    redis_client.lock.return_value = lock
    return redis_client


@pytest.mark.asyncio
async def test_redis_lock_acquires_and_releases():
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value=True)
    lock.release = AsyncMock()
    redis_client = _redis_with_lock(lock)
    locks = RedisPractitionerLocks(redis_client, timeout=7.0, blocking_timeout=2.0)

    async with locks.hold(PRACTITIONER_ID):
        lock.release.assert_not_called()

    redis_client.lock.assert_called_once_with(
        f"scheduling:lock:practitioner:{PRACTITIONER_ID}",
        timeout=7.0,
        blocking_timeout=2.0,
    )
    lock.acquire.assert_awaited_once()
    lock.release.assert_awaited_once()


@pytest.mark.asyncio
async def test_redis_lock_busy_raises_store_exception():
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value=False)
    lock.release = AsyncMock()
    locks = RedisPractitionerLocks(_redis_with_lock(lock))

    with pytest.raises(StoreException) as exc_info:
        async with locks.hold(PRACTITIONER_ID):
            pytest.fail("Block must not run without the lock")

    assert exc_info.value.status_code == 503
    lock.release.assert_not_called()


@pytest.mark.asyncio
async def test_redis_lock_backend_down_raises_store_exception():
    lock = MagicMock()
    lock.acquire = AsyncMock(side_effect=RedisConnectionError("connection refused"))
    locks = RedisPractitionerLocks(_redis_with_lock(lock))

    with pytest.raises(StoreException):
        async with locks.hold(PRACTITIONER_ID):
            pass


@pytest.mark.asyncio
async def test_redis_lock_expired_lease_is_not_an_error():
    lock = MagicMock()
    lock.acquire = AsyncMock(return_value=True)
    lock.release = AsyncMock(side_effect=LockNotOwnedError("expired"))
    locks = RedisPractitionerLocks(_redis_with_lock(lock))

    async with locks.hold(PRACTITIONER_ID):
        pass

    lock.release.assert_awaited_once()
