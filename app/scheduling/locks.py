"""Per-practitioner scheduling locks."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from redis.asyncio import Redis
from redis.exceptions import LockNotOwnedError, RedisError

from app.core.exceptions import StoreException


class InMemoryPractitionerLocks:
    """Process-local locks, one ``asyncio.Lock`` per practitioner."""

    def __init__(self) -> None:
        """Initialize with an empty lock registry."""
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._holders: dict[UUID, int] = {}

    @asynccontextmanager
    async def hold(self, practitioner_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(practitioner_id, asyncio.Lock())
        # Counts the holder and every waiter
        self._holders[practitioner_id] = self._holders.get(practitioner_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[practitioner_id] -= 1
            if not self._holders[practitioner_id]:
                del self._holders[practitioner_id]
                del self._locks[practitioner_id]


class RedisPractitionerLocks:
    """Distributed locks shared by every API worker through Redis."""

    KEY_PREFIX = "scheduling:lock:practitioner"

    def __init__(
        self,
        redis_client: Redis,
        timeout: float = 10.0,
        blocking_timeout: float = 5.0,
    ):
        """
        Initialize with an asyncio Redis client.

        Args:
            redis_client: Redis client
            timeout: Lease of a held lock in seconds
            blocking_timeout: How long to wait for a busy lock in seconds
        """
        self.redis = redis_client
        self.timeout = timeout
        self.blocking_timeout = blocking_timeout

    def _key(self, practitioner_id: UUID) -> str:
        return f"{self.KEY_PREFIX}:{practitioner_id}"

    @asynccontextmanager
    async def hold(self, practitioner_id: UUID) -> AsyncIterator[None]:
        lock = self.redis.lock(
            self._key(practitioner_id),
            timeout=self.timeout,
            blocking_timeout=self.blocking_timeout,
        )
        try:
            acquired = await lock.acquire()
        except RedisError as e:
            raise StoreException(f"Scheduling lock unavailable: {e!s}") from e

        if not acquired:
            raise StoreException("Practitioner calendar is busy with another booking, please retry")

        try:
            yield
        finally:
            try:
                await lock.release()
            except LockNotOwnedError:
                # Lease expired before release, the key is already gone
                pass
