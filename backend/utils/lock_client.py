"""Lock client abstraction - Redis or in-memory fallback."""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
import logging

logger = logging.getLogger(__name__)


class LockTimeoutError(TimeoutError):
    """Raised when a named lock cannot be acquired within its timeout."""


class LockClient:
    """Named mutual exclusion - uses Redis if available, else per-process asyncio locks.

    The in-memory backend only serializes callers inside one process. Multi-instance
    deployments must configure Redis.
    """

    def __init__(self, redis_url: Optional[str] = None):
        self.backend = "memory"
        # name -> [lock, number of holders and waiters]
        self._memory_locks: dict[str, list] = {}

        if redis_url:
            try:
                import redis
                import redis.asyncio as redis_async
                redis.from_url(redis_url).ping()
                self.redis = redis_async.from_url(redis_url)
                self.backend = "redis"
                logger.info("Using Redis for locks")
            except Exception as e:
                logger.warning(f"Redis not available, using in-memory locks: {e}")
        else:
            logger.info("Using in-memory locks (Redis URL not provided)")

    @asynccontextmanager
    async def lock(self, name: str, timeout: float = 10) -> AsyncIterator[None]:
        """Hold the named lock for the duration of the block.

        Args:
            name: Lock name, e.g. ``settle_game:<game_id>``
            timeout: Seconds to wait for the lock (also the Redis lock TTL)

        Raises:
            LockTimeoutError: If the lock could not be acquired in time
        """
        if self.backend == "redis":
            async with self._redis_lock(name, timeout):
                yield
        else:
            async with self._memory_lock(name, timeout):
                yield

    @asynccontextmanager
    async def _redis_lock(self, name: str, timeout: float) -> AsyncIterator[None]:
        from redis.exceptions import LockError

        redis_lock = self.redis.lock(f"lock:{name}", timeout=timeout, blocking_timeout=timeout)
        acquired = await redis_lock.acquire()
        if not acquired:
            raise LockTimeoutError(f"Timed out acquiring lock {name} after {timeout}s")
        try:
            yield
        finally:
            try:
                await redis_lock.release()
            except LockError as e:
                # TTL expired while held; the next holder may already own it
                logger.warning(f"Lock {name} was lost before release: {e}")

    @asynccontextmanager
    async def _memory_lock(self, name: str, timeout: float) -> AsyncIterator[None]:
        entry = self._memory_locks.get(name)
        if entry is None:
            entry = [asyncio.Lock(), 0]
            self._memory_locks[name] = entry
        entry[1] += 1
        lock = entry[0]
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=timeout)
            except asyncio.TimeoutError as e:
                raise LockTimeoutError(f"Timed out acquiring lock {name} after {timeout}s") from e
            try:
                yield
            finally:
                lock.release()
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                self._memory_locks.pop(name, None)

    async def aclose(self) -> None:
        """Close the Redis connection pool, if any."""
        if self.backend == "redis":
            await self.redis.aclose()
            logger.info("Redis lock client closed")
