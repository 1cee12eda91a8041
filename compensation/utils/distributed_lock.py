"""
Distributed lock.

Redis-backed lock (SET NX EX) with a process-local fallback when no Redis
client is available. Used as the batch run-lock.
"""

import asyncio
import threading
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loguru import logger

from redis.exceptions import RedisError

# Release only if the token still matches (lock not taken over after expiry)
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

# Process-local lock registry shared by all DistributedLock instances
_local_locks: dict[str, tuple[str, float]] = {}
_local_guard = threading.Lock()


class DistributedLock:
    """
    Distributed lock with Redis and local fallback.

    Example:
        lock = DistributedLock(redis_client=redis_client)
        async with lock.lock("daily_accrual", timeout=3600) as acquired:
            if not acquired:
                return
            ...
    """

    KEY_PREFIX = "lock:"

    def __init__(self, redis_client=None) -> None:
        """
        Initialize lock.

        Args:
            redis_client: redis.asyncio client, or None for a process-local lock
        """
        self.redis_client = redis_client

    async def _try_acquire(self, key: str, token: str, timeout: int) -> bool:
        if self.redis_client is not None:
            try:
                result = await self.redis_client.set(
                    self.KEY_PREFIX + key, token, nx=True, ex=timeout
                )
                return bool(result)
            except RedisError as e:
                logger.warning(
                    f"Redis lock unavailable for {key}, using local lock: {e}"
                )

        with _local_guard:
            now = time.monotonic()
            held = _local_locks.get(key)
            if held is not None and held[1] > now:
                return False
            _local_locks[key] = (token, now + timeout)
            return True

    async def _release(self, key: str, token: str) -> None:
        if self.redis_client is not None:
            try:
                await self.redis_client.eval(
                    _RELEASE_SCRIPT, 1, self.KEY_PREFIX + key, token
                )
            except RedisError as e:
                logger.warning(f"Failed to release Redis lock {key}: {e}")

        with _local_guard:
            held = _local_locks.get(key)
            if held is not None and held[0] == token:
                del _local_locks[key]

    @asynccontextmanager
    async def lock(
        self,
        key: str,
        timeout: int = 60,
        blocking: bool = False,
        blocking_timeout: float = 5.0,
    ) -> AsyncIterator[bool]:
        """
        Acquire lock for the duration of the context.

        Args:
            key: Lock name
            timeout: Lock expiry in seconds
            blocking: Wait for the lock instead of failing immediately
            blocking_timeout: Max seconds to wait when blocking

        Yields:
            True if the lock was acquired, False otherwise
        """
        token = uuid.uuid4().hex
        acquired = await self._try_acquire(key, token, timeout)

        if not acquired and blocking:
            deadline = time.monotonic() + blocking_timeout
            while not acquired and time.monotonic() < deadline:
                await asyncio.sleep(0.1)
                acquired = await self._try_acquire(key, token, timeout)

        if not acquired:
            logger.debug(f"Lock {key} is held by another process")

        try:
            yield acquired
        finally:
            if acquired:
                await self._release(key, token)
