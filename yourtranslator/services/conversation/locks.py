"""Per-user mutual exclusion around the profile read-modify-write cycle.

Events for the same LINE user are processed one at a time; events for
different users never wait on each other. A Redis lock serializes across
service instances. Without Redis (or when Redis is unreachable) an
in-process asyncio.Lock per user is used instead.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog

from yourtranslator.core.exceptions import RedisConnectionError, UserLockTimeoutError
from yourtranslator.db.redis import RedisClient

logger = structlog.get_logger(__name__)


class UserLockManager:
    def __init__(
        self,
        redis: RedisClient | None = None,
        ttl_seconds: int = 60,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._redis = redis
        self._ttl = ttl_seconds
        self._timeout = timeout_seconds
        # Entries disappear once no coroutine holds or waits on the lock.
        self._local: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _local_lock(self, user_id: str) -> asyncio.Lock:
        lock = self._local.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._local[user_id] = lock
        return lock

    @asynccontextmanager
    async def acquire(self, user_id: str) -> AsyncIterator[None]:
        if self._redis is not None:
            try:
                rlock = await self._redis.acquire_lock(
                    f"yourtranslator:lock:user:{user_id}", self._ttl, self._timeout
                )
            except RedisConnectionError:
                logger.warning("user_lock_redis_unavailable_using_local", user_id=user_id)
            else:
                if rlock is None:
                    raise UserLockTimeoutError(f"lock timeout: {user_id}")
                try:
                    yield
                finally:
                    await self._redis.release_lock(rlock)
                return

        lock = self._local_lock(user_id)
        try:
            async with asyncio.timeout(self._timeout):
                await lock.acquire()
        except TimeoutError as exc:
            raise UserLockTimeoutError(f"lock timeout: {user_id}") from exc
        try:
            yield
        finally:
            lock.release()
