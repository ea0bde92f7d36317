"""Redis async client used for distributed per-user locks.

Redis is optional: when ``settings.redis_url`` is empty no client is created
and callers fall back to in-process coordination.
"""

from __future__ import annotations

import structlog
from redis.asyncio import Redis
from redis.asyncio import from_url as redis_from_url
from redis.asyncio.lock import Lock
from redis.exceptions import LockError, RedisError

from yourtranslator.core.config import settings
from yourtranslator.core.exceptions import RedisConnectionError

logger = structlog.get_logger(__name__)

_client: Redis | None = (
    redis_from_url(settings.redis_url, decode_responses=True, encoding="utf-8")
    if settings.redis_url
    else None
)


# ---------------------------------------------------------------------------
# Accessors
# ---------------------------------------------------------------------------

def get_redis() -> "RedisClient | None":
    """Return the singleton RedisClient wrapper, or None when not configured."""
    if _client is None:
        return None
    return RedisClient(_client)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

async def close_redis() -> None:
    """Gracefully close the Redis connection pool."""
    if _client is None:
        return
    logger.info("redis_shutdown")
    await _client.aclose()


# ---------------------------------------------------------------------------
# Helper wrapper
# ---------------------------------------------------------------------------

class RedisClient:
    """Thin wrapper over redis.asyncio.Redis with lock helpers.

    Connection errors on acquire are re-raised as RedisConnectionError so
    callers can fall back to local locks. A failed release is only logged.
    """

    def __init__(self, client: Redis) -> None:
        self._r = client

    async def acquire_lock(
        self, key: str, ttl_seconds: int, blocking_timeout: float
    ) -> Lock | None:
        """Acquire a distributed lock. Returns None if not acquired in time."""
        lock = self._r.lock(key, timeout=ttl_seconds)
        try:
            acquired = await lock.acquire(
                blocking=True, blocking_timeout=blocking_timeout
            )
        except RedisError as e:
            logger.error("redis_lock_acquire_failed", key=key, error=str(e))
            raise RedisConnectionError(f"Redis lock acquire failed: {e}") from e
        return lock if acquired else None

    async def release_lock(self, lock: Lock) -> None:
        """Release a lock previously returned by acquire_lock."""
        try:
            await lock.release()
        except (LockError, RedisError) as e:
            # Expired by TTL or connection dropped; the key clears itself.
            logger.warning("redis_lock_release_failed", error=str(e))
