"""Redis connection pool and in-flight submission guards.

Mutating actions that hit the webhook dispatcher carry no idempotency key, so
a second submission of the same action while the first is still in flight is
refused here instead of being sent twice.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis
from redis.exceptions import LockError

from filali_crm.core.config import settings
from filali_crm.core.logging import get_logger
from filali_crm.crm.errors import SubmissionInProgressError

logger = get_logger(__name__)

LOCK_PREFIX = "submission_lock"


async def create_redis_pool() -> redis.Redis:
    """Create Redis connection pool.

    Usage in lifespan:
        app.state.redis = await create_redis_pool()
        yield
        await app.state.redis.aclose()

    Returns:
        Redis connection pool configured with settings.
    """
    return redis.Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        max_connections=20,
    )


async def check_redis_health(pool: redis.Redis) -> bool:
    """Check if Redis is responding.

    Args:
        pool: Redis connection pool to check.

    Returns:
        True if Redis responds to ping, False otherwise.
    """
    try:
        await pool.ping()
        return True
    except Exception as e:
        logger.exception("redis_health_check_failed", error=str(e))
        return False


@asynccontextmanager
async def submission_lock(
    pool: redis.Redis,
    action: str,
    key: str,
    ttl_seconds: int | None = None,
) -> AsyncIterator[None]:
    """Hold an exclusive lock for one mutating action while it runs.

    Args:
        pool: Redis connection pool.
        action: Action family, e.g. "mass_email" or "create_event".
        key: Stable fingerprint of the submitted payload.
        ttl_seconds: Lock expiry. Defaults to settings.submission_lock_ttl_seconds.

    Raises:
        SubmissionInProgressError: If the same action is already in flight.
    """
    lock_key = f"{LOCK_PREFIX}:{action}:{key}"
    ttl = ttl_seconds or settings.submission_lock_ttl_seconds

    lock = pool.lock(lock_key, timeout=ttl, blocking=False)
    if not await lock.acquire():
        logger.warning("submission_rejected_in_flight", action=action, key=key)
        raise SubmissionInProgressError(action)

    try:
        yield
    finally:
        try:
            await lock.release()
        except LockError:
            # Expired during the call; the key may now belong to another request.
            logger.warning("submission_lock_expired", action=action, key=key)
