"""
Redis Configuration

Async Redis client used for short-lived distributed locks.
"""

import logging

from redis.asyncio import Redis, from_url

from app.core.config import settings

logger = logging.getLogger(__name__)

# Redis client instance
redis_client: Redis | None = None


async def init_redis() -> Redis:
    """
    Initialize Redis connection.

    Call this on application startup.
    """
    global redis_client
    redis_client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    # Test connection
    await redis_client.ping()
    return redis_client


async def get_redis() -> Redis | None:
    """
    Get Redis client instance.

    Returns None if Redis is not available (optional dependency).
    """
    return redis_client


def is_redis_available() -> bool:
    """Check if Redis client is initialized and available."""
    return redis_client is not None


async def acquire_lock(key: str, ttl_seconds: int) -> bool | None:
    """
    Try to take a lock with SET NX EX.

    Returns:
        True if acquired, False if another holder has it,
        None if Redis is not available.
    """
    if redis_client is None:
        return None
    acquired = await redis_client.set(key, "1", nx=True, ex=ttl_seconds)
    return bool(acquired)


async def release_lock(key: str) -> None:
    """Release a lock taken with acquire_lock."""
    if redis_client is None:
        return
    await redis_client.delete(key)


async def close_redis() -> None:
    """Close Redis connection."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
