"""
Redis Connection

Shared async Redis client, initialized during application startup. Redis is
optional: callers fall back gracefully when it is not available.
"""

from redis.asyncio import Redis, from_url

from lms.core.config import settings

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """Connect to Redis and verify the connection."""
    global redis_client
    redis_client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await redis_client.ping()
    return redis_client


def get_redis() -> Redis | None:
    """Return the shared client, or None if Redis was never connected."""
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
