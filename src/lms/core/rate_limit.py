"""
Rate Limiting

Sliding-window limits for privileged mutations (status changes and
qualification decisions), keyed by the acting account. Uses the shared
Redis client when connected and an in-process window otherwise.
"""

import logging
import time
from uuid import UUID

from fastapi import HTTPException, status
from redis.asyncio import Redis
from redis.exceptions import RedisError

from lms.core import redis as redis_core
from lms.core.config import settings

logger = logging.getLogger(__name__)

# key -> request timestamps inside the current window
_memory_store: dict[str, list[float]] = {}


class RateLimitExceeded(HTTPException):
    """Raised when an actor exceeds the allowed number of requests."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": (
                    f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds."
                ),
                "retry_after_seconds": window_seconds,
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _check_redis(client: Redis, key: str, limit: int, window_seconds: int) -> bool:
    """Sliding window over a sorted set of request timestamps."""
    now = time.time()
    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, now - window_seconds)
    pipe.zcard(key)
    pipe.zadd(key, {str(now): now})
    pipe.expire(key, window_seconds)
    results = await pipe.execute()
    return results[1] < limit


def _check_memory(key: str, limit: int, window_seconds: int) -> bool:
    """In-process fallback. Limits are per worker process."""
    now = time.time()
    window = [ts for ts in _memory_store.get(key, []) if ts > now - window_seconds]
    if len(window) >= limit:
        _memory_store[key] = window
        return False
    window.append(now)
    _memory_store[key] = window
    return True


async def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """
    Check whether a request identified by ``key`` is within its limit.

    Returns:
        True if the request is allowed, False if the limit is exceeded
    """
    client = redis_core.get_redis()
    if client is not None:
        try:
            return await _check_redis(client, key, limit, window_seconds)
        except RedisError as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_memory(key, limit, window_seconds)


async def enforce_actor_rate_limit(
    actor_id: UUID,
    action: str,
    limit: int | None = None,
    window_seconds: int | None = None,
) -> None:
    """
    Apply the per-actor limit for a privileged action.

    Raises:
        RateLimitExceeded: When the actor is over the limit (HTTP 429)
    """
    limit = limit or settings.status_change_rate_limit
    window_seconds = window_seconds or settings.status_change_rate_window_seconds
    key = f"rate_limit:{action}:{actor_id}"

    if not await check_rate_limit(key, limit, window_seconds):
        logger.warning(f"Rate limit exceeded for {action} by {actor_id}: {limit}/{window_seconds}s")
        raise RateLimitExceeded(limit, window_seconds)


__all__ = [
    "RateLimitExceeded",
    "check_rate_limit",
    "enforce_actor_rate_limit",
]
