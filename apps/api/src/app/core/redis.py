"""
Redis Configuration

Shared async Redis client. Redis backs the admin rate limiter; the API keeps
working without it (the limiter falls back to process memory).
"""

import logging

from redis.asyncio import Redis, from_url

from app.core.config import settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """
    Connect to Redis and verify the connection. Called from the lifespan.

    Raises:
        redis.exceptions.ConnectionError: If Redis is unreachable
    """
    global redis_client
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    redis_client = client
    logger.info("Redis client initialized")
    return redis_client


def get_redis() -> Redis | None:
    """The shared client, or None when Redis was not reachable at startup."""
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
