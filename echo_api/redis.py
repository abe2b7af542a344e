"""Redis connection pool (rate limit buckets only)."""

import logging
from collections.abc import AsyncGenerator

import redis.asyncio as aioredis

from echo_api.config import settings

logger = logging.getLogger(__name__)

redis_pool = aioredis.ConnectionPool.from_url(settings.redis_url)


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    client = aioredis.Redis(connection_pool=redis_pool)
    try:
        yield client
    finally:
        await client.aclose()


async def check_redis_connection() -> bool:
    client = aioredis.Redis(connection_pool=redis_pool)
    try:
        await client.ping()
    except aioredis.RedisError as e:
        logger.error("Redis connection failed: %s", e)
        return False
    finally:
        await client.aclose()
    logger.info("Redis connected")
    return True
