"""Per-IP token bucket rate limiting for the auth endpoints, backed by Redis."""

import logging
import time
from collections.abc import Awaitable, Callable

import redis.asyncio as aioredis
from fastapi import Depends, Request, Response

from echo_api.config import settings
from echo_api.errors import RateLimited
from echo_api.redis import get_redis

logger = logging.getLogger(__name__)

# Lua script for atomic token bucket check-and-consume
_TOKEN_BUCKET_SCRIPT = """
local key = KEYS[1]
local capacity = tonumber(ARGV[1])
local refill_rate = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local bucket = redis.call('HMGET', key, 'tokens', 'last_refill')
local tokens = tonumber(bucket[1])
local last_refill = tonumber(bucket[2])

if tokens == nil then
    tokens = capacity
    last_refill = now
end

local elapsed = now - last_refill
local new_tokens = math.min(capacity, tokens + elapsed * (refill_rate / 60.0))

if new_tokens >= 1 then
    new_tokens = new_tokens - 1
    redis.call('HMSET', key, 'tokens', new_tokens, 'last_refill', now)
    redis.call('EXPIRE', key, 120)
    return {1, math.floor(new_tokens), 0}
else
    local retry_after = math.ceil((1 - new_tokens) * 60 / refill_rate)
    redis.call('HMSET', key, 'tokens', new_tokens, 'last_refill', now)
    redis.call('EXPIRE', key, 120)
    return {0, 0, retry_after}
end
"""


def _get_rate_config(category: str) -> tuple[int, int]:
    """Return (capacity, refill_per_min) for an endpoint category."""
    return {
        "register": (
            settings.rate_limit_register_capacity,
            settings.rate_limit_register_refill_per_min,
        ),
        "login": (
            settings.rate_limit_login_capacity,
            settings.rate_limit_login_refill_per_min,
        ),
        "resend": (
            settings.rate_limit_resend_capacity,
            settings.rate_limit_resend_refill_per_min,
        ),
    }[category]


def _get_client_ip(request: Request) -> str:
    """Extract client IP, respecting X-Forwarded-For for reverse proxies."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the chain is the original client
        return forwarded_for.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def rate_limit(category: str) -> Callable[..., Awaitable[None]]:
    """Build a dependency enforcing the bucket for ``category``."""
    _get_rate_config(category)  # unknown categories fail at import

    async def check_rate_limit(
        request: Request,
        response: Response,
        redis: aioredis.Redis = Depends(get_redis),
    ) -> None:
        if not settings.rate_limit_enabled:
            return

        capacity, refill_rate = _get_rate_config(category)
        client_ip = _get_client_ip(request)
        bucket_key = f"ratelimit:ip:{client_ip}:{category}"

        result = await redis.eval(
            _TOKEN_BUCKET_SCRIPT, 1, bucket_key, capacity, refill_rate, time.time()
        )
        allowed, remaining, retry_after = int(result[0]), int(result[1]), int(result[2])

        response.headers["X-RateLimit-Limit"] = str(capacity)
        response.headers["X-RateLimit-Remaining"] = str(remaining)

        if not allowed:
            logger.warning("Rate limit hit: %s from %s", category, client_ip)
            raise RateLimited(headers={"Retry-After": str(retry_after)})

    return check_rate_limit
