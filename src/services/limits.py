"""Per-tenant request rate limiting backed by Redis."""
from __future__ import annotations

import time

import redis.asyncio as redis

from src.core.config import settings
from src.core.exceptions import RateLimitError

_redis_client: redis.Redis | None = None


async def _get_client() -> redis.Redis:
    """Return a cached Redis client instance."""

    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(settings.REDIS_URI, decode_responses=True)
    return _redis_client


async def close_client() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
    _redis_client = None


async def check_rate_limit(tenant_id: str) -> None:
    """Enforce a fixed one-minute window of ``RATE_LIMIT_RPM`` requests per tenant."""

    client = await _get_client()
    minute_window = int(time.time() // 60)
    key = f"rl:{tenant_id}:{minute_window}"
    current = await client.incr(key)
    if current == 1:
        await client.expire(key, 60)
    if current > settings.RATE_LIMIT_RPM:
        raise RateLimitError("Rate limit exceeded")
