"""Async Redis client factory.

Used for:
- read-through caching (``app.core.cache``)
- the access-token blacklist (logout)
- login lockout counters and rate limiting
"""

from typing import AsyncGenerator

import redis.asyncio as aioredis

from app.core.config import settings


def create_redis_client() -> aioredis.Redis:
    """A client bound to the caller's event loop; callers close it."""
    return aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
        socket_connect_timeout=settings.redis_connect_timeout_seconds,
    )


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    """FastAPI dependency: one client per request, closed on teardown."""
    client = create_redis_client()
    try:
        yield client
    finally:
        await client.aclose()
