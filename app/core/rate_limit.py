"""Sliding-window rate limiting backed by Redis sorted sets."""

import logging
import math
import time
from uuid import uuid4

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Request, status

from app.core.cache import CACHE_ERRORS
from app.core.config import settings
from app.core.redis_client import get_redis

logger = logging.getLogger(__name__)

RATE_LIMIT_PREFIX = "rate_limit"


class RateLimiter:
    """Route dependency allowing ``max_requests`` per client IP per window.

    Each request is a member of a sorted set scored by its arrival time;
    members older than the window are trimmed before counting. When Redis
    is unreachable the request is let through.
    """

    def __init__(self, name: str, window_seconds: int, max_requests: int, message: str):
        self.name = name
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.message = message

    async def __call__(
        self,
        request: Request,
        redis_client: aioredis.Redis = Depends(get_redis),
    ) -> None:
        client_ip = request.client.host if request.client else "unknown"
        key = f"{RATE_LIMIT_PREFIX}:{self.name}:{client_ip}"
        now = time.time()
        try:
            async with redis_client.pipeline(transaction=True) as pipe:
                pipe.zremrangebyscore(key, 0, now - self.window_seconds)
                pipe.zadd(key, {f"{now}:{uuid4().hex}": now})
                pipe.zcard(key)
                pipe.zrange(key, 0, 0, withscores=True)
                pipe.expire(key, self.window_seconds)
                _, _, count, oldest, _ = await pipe.execute()
        except CACHE_ERRORS as exc:
            logger.warning("Rate limiter unavailable, allowing request: %s", exc)
            return

        if count > self.max_requests:
            oldest_at = oldest[0][1] if oldest else now
            retry_after = max(math.ceil(oldest_at + self.window_seconds - now), 1)
            logger.warning(
                "Rate limit exceeded: ip=%s path=%s limiter=%s", client_ip, request.url.path, self.name
            )
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=self.message,
                headers={"Retry-After": str(retry_after)},
            )


general_limiter = RateLimiter(
    "general",
    settings.rate_limit_window_seconds,
    settings.rate_limit_max_requests,
    "Too many requests, please try again later",
)
search_limiter = RateLimiter(
    "search",
    settings.search_rate_limit_window_seconds,
    settings.search_rate_limit_max_requests,
    "Too many search requests, please try again later",
)
