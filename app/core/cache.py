"""Read-through cache over Redis.

Every call into Redis is guarded: a connection or protocol failure is logged
and treated as a cache miss (reads) or a no-op (writes), so an outage only
costs latency while requests keep being served from the database.
"""

import hashlib
import json
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

import redis.asyncio as aioredis
from pydantic import TypeAdapter
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_KEY_LENGTH = 250
CACHE_ERRORS = (RedisError, OSError)

_ANY_ADAPTER = TypeAdapter(Any)


def to_jsonable(value: Any) -> Any:
    """Convert dataclasses, enums, UUIDs and datetimes into JSON-safe values."""
    return _ANY_ADAPTER.dump_python(value, mode="json")


def build_key(namespace: str, params: Optional[dict] = None) -> str:
    """Build a deterministic key from a namespace and request parameters.

    Parameters are serialised with sorted keys so two equivalent requests
    always hit the same entry. Oversized keys collapse to a digest.
    """
    if not params:
        return namespace
    encoded = json.dumps(params, sort_keys=True, default=str, separators=(",", ":"))
    key = f"{namespace}:{encoded}"
    if len(key) > MAX_KEY_LENGTH:
        digest = hashlib.sha256(encoded.encode("utf-8")).hexdigest()
        key = f"{namespace}:{digest}"
    return key


class CacheService:
    """Thin guarded wrapper around one ``redis.asyncio`` client."""

    def __init__(self, client: aioredis.Redis):
        self.client = client

    async def get_or_load(
        self,
        key: str,
        ttl: int,
        loader: Callable[[], Awaitable[T]],
        adapter: TypeAdapter,
    ) -> tuple[T, bool]:
        """Return ``(value, hit)``; on a miss, call ``loader`` and store its result.

        A loader returning None is not cached.
        """
        try:
            raw = await self.client.get(key)
        except CACHE_ERRORS as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            raw = None
        if raw is not None:
            try:
                return adapter.validate_json(raw), True
            except ValueError:
                logger.warning("Discarding stale cache entry %s", key)

        value = await loader()
        if value is None:
            return value, False
        try:
            await self.client.setex(key, ttl, adapter.dump_json(value))
        except CACHE_ERRORS as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)
        return value, False

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        try:
            return await self.client.delete(*keys)
        except CACHE_ERRORS as exc:
            logger.warning("Cache delete failed for %s: %s", keys, exc)
            return 0

    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern (``SCAN`` + ``DEL``)."""
        deleted = 0
        try:
            batch: list[str] = []
            async for key in self.client.scan_iter(match=pattern, count=500):
                batch.append(key)
                if len(batch) >= 500:
                    deleted += await self.client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.client.delete(*batch)
        except CACHE_ERRORS as exc:
            logger.warning("Cache pattern delete failed for %s: %s", pattern, exc)
        return deleted

    async def increment(self, key: str, ttl: int) -> Optional[int]:
        """Atomically bump a counter and (re)arm its expiry."""
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.expire(key, ttl)
                value, _ = await pipe.execute()
            return int(value)
        except CACHE_ERRORS as exc:
            logger.warning("Cache increment failed for %s: %s", key, exc)
            return None

    async def get_int(self, key: str) -> int:
        try:
            raw = await self.client.get(key)
        except CACHE_ERRORS as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return 0
        return int(raw) if raw else 0

    async def set_flag(self, key: str, ttl: int) -> None:
        try:
            await self.client.setex(key, ttl, "1")
        except CACHE_ERRORS as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)

    async def exists(self, key: str) -> bool:
        try:
            return await self.client.exists(key) == 1
        except CACHE_ERRORS as exc:
            logger.warning("Cache lookup failed for %s: %s", key, exc)
            return False

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except CACHE_ERRORS:
            return False
