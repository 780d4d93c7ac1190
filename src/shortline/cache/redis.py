"""Redis cache implementation for shortline.

Provides the two cache-aside primitives every store is built on:
- get_or_populate(): read the cache, fall back to a loader on miss, store the result
- invalidate(): drop the set of keys a mutation made stale

The cache is an optimisation only. Any Redis failure is logged and degrades
to a miss (reads) or a no-op (writes and invalidations); it never reaches
the caller.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar, cast

import orjson
import redis.asyncio as redis
from redis.exceptions import RedisError

from shortline.config import settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Errors that mean "cache unavailable", never "operation failed"
CACHE_ERRORS = (RedisError, OSError)

# Module-level connection pool
_redis_client: Redis | None = None


async def get_redis() -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            decode_responses=False,  # Blob bytes are stored raw
            socket_timeout=settings.redis_socket_timeout,
            socket_connect_timeout=settings.redis_socket_timeout,
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


class RedisCache:
    """Cache-aside operations over a shared Redis client.

    JSON values are encoded with orjson; blob bytes are stored as-is.
    """

    def __init__(self, client: Redis, ttl: int | None = None):
        self.client = client
        self.ttl = ttl if ttl is not None else settings.cache_entity_ttl

    # -------------------------------------------------------------------------
    # Raw operations (failures degrade)
    # -------------------------------------------------------------------------

    async def get_bytes(self, key: str) -> bytes | None:
        """Get raw bytes, or None on miss or cache failure."""
        try:
            value = await self.client.get(key)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if value is None:
            logger.debug(f"Cache miss for {key}")
            return None
        logger.debug(f"Cache hit for {key}")
        return cast(bytes, value)

    async def set_bytes(self, key: str, value: bytes, ttl: int | None = None) -> None:
        """Store raw bytes with an expiry window."""
        try:
            await self.client.setex(key, ttl or self.ttl, value)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    async def get_json(self, key: str) -> Any | None:
        """Get a JSON value, or None on miss, corrupt entry or cache failure."""
        raw = await self.get_bytes(key)
        if raw is None:
            return None
        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            await self.invalidate(key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store a JSON-serialisable value."""
        await self.set_bytes(key, orjson.dumps(value), ttl)

    # -------------------------------------------------------------------------
    # Cache-aside primitives
    # -------------------------------------------------------------------------

    async def get_or_populate(
        self,
        key: str,
        loader: Callable[[], Awaitable[T | None]],
        ttl: int | None = None,
    ) -> T | None:
        """Read-through: return the cached value or load, cache and return it.

        The loader reads the authoritative store. A None result is not cached
        so that absence is always re-checked against the store.
        """
        cached = await self.get_json(key)
        if cached is not None:
            return cast(T, cached)

        value = await loader()
        if value is not None:
            await self.set_json(key, value, ttl)
        return value

    async def invalidate(self, *keys: str) -> None:
        """Delete every given key; called after the authoritative write."""
        if not keys:
            return
        try:
            await self.client.delete(*keys)
        except CACHE_ERRORS as e:
            logger.warning(f"Cache invalidation failed for {len(keys)} keys: {e}")
            return
        logger.debug(f"Invalidated {', '.join(keys)}")

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            return bool(await cast(Awaitable[bool], self.client.ping()))
        except CACHE_ERRORS:
            return False
