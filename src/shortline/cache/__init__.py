"""Cache layer for shortline.

Provides Redis caching with the cache-aside pattern:
- Namespaced keys built in one place (CacheKeys)
- Read-through population on miss, explicit invalidation after writes
- TTL-based expiration as a backstop
- Silent degradation to the authoritative store when Redis is unavailable
"""

from shortline.cache.keys import CacheKeys
from shortline.cache.redis import RedisCache, close_redis, get_redis

__all__ = [
    "CacheKeys",
    "RedisCache",
    "get_redis",
    "close_redis",
]
