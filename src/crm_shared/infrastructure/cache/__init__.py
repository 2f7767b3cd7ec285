"""
Shared Cache Infrastructure
Redis-based caching for optimization only
"""
from crm_shared.infrastructure.cache.cache_protocol import ICacheProvider
from crm_shared.infrastructure.cache.redis_client import RedisClient

__all__ = [
    "ICacheProvider",
    "RedisClient",
]
