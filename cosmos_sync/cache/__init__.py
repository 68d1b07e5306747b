"""Cache-aside store backends."""

from ..config import CacheConfig
from .base import CacheStore, normalise_ttl
from .memory import MemoryCache
from .redis_cache import RedisCache


def build_cache(config: CacheConfig) -> CacheStore:
    if config.backend == "redis":
        return RedisCache.from_url(config.url, socket_timeout=config.socket_timeout)
    return MemoryCache()


__all__ = ["CacheStore", "MemoryCache", "RedisCache", "build_cache", "normalise_ttl"]
