"""TTL cache with stale-on-error fallback."""

from adaptive_feed.cache.fallback import fetch_with_fallback
from adaptive_feed.cache.service import CacheService, make_cache_key
from adaptive_feed.cache.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "CacheService",
    "make_cache_key",
    "fetch_with_fallback",
    "KeyValueStorage",
    "MemoryStorage",
    "JsonFileStorage",
]
