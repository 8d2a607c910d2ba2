"""
Cache layer - TTL stores and key construction
"""

from qase_analytics.cache.keys import build_cache_key, filter_fingerprint, user_cache_patterns
from qase_analytics.cache.store import (
    CacheStore,
    InMemoryCacheStore,
    RedisCacheStore,
    get_cache_store,
    reset_cache_store,
)

__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "build_cache_key",
    "filter_fingerprint",
    "get_cache_store",
    "reset_cache_store",
    "user_cache_patterns",
]
