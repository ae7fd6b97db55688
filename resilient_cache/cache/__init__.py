"""Resilient caching layer for API computations.

This package provides Redis-backed caching with:
- Connection pooling, health tracking and reconnects (RedisCache)
- In-process fallback store (MemoryCache)
- Backend-transparent cache operations (CacheManager)
- Cache key generation (CacheKeyGenerator, build_key)
- TTL tiers (CacheTTL)
- Memoization of async functions (wrap, cached)
"""

from resilient_cache.cache.connection import CommandResult, RedisCache
from resilient_cache.cache.health import BackendHealth, BackendState
from resilient_cache.cache.keys import CacheKeyGenerator, build_key, key_generator
from resilient_cache.cache.manager import (
    MISS,
    CacheManager,
    close_cache_manager,
    get_cache_manager,
    set_cache_manager,
)
from resilient_cache.cache.memory import CacheEntry, MemoryCache
from resilient_cache.cache.ttl import CacheTTL
from resilient_cache.cache.wrapper import cached, wrap

__all__ = [
    # Backing store
    "RedisCache",
    "CommandResult",
    "BackendHealth",
    "BackendState",
    # Local store
    "MemoryCache",
    "CacheEntry",
    # Façade
    "CacheManager",
    "MISS",
    "get_cache_manager",
    "set_cache_manager",
    "close_cache_manager",
    # Key generation
    "CacheKeyGenerator",
    "build_key",
    "key_generator",
    # TTL tiers
    "CacheTTL",
    # Memoization
    "wrap",
    "cached",
]
