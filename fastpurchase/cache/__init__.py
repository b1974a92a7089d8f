"""
Cache - process-wide response cache.

Components:
- CacheService: get / set / invalidate(prefix), bound to server lifecycle
- MemoryBackend: LRU + TTL in-memory store
- ResponseCacheMiddleware: serves cached GET responses with x-cache headers
"""

from .core import CacheBackend, CacheEntry, CacheStats
from .backends import MemoryBackend
from .service import CacheService
from .middleware import ResponseCacheMiddleware

__all__ = [
    "CacheBackend",
    "CacheEntry",
    "CacheStats",
    "MemoryBackend",
    "CacheService",
    "ResponseCacheMiddleware",
]
