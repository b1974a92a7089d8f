"""
Cache - CacheService: the API handlers and middleware talk to.

One instance per process, created by the server, started and stopped with
it, and handed to whoever needs it through the container. There is no
module-level cache.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .core import CacheBackend, CacheStats

logger = logging.getLogger("fastpurchase.cache")


class CacheService:
    """
    High-level cache service.

    Backend failures are logged and degrade to a miss; the cache is never
    allowed to fail a request.

    Usage::

        cache = CacheService(MemoryBackend(), default_ttl=300)
        await cache.initialize()
        await cache.set("/products?page=1", payload)
        await cache.invalidate("/products")
    """

    __slots__ = ("_backend", "_default_ttl", "_initialized")

    def __init__(self, backend: CacheBackend, default_ttl: float = 300):
        self._backend = backend
        self._default_ttl = default_ttl
        self._initialized = False

    # ── Lifecycle ────────────────────────────────────────────────────

    async def initialize(self) -> None:
        if self._initialized:
            return
        await self._backend.initialize()
        self._initialized = True
        logger.info(f"Cache service initialized (backend={self._backend.name}, ttl={self._default_ttl}s)")

    async def shutdown(self) -> None:
        if not self._initialized:
            return
        await self._backend.shutdown()
        self._initialized = False
        logger.info("Cache service shut down")

    # ── Operations ───────────────────────────────────────────────────

    async def get(self, key: str, default: Any = None) -> Any:
        """Cached value or ``default``. Never raises."""
        try:
            entry = await self._backend.get(key)
        except Exception as e:
            logger.warning(f"Cache GET failed for key '{key}': {e}")
            return default
        if entry is None:
            return default
        return entry.value

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        effective_ttl = ttl if ttl is not None else self._default_ttl
        try:
            await self._backend.set(key, value, ttl=effective_ttl)
        except Exception as e:
            logger.warning(f"Cache SET failed for key '{key}': {e}")

    async def delete(self, key: str) -> bool:
        return await self._backend.delete(key)

    async def invalidate(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``."""
        removed = await self._backend.delete_prefix(prefix)
        if removed:
            logger.debug(f"Invalidated {removed} cache entries under '{prefix}'")
        return removed

    async def clear(self) -> int:
        return await self._backend.clear()

    async def stats(self) -> CacheStats:
        return await self._backend.stats()

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    @property
    def backend(self) -> CacheBackend:
        return self._backend
