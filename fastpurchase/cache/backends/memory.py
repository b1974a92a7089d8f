"""
Cache - in-memory backend.

LRU-ordered store (``OrderedDict``) with per-entry TTL, a background
sweeper for expired keys and prefix invalidation. Guarded by an
``asyncio.Lock`` for concurrent request handling.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import time
from collections import OrderedDict
from typing import Any, List, Optional

from ..core import CacheBackend, CacheEntry, CacheStats

logger = logging.getLogger("fastpurchase.cache.memory")


class MemoryBackend(CacheBackend):
    """
    In-memory cache backend.

    - O(1) get/set/delete with LRU promotion
    - Lazy expiry on read plus a periodic sweep
    - ``delete_prefix`` scans keys once per invalidation
    """

    __slots__ = (
        "_max_size",
        "_store",
        "_lock",
        "_stats",
        "_sweeper_task",
        "_sweep_interval",
        "_initialized",
    )

    def __init__(self, max_size: int = 10000, sweep_interval: float = 30.0):
        """
        Args:
            max_size: Maximum number of entries before LRU eviction
            sweep_interval: Seconds between TTL sweep cycles (0 disables)
        """
        self._max_size = max_size
        self._sweep_interval = sweep_interval
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()
        self._stats = CacheStats(max_size=max_size, backend="memory")
        self._sweeper_task: Optional[asyncio.Task] = None
        self._initialized = False

    @property
    def name(self) -> str:
        return "memory:lru"

    async def initialize(self) -> None:
        """Start the background TTL sweeper."""
        if self._initialized:
            return
        self._initialized = True
        if self._sweep_interval > 0:
            self._sweeper_task = asyncio.get_running_loop().create_task(self._ttl_sweeper())

    async def shutdown(self) -> None:
        """Stop sweeper and clear all data."""
        if self._sweeper_task and not self._sweeper_task.done():
            self._sweeper_task.cancel()
            try:
                await self._sweeper_task
            except asyncio.CancelledError:
                pass
        self._sweeper_task = None
        async with self._lock:
            self._store.clear()
            self._stats.size = 0
        self._initialized = False

    async def get(self, key: str) -> Optional[CacheEntry]:
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._stats.misses += 1
                return None
            if entry.is_expired:
                self._evict_key(key)
                self._stats.misses += 1
                return None
            entry.touch()
            self._stats.hits += 1
            self._store.move_to_end(key)
            return entry

    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        async with self._lock:
            if key in self._store:
                del self._store[key]
            while len(self._store) >= self._max_size:
                self._store.popitem(last=False)
                self._stats.evictions += 1

            expires_at = None
            if ttl is not None and ttl > 0:
                expires_at = time.monotonic() + ttl

            self._store[key] = CacheEntry(key=key, value=value, expires_at=expires_at)
            self._stats.sets += 1
            self._stats.size = len(self._store)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if key in self._store:
                self._evict_key(key)
                self._stats.deletes += 1
                return True
            return False

    async def delete_prefix(self, prefix: str) -> int:
        async with self._lock:
            doomed = [k for k in self._store if k.startswith(prefix)]
            for key in doomed:
                self._evict_key(key)
            self._stats.invalidations += len(doomed)
            return len(doomed)

    async def clear(self) -> int:
        async with self._lock:
            count = len(self._store)
            self._store.clear()
            self._stats.size = 0
            return count

    async def keys(self, pattern: str = "*") -> List[str]:
        async with self._lock:
            now = time.monotonic()
            live = [k for k, e in self._store.items() if e.expires_at is None or e.expires_at > now]
            if pattern == "*":
                return live
            return [k for k in live if fnmatch.fnmatch(k, pattern)]

    async def stats(self) -> CacheStats:
        self._stats.size = len(self._store)
        return self._stats

    # ── Internals ────────────────────────────────────────────────────

    def _evict_key(self, key: str) -> None:
        self._store.pop(key, None)
        self._stats.size = len(self._store)

    async def _ttl_sweeper(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            async with self._lock:
                expired = [k for k, e in self._store.items() if e.is_expired]
                for key in expired:
                    self._evict_key(key)
            if expired:
                logger.debug(f"TTL sweep evicted {len(expired)} entries")
