"""
Cache - core types.

``CacheEntry`` is the stored unit; ``CacheStats`` aggregates counters for
diagnostics; ``CacheBackend`` is the contract backends implement.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(slots=True)
class CacheEntry:
    """Single cache entry with expiry metadata."""
    key: str
    value: Any
    created_at: float = field(default_factory=time.monotonic)
    expires_at: Optional[float] = None
    access_count: int = 0

    @property
    def is_expired(self) -> bool:
        """Check if entry has expired."""
        if self.expires_at is None:
            return False
        return time.monotonic() >= self.expires_at

    def touch(self) -> None:
        self.access_count += 1


@dataclass
class CacheStats:
    """Aggregate cache statistics for observability."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    invalidations: int = 0
    size: int = 0
    max_size: int = 0
    backend: str = "unknown"

    @property
    def hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits / total) * 100.0

    def to_dict(self) -> dict:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "invalidations": self.invalidations,
            "size": self.size,
            "max_size": self.max_size,
            "backend": self.backend,
            "hit_rate": round(self.hit_rate, 2),
        }


class CacheBackend(ABC):
    """Storage contract for cache backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    async def initialize(self) -> None:
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        ...

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        ...

    @abstractmethod
    async def delete_prefix(self, prefix: str) -> int:
        ...

    @abstractmethod
    async def clear(self) -> int:
        ...

    @abstractmethod
    async def keys(self, pattern: str = "*") -> List[str]:
        ...

    @abstractmethod
    async def stats(self) -> CacheStats:
        ...
