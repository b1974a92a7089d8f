"""
DB Backend - Base Adapter Interface.

All database backends implement this interface. The ``Database`` engine
delegates to the adapter selected from the connection URL and layers
locking, fault wrapping and transaction scoping on top.

Adapters use ``?`` placeholders; an adapter for a backend with another
param style translates them itself.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger("fastpurchase.db.backends")

__all__ = ["DatabaseAdapter"]


class DatabaseAdapter(ABC):
    """Abstract backend adapter."""

    @abstractmethod
    async def connect(self, url: str, **options: Any) -> None:
        """Open the underlying connection."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the underlying connection."""

    @abstractmethod
    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Execute a statement. Returns a cursor exposing ``rowcount``."""

    @abstractmethod
    async def execute_script(self, script: str) -> None:
        """Execute a multi-statement DDL script."""

    @abstractmethod
    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    async def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def fetch_val(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        ...

    # ── Transactions ─────────────────────────────────────────────────

    @abstractmethod
    async def begin(self, immediate: bool = False) -> None:
        ...

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...

    # ── Introspection ────────────────────────────────────────────────

    @abstractmethod
    async def table_exists(self, table_name: str) -> bool:
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @property
    @abstractmethod
    def dialect(self) -> str:
        ...
