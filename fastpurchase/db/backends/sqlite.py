"""
DB Backend - SQLite adapter via aiosqlite.

The connection runs in autocommit mode (``isolation_level=None``) so the
engine decides where transactions begin; ``BEGIN IMMEDIATE`` takes the
database write lock up front, which is what makes read-check-decrement
sequences safe across processes sharing the file.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiosqlite

from .base import DatabaseAdapter

logger = logging.getLogger("fastpurchase.db.backends.sqlite")

__all__ = ["SQLiteAdapter"]


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite adapter using aiosqlite.

    Features:
    - WAL journal mode for concurrent readers on file databases
    - Foreign key enforcement
    - Busy timeout so competing writers wait instead of failing
    """

    def __init__(self):
        self._connection: Optional[aiosqlite.Connection] = None
        self._connected = False
        self._lock = asyncio.Lock()
        self._in_transaction = False

    async def connect(self, url: str, **options: Any) -> None:
        if self._connected:
            return
        async with self._lock:
            if self._connected:
                return
            db_path = self._parse_url(url)
            timeout = float(options.get("busy_timeout", 5.0))
            self._connection = await aiosqlite.connect(db_path, timeout=timeout, isolation_level=None)
            if db_path != ":memory:":
                await self._connection.execute("PRAGMA journal_mode=WAL")
            await self._connection.execute("PRAGMA foreign_keys=ON")
            self._connection.row_factory = aiosqlite.Row
            self._connected = True
            logger.info(f"SQLite connected: {db_path}")

    async def disconnect(self) -> None:
        if not self._connected:
            return
        async with self._lock:
            if self._connection:
                await self._connection.close()
                self._connection = None
            self._connected = False
            self._in_transaction = False
            logger.info("SQLite disconnected")

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        if not self._connected:
            raise RuntimeError("Not connected")
        cursor = await self._connection.execute(sql, params or [])
        if not self._in_transaction:
            await self._connection.commit()
        return cursor

    async def execute_script(self, script: str) -> None:
        if not self._connected:
            raise RuntimeError("Not connected")
        await self._connection.executescript(script)

    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        if not self._connected:
            raise RuntimeError("Not connected")
        cursor = await self._connection.execute(sql, params or [])
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        if not self._connected:
            raise RuntimeError("Not connected")
        cursor = await self._connection.execute(sql, params or [])
        row = await cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    async def fetch_val(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        if not self._connected:
            raise RuntimeError("Not connected")
        cursor = await self._connection.execute(sql, params or [])
        row = await cursor.fetchone()
        if row is None:
            return None
        return row[0]

    # ── Transactions ─────────────────────────────────────────────────

    async def begin(self, immediate: bool = False) -> None:
        await self._connection.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
        self._in_transaction = True

    async def commit(self) -> None:
        try:
            await self._connection.commit()
        finally:
            self._in_transaction = False

    async def rollback(self) -> None:
        try:
            await self._connection.rollback()
        finally:
            self._in_transaction = False

    # ── Introspection ────────────────────────────────────────────────

    async def table_exists(self, table_name: str) -> bool:
        row = await self.fetch_one(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            [table_name],
        )
        return row is not None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def dialect(self) -> str:
        return "sqlite"

    @staticmethod
    def _parse_url(url: str) -> str:
        """Extract file path from sqlite URL."""
        for prefix in ("sqlite:///", "sqlite://"):
            if url.startswith(prefix):
                path = url[len(prefix):]
                return path or ":memory:"
        return url.replace("sqlite:", "").lstrip("/") or ":memory:"
