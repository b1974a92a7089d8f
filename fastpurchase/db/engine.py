"""
Database Engine - async connection manager over a backend adapter.

Provides:
- Database: async engine delegating to the SQLite (aiosqlite) adapter
- Serialized transactions: one connection, one open transaction at a time
- Fault wrapping: adapter errors surface as ``QueryFault``
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from ..faults import Fault, DatabaseConnectionFault, QueryFault
from .backends.base import DatabaseAdapter

logger = logging.getLogger("fastpurchase.db")


def _create_adapter(driver: str) -> DatabaseAdapter:
    """Factory - instantiate the correct backend adapter."""
    if driver == "sqlite":
        from .backends.sqlite import SQLiteAdapter
        return SQLiteAdapter()
    raise DatabaseConnectionFault(
        url=f"<{driver}>",
        reason=f"No adapter registered for driver: {driver}",
    )


class Database:
    """
    Async database engine.

    All statements use ``?`` placeholders. The engine owns a single
    adapter connection and an ``asyncio.Lock`` guarding it:

    - ``transaction()`` holds the lock for the whole unit of work, so two
      coroutines can never interleave statements inside one transaction.
    - Statements issued outside a transaction take the lock per statement,
      so they never observe or join another task's open transaction.

    The task that owns the open transaction is tracked through a
    ``ContextVar``; statements it issues skip the lock instead of
    deadlocking on it.

    Usage:
        db = Database("sqlite:///app.db")
        await db.connect()
        async with db.transaction():
            await db.execute("UPDATE products SET stock = stock - ? WHERE id = ?", [1, pid])
        await db.disconnect()
    """

    __slots__ = (
        "_url",
        "_driver",
        "_adapter",
        "_connected",
        "_lock",
        "_options",
        "_tx_owner",
        "_last_activity",
        "_connect_retries",
        "_connect_retry_delay",
    )

    def __init__(self, url: str = "sqlite:///fastpurchase.sqlite3", **options: Any):
        """
        Initialize database engine.

        Args:
            url: Database URL. Supported schemes:
                 - sqlite:///path/to/db.sqlite3
                 - sqlite:///:memory:
            **options: Driver-specific options passed to the backend adapter.
                connect_retries (int): Number of connection retries (default 3).
                connect_retry_delay (float): Seconds between retries (default 0.5).
                busy_timeout (float): Seconds a writer waits on a locked file.
        """
        self._url = url
        self._driver = self._detect_driver(url)
        self._adapter: DatabaseAdapter = _create_adapter(self._driver)
        self._connected = False
        self._lock = asyncio.Lock()
        self._connect_retries = int(options.pop("connect_retries", 3))
        self._connect_retry_delay = float(options.pop("connect_retry_delay", 0.5))
        self._options = options
        self._tx_owner: ContextVar[bool] = ContextVar(f"fastpurchase_tx_{id(self)}", default=False)
        self._last_activity: float = 0.0

    @staticmethod
    def _detect_driver(url: str) -> str:
        if url.startswith("sqlite:"):
            return "sqlite"
        scheme = url.split(":", 1)[0] if ":" in url else url
        raise DatabaseConnectionFault(url=url, reason=f"Unsupported database scheme: {scheme}")

    # ── Lifecycle ────────────────────────────────────────────────────

    async def connect(self) -> None:
        """
        Open the connection, retrying transient failures.

        Raises:
            DatabaseConnectionFault: After all retries are exhausted
        """
        if self._connected:
            return

        last_exc: Optional[BaseException] = None
        for attempt in range(1, self._connect_retries + 1):
            try:
                await self._adapter.connect(self._url, **self._options)
                self._connected = True
                self._last_activity = time.monotonic()
                return
            except Exception as exc:
                last_exc = exc
                logger.warning(
                    f"Database connect attempt {attempt}/{self._connect_retries} failed: {exc}"
                )
                if attempt < self._connect_retries:
                    await asyncio.sleep(self._connect_retry_delay)

        raise DatabaseConnectionFault(url=self._url, reason=str(last_exc)) from last_exc

    async def disconnect(self) -> None:
        if not self._connected:
            return
        await self._adapter.disconnect()
        self._connected = False

    async def ensure_connected(self) -> None:
        if not self._connected:
            await self.connect()

    # ── Transactions ─────────────────────────────────────────────────

    @asynccontextmanager
    async def transaction(self, *, immediate: bool = True) -> AsyncIterator["Database"]:
        """
        Run a block as one atomic unit.

        Commits when the block exits normally; rolls back and re-raises on
        any exception, cancellation included. ``immediate`` acquires the
        backend write lock at BEGIN rather than at the first write.
        """
        await self.ensure_connected()
        if self._tx_owner.get():
            raise QueryFault(
                model="<transaction>",
                operation="begin",
                reason="Nested transactions are not supported",
            )

        async with self._lock:
            token = self._tx_owner.set(True)
            try:
                await self._run("begin", "BEGIN", self._adapter.begin, immediate)
                try:
                    yield self
                except BaseException:
                    await self._adapter.rollback()
                    logger.debug("Transaction rolled back")
                    raise
                await self._run("commit", "COMMIT", self._adapter.commit)
            finally:
                self._tx_owner.reset(token)

    @property
    def in_transaction(self) -> bool:
        """True when the calling task owns the open transaction."""
        return self._tx_owner.get()

    @asynccontextmanager
    async def _statement_scope(self) -> AsyncIterator[None]:
        if self._tx_owner.get():
            yield
        else:
            async with self._lock:
                yield

    async def _run(self, operation: str, sql: str, func: Any, *args: Any) -> Any:
        try:
            self._last_activity = time.monotonic()
            return await func(*args)
        except Fault:
            raise
        except Exception as exc:
            if operation == "commit":
                # A failed COMMIT leaves SQLite inside the transaction
                await self._adapter.rollback()
            raise QueryFault(
                model="<raw>",
                operation=operation,
                reason=str(exc),
                metadata={"sql": sql[:200]},
            ) from exc

    # ── Statements ───────────────────────────────────────────────────

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        """
        Execute a statement.

        Returns:
            Backend cursor; ``rowcount`` reports affected rows

        Raises:
            QueryFault: When statement execution fails
        """
        await self.ensure_connected()
        async with self._statement_scope():
            return await self._run("execute", sql, self._adapter.execute, sql, params or [])

    async def execute_script(self, script: str) -> None:
        """Execute a multi-statement DDL script outside any transaction."""
        await self.ensure_connected()
        async with self._statement_scope():
            await self._run("execute_script", script, self._adapter.execute_script, script)

    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """
        Execute query and return all rows as dicts.

        Raises:
            QueryFault: When query execution fails
        """
        await self.ensure_connected()
        async with self._statement_scope():
            return await self._run("fetch_all", sql, self._adapter.fetch_all, sql, params or [])

    async def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute query and return first row as dict, or None."""
        await self.ensure_connected()
        async with self._statement_scope():
            return await self._run("fetch_one", sql, self._adapter.fetch_one, sql, params or [])

    async def fetch_val(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        """Execute query and return the first column of the first row."""
        await self.ensure_connected()
        async with self._statement_scope():
            return await self._run("fetch_val", sql, self._adapter.fetch_val, sql, params or [])

    async def table_exists(self, table_name: str) -> bool:
        await self.ensure_connected()
        async with self._statement_scope():
            return await self._adapter.table_exists(table_name)

    async def ping(self) -> bool:
        """Cheap liveness check used by the health endpoint."""
        try:
            return await self.fetch_val("SELECT 1") == 1
        except Fault as exc:
            logger.warning(f"Database ping failed: {exc}")
            return False

    # ── Properties ───────────────────────────────────────────────────

    @property
    def is_connected(self) -> bool:
        return self._connected and self._adapter.is_connected

    @property
    def url(self) -> str:
        return self._url

    @property
    def driver(self) -> str:
        return self._driver

    @property
    def dialect(self) -> str:
        return self._adapter.dialect
