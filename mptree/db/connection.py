"""Async SQLite connection wrapper with WAL mode and serialised transactions."""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiosqlite

from mptree.errors import StoreError

logger = logging.getLogger(__name__)


class Database:
    """Thin async wrapper around aiosqlite.

    Every statement runs inside a transaction. ``transaction()`` holds the
    connection's write lock for the duration of a multi-statement operation;
    nested calls from the same task join the outer transaction.
    """

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._conn = connection
        self._lock = asyncio.Lock()
        self._owner: asyncio.Task | None = None

    @classmethod
    async def connect(cls, path: str = "mptree.db", busy_timeout: int = 5000) -> "Database":
        """Create a connection with WAL mode and a busy timeout in milliseconds."""
        try:
            conn = await aiosqlite.connect(path, isolation_level=None)
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute(f"PRAGMA busy_timeout={int(busy_timeout)}")
        except aiosqlite.Error as e:
            raise StoreError(f"Could not open database {path!r}: {e}") from e
        return cls(conn)

    @property
    def in_transaction(self) -> bool:
        """True when the calling task currently owns the open transaction."""
        return self._owner is not None and self._owner is asyncio.current_task()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["Database"]:
        """Run the enclosed statements atomically.

        Commits on normal exit, rolls back on any exception. Backend errors
        are re-raised as StoreError.
        """
        if self.in_transaction:
            yield self
            return

        async with self._lock:
            self._owner = asyncio.current_task()
            try:
                await self._begin()
                try:
                    yield self
                except BaseException:
                    logger.warning("Rolling back transaction")
                    await self._conn.rollback()
                    raise
                try:
                    await self._conn.commit()
                except aiosqlite.Error as e:
                    await self._conn.rollback()
                    raise StoreError.wrap(e) from e
            except aiosqlite.Error as e:
                raise StoreError.wrap(e) from e
            finally:
                self._owner = None

    async def _begin(self) -> None:
        # Write lock is taken before the first read of the transaction.
        await self._conn.execute("BEGIN IMMEDIATE")

    async def execute(self, sql: str, params: tuple | None = None) -> aiosqlite.Cursor:
        """Execute a single SQL statement."""
        async with self.transaction():
            return await self._conn.execute(sql, params or ())

    async def executescript(self, script: str) -> None:
        """Execute a multi-statement script (DDL). Commits on its own."""
        async with self._lock:
            try:
                await self._conn.executescript(script)
            except aiosqlite.Error as e:
                raise StoreError.wrap(e) from e

    async def fetchone(self, sql: str, params: tuple | None = None) -> aiosqlite.Row | None:
        """Execute and return a single row."""
        async with self.transaction():
            cursor = await self._conn.execute(sql, params or ())
            return await cursor.fetchone()

    async def fetchall(self, sql: str, params: tuple | None = None) -> list[aiosqlite.Row]:
        """Execute and return all rows."""
        async with self.transaction():
            cursor = await self._conn.execute(sql, params or ())
            return list(await cursor.fetchall())

    async def close(self) -> None:
        """Close the database connection."""
        await self._conn.close()

