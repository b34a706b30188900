"""Database connection and schema management."""

import logging
from pathlib import Path
from typing import Any

import aiosqlite

logger = logging.getLogger(__name__)

MEMORY = ":memory:"

SCHEMA = """
CREATE TABLE IF NOT EXISTS ledger (
    path TEXT PRIMARY KEY,
    fingerprint TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class Database:
    """SQLite database wrapper with async support.

    Pass ``":memory:"`` (the default) for a process-local database that
    disappears when the connection is closed.
    """

    def __init__(self, db_path: str | Path = MEMORY):
        self.db_path = db_path if db_path == MEMORY else Path(db_path)
        self._connection: aiosqlite.Connection | None = None

    @property
    def in_memory(self) -> bool:
        return self.db_path == MEMORY

    async def connect(self) -> None:
        """Open database connection and create the schema."""
        if not self.in_memory:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row

        if not self.in_memory:
            await self._connection.execute("PRAGMA journal_mode = WAL")
        await self._connection.execute("PRAGMA synchronous = NORMAL")
        await self._connection.execute("PRAGMA busy_timeout = 5000")

        await self._ensure_schema()
        logger.info(f"Connected to database: {self.db_path}")

    async def disconnect(self) -> None:
        """Close the connection. An in-memory ledger is gone afterwards."""
        if self._connection is None:
            return
        connection, self._connection = self._connection, None
        await connection.close()
        logger.info(f"Closed database: {self.db_path}")

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError(f"Database {self.db_path} is not connected")
        return self._connection

    async def execute(self, query: str, params: tuple[Any, ...] = ()) -> aiosqlite.Cursor:
        """Run one statement and return its cursor (for rowcount)."""
        return await self.connection.execute(query, params)

    async def fetchone(self, query: str, params: tuple[Any, ...] = ()) -> aiosqlite.Row | None:
        async with self.connection.execute(query, params) as cursor:
            return await cursor.fetchone()

    async def fetchall(self, query: str, params: tuple[Any, ...] = ()) -> list[aiosqlite.Row]:
        async with self.connection.execute(query, params) as cursor:
            return list(await cursor.fetchall())

    async def commit(self) -> None:
        """Commit the current transaction."""
        await self.connection.commit()

    async def _ensure_schema(self) -> None:
        try:
            await self.connection.executescript(SCHEMA)
            await self.commit()
        except Exception as e:
            logger.error(f"Failed to create schema in {self.db_path}: {type(e).__name__}: {e}")
            raise
