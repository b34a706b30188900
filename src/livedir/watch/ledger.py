"""Ledger of last-known content fingerprints."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

import aiosqlite

from livedir.db import Database

logger = logging.getLogger(__name__)


class LedgerAccessError(Exception):
    """Raised when the ledger storage cannot be read or written."""

    def __init__(self, path: Path | None, reason: str):
        self.path = path
        self.reason = reason
        target = f" for {path}" if path is not None else ""
        super().__init__(f"Ledger access failed{target}: {reason}")


@dataclass(frozen=True)
class LedgerEntry:
    """A tracked path and the fingerprint of its last read content."""

    path: Path
    fingerprint: str


class ChangeLedger:
    """Maps tracked paths to the fingerprint of the content last read for them.

    This is the only writer of the ``ledger`` table. ``record_update`` reads
    and writes under one lock so two callers can never both see a missing
    entry and both report a change.
    """

    def __init__(self, db: Database):
        self.db = db
        self._lock = asyncio.Lock()

    async def lookup(self, path: Path) -> str | None:
        """Return the recorded fingerprint for a path, if any."""
        try:
            row = await self.db.fetchone(
                "SELECT fingerprint FROM ledger WHERE path = ?", (str(path),)
            )
        except aiosqlite.Error as e:
            raise LedgerAccessError(path, str(e)) from e
        return row["fingerprint"] if row else None

    async def record_initial(self, path: Path, fingerprint: str) -> None:
        """Record a baseline fingerprint, overwriting any existing entry."""
        try:
            await self.db.execute(
                "INSERT OR REPLACE INTO ledger (path, fingerprint) VALUES (?, ?)",
                (str(path), fingerprint),
            )
            await self.db.commit()
        except aiosqlite.Error as e:
            raise LedgerAccessError(path, str(e)) from e

    async def record_update(self, path: Path, fingerprint: str) -> bool:
        """Record a freshly read fingerprint.

        Returns:
            True if the path is new to the ledger or its fingerprint differs.
        """
        async with self._lock:
            previous = await self.lookup(path)
            if previous == fingerprint:
                return False

            try:
                await self.db.execute(
                    """
                    INSERT INTO ledger (path, fingerprint) VALUES (?, ?)
                    ON CONFLICT(path) DO UPDATE SET
                        fingerprint = excluded.fingerprint,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (str(path), fingerprint),
                )
                await self.db.commit()
            except aiosqlite.Error as e:
                raise LedgerAccessError(path, str(e)) from e

            if previous is None:
                logger.debug(f"Now tracking {path}")
            return True

    async def forget(self, path: Path) -> bool:
        """Drop the entry for a path. Returns True if there was one."""
        async with self._lock:
            try:
                cursor = await self.db.execute("DELETE FROM ledger WHERE path = ?", (str(path),))
                await self.db.commit()
            except aiosqlite.Error as e:
                raise LedgerAccessError(path, str(e)) from e
            return cursor.rowcount > 0

    async def clear(self) -> int:
        """Drop every entry. Returns the number of entries removed."""
        async with self._lock:
            try:
                cursor = await self.db.execute("DELETE FROM ledger")
                await self.db.commit()
            except aiosqlite.Error as e:
                raise LedgerAccessError(None, str(e)) from e
            return cursor.rowcount

    async def entries(self) -> list[LedgerEntry]:
        """List all entries ordered by path."""
        try:
            rows = await self.db.fetchall("SELECT path, fingerprint FROM ledger ORDER BY path")
        except aiosqlite.Error as e:
            raise LedgerAccessError(None, str(e)) from e
        return [LedgerEntry(path=Path(row["path"]), fingerprint=row["fingerprint"]) for row in rows]

    async def count(self) -> int:
        try:
            row = await self.db.fetchone("SELECT COUNT(*) AS n FROM ledger")
        except aiosqlite.Error as e:
            raise LedgerAccessError(None, str(e)) from e
        return row["n"] if row else 0
