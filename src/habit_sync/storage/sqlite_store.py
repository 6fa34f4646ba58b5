"""SQLite local store for persistent habit records."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from habit_sync.storage.base import LocalStore
from habit_sync.storage.sqlite_queue import SQLiteQueueMixin
from habit_sync.storage.sqlite_records import SQLiteRecordMixin
from habit_sync.storage.sqlite_schema import SCHEMA, SCHEMA_VERSION

logger = logging.getLogger(__name__)


class SQLiteLocalStore(SQLiteRecordMixin, SQLiteQueueMixin, LocalStore):
    """SQLite-based local store.

    Records and the sync queue live in one database file so a local
    write and its queue entry survive the same restarts.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path).resolve()
        self._conn: aiosqlite.Connection | None = None

    @property
    def db_path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        """Open the connection and create the schema if needed."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row

        await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute("PRAGMA synchronous=NORMAL")

        await self._conn.executescript(SCHEMA)

        async with self._conn.execute("SELECT version FROM schema_version") as cursor:
            row = await cursor.fetchone()
        if row is None:
            await self._conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )
            await self._conn.commit()
        elif row["version"] > SCHEMA_VERSION:
            logger.warning(
                "Database %s has schema version %d, newer than supported %d",
                self._db_path,
                row["version"],
                SCHEMA_VERSION,
            )

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _ensure_conn(self) -> aiosqlite.Connection:
        """Ensure the connection is available."""
        if self._conn is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._conn
