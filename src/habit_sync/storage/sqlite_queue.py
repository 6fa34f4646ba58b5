"""SQLite sync queue operations mixin."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from habit_sync.storage.sqlite_row_mappers import row_to_queue_entry

if TYPE_CHECKING:
    import aiosqlite

    from habit_sync.core.queue_entry import QueueEntry

logger = logging.getLogger(__name__)


class SQLiteQueueMixin:
    """Mixin providing the durable FIFO of deferred remote writes."""

    # ------------------------------------------------------------------
    # Protocol stubs, satisfied by SQLiteLocalStore at runtime.
    # ------------------------------------------------------------------

    def _ensure_conn(self) -> aiosqlite.Connection:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def enqueue(self, entry: QueueEntry) -> int:
        """Append an entry. Returns its id."""
        conn = self._ensure_conn()
        cursor = await conn.execute(
            """INSERT INTO sync_queue (operation_type, local_id, snapshot, created_at)
               VALUES (?, ?, ?, ?)""",
            (str(entry.operation_type), entry.local_id, entry.snapshot, entry.created_at),
        )
        await conn.commit()
        return cursor.lastrowid or 0

    async def dequeue(self, entry_id: int) -> None:
        conn = self._ensure_conn()
        await conn.execute("DELETE FROM sync_queue WHERE id = ?", (entry_id,))
        await conn.commit()

    async def list_queue(self) -> list[QueueEntry]:
        """Entries ordered by created_at ASC, id breaking ties."""
        conn = self._ensure_conn()
        async with conn.execute(
            "SELECT * FROM sync_queue ORDER BY created_at ASC, id ASC"
        ) as cursor:
            rows = await cursor.fetchall()
        return [row_to_queue_entry(r) for r in rows]

    async def clear_queue(self) -> int:
        conn = self._ensure_conn()
        cursor = await conn.execute("DELETE FROM sync_queue")
        await conn.commit()
        return cursor.rowcount

    async def count_queue(self) -> int:
        conn = self._ensure_conn()
        async with conn.execute("SELECT COUNT(*) AS cnt FROM sync_queue") as cursor:
            row = await cursor.fetchone()
        return int(row["cnt"]) if row else 0
