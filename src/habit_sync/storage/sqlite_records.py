"""SQLite record operations mixin."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from habit_sync.storage.sqlite_row_mappers import row_to_record

if TYPE_CHECKING:
    import aiosqlite

    from habit_sync.core.record import Record

logger = logging.getLogger(__name__)


class SQLiteRecordMixin:
    """Mixin providing record CRUD for the SQLite local store."""

    # ------------------------------------------------------------------
    # Protocol stubs, satisfied by SQLiteLocalStore at runtime.
    # ------------------------------------------------------------------

    def _ensure_conn(self) -> aiosqlite.Connection:
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_all(self, include_deleted: bool = False) -> list[Record]:
        conn = self._ensure_conn()
        if include_deleted:
            sql = "SELECT * FROM records ORDER BY id ASC"
        else:
            sql = "SELECT * FROM records WHERE deleted = 0 ORDER BY id ASC"
        async with conn.execute(sql) as cursor:
            rows = await cursor.fetchall()
        return [row_to_record(r) for r in rows]

    async def get_trash(self) -> list[Record]:
        conn = self._ensure_conn()
        async with conn.execute(
            "SELECT * FROM records WHERE deleted = 1 ORDER BY id ASC"
        ) as cursor:
            rows = await cursor.fetchall()
        return [row_to_record(r) for r in rows]

    async def get_by_id(self, local_id: int) -> Record | None:
        conn = self._ensure_conn()
        async with conn.execute("SELECT * FROM records WHERE id = ?", (local_id,)) as cursor:
            row = await cursor.fetchone()
        return row_to_record(row) if row is not None else None

    async def find_by_remote_key(self, remote_key: str) -> Record | None:
        conn = self._ensure_conn()
        async with conn.execute(
            "SELECT * FROM records WHERE remote_key = ? ORDER BY id ASC LIMIT 1", (remote_key,)
        ) as cursor:
            row = await cursor.fetchone()
        return row_to_record(row) if row is not None else None

    async def insert(self, record: Record) -> int:
        conn = self._ensure_conn()
        cursor = await conn.execute(
            """INSERT INTO records (name, fields, deleted, remote_key, last_synced_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                record.name,
                json.dumps(record.fields),
                1 if record.deleted else 0,
                record.remote_key,
                record.last_synced_at,
            ),
        )
        await conn.commit()
        return cursor.lastrowid or 0

    async def update(self, record: Record) -> None:
        conn = self._ensure_conn()
        cursor = await conn.execute(
            """UPDATE records
               SET name = ?, fields = ?, deleted = ?, remote_key = ?, last_synced_at = ?
               WHERE id = ?""",
            (
                record.name,
                json.dumps(record.fields),
                1 if record.deleted else 0,
                record.remote_key,
                record.last_synced_at,
                record.local_id,
            ),
        )
        await conn.commit()
        if cursor.rowcount == 0:
            raise KeyError(f"Record {record.local_id} does not exist")

    async def soft_delete(self, local_id: int) -> None:
        await self._set_deleted(local_id, True)

    async def restore(self, local_id: int) -> None:
        await self._set_deleted(local_id, False)

    async def _set_deleted(self, local_id: int, deleted: bool) -> None:
        conn = self._ensure_conn()
        cursor = await conn.execute(
            "UPDATE records SET deleted = ? WHERE id = ?", (1 if deleted else 0, local_id)
        )
        await conn.commit()
        if cursor.rowcount == 0:
            raise KeyError(f"Record {local_id} does not exist")

    async def hard_delete(self, local_id: int) -> None:
        conn = self._ensure_conn()
        await conn.execute("DELETE FROM records WHERE id = ?", (local_id,))
        await conn.commit()

    async def update_sync_status(self, local_id: int, remote_key: str, synced_at: int) -> None:
        conn = self._ensure_conn()
        await conn.execute(
            "UPDATE records SET remote_key = ?, last_synced_at = ? WHERE id = ?",
            (remote_key, synced_at, local_id),
        )
        await conn.commit()
        logger.debug("Record %d bound to remote key %s", local_id, remote_key)
