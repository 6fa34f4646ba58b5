"""In-memory local store for development and testing."""

from __future__ import annotations

from dataclasses import replace
from itertools import count

from habit_sync.core.queue_entry import QueueEntry
from habit_sync.core.record import Record
from habit_sync.storage.base import LocalStore


class InMemoryLocalStore(LocalStore):
    """Dict-backed local store.

    Data is lost when the process exits.
    """

    def __init__(self) -> None:
        self._records: dict[int, Record] = {}
        self._queue: dict[int, QueueEntry] = {}
        self._record_ids = count(1)
        self._entry_ids = count(1)

    # ========== Record Operations ==========

    async def get_all(self, include_deleted: bool = False) -> list[Record]:
        return [
            r for _, r in sorted(self._records.items()) if include_deleted or not r.deleted
        ]

    async def get_trash(self) -> list[Record]:
        return [r for _, r in sorted(self._records.items()) if r.deleted]

    async def get_by_id(self, local_id: int) -> Record | None:
        return self._records.get(local_id)

    async def find_by_remote_key(self, remote_key: str) -> Record | None:
        for record in self._records.values():
            if record.remote_key == remote_key:
                return record
        return None

    async def insert(self, record: Record) -> int:
        local_id = next(self._record_ids)
        self._records[local_id] = record.with_local_id(local_id)
        return local_id

    async def update(self, record: Record) -> None:
        if record.local_id not in self._records:
            raise KeyError(f"Record {record.local_id} does not exist")
        self._records[record.local_id] = record

    async def soft_delete(self, local_id: int) -> None:
        record = self._require(local_id)
        self._records[local_id] = record.with_deleted(True)

    async def restore(self, local_id: int) -> None:
        record = self._require(local_id)
        self._records[local_id] = record.with_deleted(False)

    async def hard_delete(self, local_id: int) -> None:
        self._records.pop(local_id, None)

    async def update_sync_status(self, local_id: int, remote_key: str, synced_at: int) -> None:
        record = self._records.get(local_id)
        if record is not None:
            self._records[local_id] = record.with_sync_status(remote_key, synced_at)

    def _require(self, local_id: int) -> Record:
        record = self._records.get(local_id)
        if record is None:
            raise KeyError(f"Record {local_id} does not exist")
        return record

    # ========== Queue Operations ==========

    async def enqueue(self, entry: QueueEntry) -> int:
        entry_id = next(self._entry_ids)
        self._queue[entry_id] = replace(entry, id=entry_id)
        return entry_id

    async def dequeue(self, entry_id: int) -> None:
        self._queue.pop(entry_id, None)

    async def list_queue(self) -> list[QueueEntry]:
        return sorted(self._queue.values(), key=lambda e: (e.created_at, e.id))

    async def clear_queue(self) -> int:
        removed = len(self._queue)
        self._queue.clear()
        return removed

    async def count_queue(self) -> int:
        return len(self._queue)
