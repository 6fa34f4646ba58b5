"""Row-to-model converters shared by the SQLite mixins."""

from __future__ import annotations

import json
from typing import Any

from habit_sync.core.queue_entry import OperationType, QueueEntry
from habit_sync.core.record import Record


def row_to_record(row: Any) -> Record:
    """Convert a ``records`` row to a Record."""
    return Record(
        name=str(row["name"]),
        fields=json.loads(row["fields"]) if row["fields"] else {},
        local_id=int(row["id"]),
        deleted=bool(row["deleted"]),
        remote_key=row["remote_key"] or None,
        last_synced_at=int(row["last_synced_at"] or 0),
    )


def row_to_queue_entry(row: Any) -> QueueEntry:
    """Convert a ``sync_queue`` row to a QueueEntry."""
    return QueueEntry(
        id=int(row["id"]),
        operation_type=OperationType(row["operation_type"]),
        local_id=int(row["local_id"]),
        snapshot=str(row["snapshot"]),
        created_at=int(row["created_at"]),
    )
