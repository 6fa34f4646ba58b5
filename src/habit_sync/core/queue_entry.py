"""QueueEntry - a deferred remote write waiting for replay."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from habit_sync.core.record import Record


class OperationType(StrEnum):
    """Kinds of remote writes that can be deferred."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class QueueEntry:
    """
    A durable, replayable description of a remote write.

    Entries are immutable: they are created when a remote write cannot
    complete and destroyed once their replay succeeds.

    Attributes:
        id: Auto-assigned row id, 0 until stored
        operation_type: INSERT, UPDATE or DELETE
        local_id: Local id of the affected record
        snapshot: Serialized record state at enqueue time
        created_at: Epoch ms, the FIFO order key
    """

    operation_type: OperationType
    local_id: int
    snapshot: str
    created_at: int
    id: int = 0

    def record(self) -> Record:
        """Decode the snapshot back into a Record."""
        return Record.from_snapshot(self.snapshot)

    @property
    def snapshot_remote_key(self) -> str | None:
        """Remote key known at enqueue time, if any."""
        return self.record().remote_key
