"""Abstract base class for local record storage backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from habit_sync.core.queue_entry import QueueEntry
    from habit_sync.core.record import Record


class LocalStore(ABC):
    """
    Durable device-local storage for records and the deferred-write queue.

    Implementations must make every write durable before returning.
    Errors are raised as-is; the repository layer wraps them in
    LocalWriteError.
    """

    async def initialize(self) -> None:  # noqa: B027
        """Open connections / create schema. No-op by default."""

    async def close(self) -> None:  # noqa: B027
        """Release resources. No-op by default."""

    # ========== Record Operations ==========

    @abstractmethod
    async def get_all(self, include_deleted: bool = False) -> list[Record]:
        """
        Get records ordered by local id.

        Args:
            include_deleted: Also return soft-deleted (trashed) records

        Returns:
            Matching records
        """
        ...

    @abstractmethod
    async def get_trash(self) -> list[Record]:
        """Get soft-deleted records ordered by local id."""
        ...

    @abstractmethod
    async def get_by_id(self, local_id: int) -> Record | None:
        """Get a record (trashed or not) by local id."""
        ...

    async def find_by_remote_key(self, remote_key: str) -> Record | None:
        """
        Find the record bound to a remote document key, trashed ones included.

        Default implementation scans :meth:`get_all`; backends should
        override with an indexed lookup.
        """
        for record in await self.get_all(include_deleted=True):
            if record.remote_key == remote_key:
                return record
        return None

    @abstractmethod
    async def insert(self, record: Record) -> int:
        """
        Insert a new record, ignoring any local id it carries.

        Returns:
            The newly assigned local id
        """
        ...

    @abstractmethod
    async def update(self, record: Record) -> None:
        """
        Overwrite the stored record with the same local id.

        Raises:
            KeyError: If no record has that local id
        """
        ...

    @abstractmethod
    async def soft_delete(self, local_id: int) -> None:
        """Mark a record deleted (move to trash)."""
        ...

    @abstractmethod
    async def restore(self, local_id: int) -> None:
        """Clear the deleted flag on a trashed record."""
        ...

    @abstractmethod
    async def hard_delete(self, local_id: int) -> None:
        """Remove a record permanently. Missing ids are ignored."""
        ...

    @abstractmethod
    async def update_sync_status(self, local_id: int, remote_key: str, synced_at: int) -> None:
        """Record a successful remote write for a record."""
        ...

    # ========== Queue Operations ==========

    @abstractmethod
    async def enqueue(self, entry: QueueEntry) -> int:
        """
        Append a queue entry.

        Returns:
            The assigned entry id
        """
        ...

    @abstractmethod
    async def dequeue(self, entry_id: int) -> None:
        """Remove a queue entry after successful replay."""
        ...

    @abstractmethod
    async def list_queue(self) -> list[QueueEntry]:
        """List queue entries ordered by ``created_at`` then id."""
        ...

    @abstractmethod
    async def clear_queue(self) -> int:
        """Discard every queue entry. Returns count removed."""
        ...

    async def count_queue(self) -> int:
        """Number of pending queue entries."""
        return len(await self.list_queue())
