"""SyncQueue - durable FIFO of deferred remote writes."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace

from habit_sync.core.queue_entry import OperationType, QueueEntry
from habit_sync.core.record import Record
from habit_sync.storage.base import LocalStore
from habit_sync.sync.protocol import DrainResult
from habit_sync.utils.timeutils import now_ms

logger = logging.getLogger(__name__)

QueueProcessor = Callable[[QueueEntry], Awaitable[None]]


class SyncQueue:
    """
    Ordered list of remote writes that could not complete immediately.

    Entries live in the LocalStore so they survive restarts. An entry is
    removed if and only if its processor call returned without raising.
    """

    def __init__(self, store: LocalStore, *, clock: Callable[[], int] = now_ms) -> None:
        self._store = store
        self._clock = clock

    async def enqueue(
        self,
        operation_type: OperationType,
        local_id: int,
        snapshot: Record | str,
    ) -> QueueEntry:
        """Append an entry stamped with the current time."""
        if isinstance(snapshot, Record):
            snapshot = snapshot.to_snapshot()
        entry = QueueEntry(
            operation_type=operation_type,
            local_id=local_id,
            snapshot=snapshot,
            created_at=self._clock(),
        )
        entry_id = await self._store.enqueue(entry)
        logger.debug("Queued %s for record %d (entry %d)", operation_type, local_id, entry_id)
        return replace(entry, id=entry_id)

    async def drain(self, processor: QueueProcessor) -> DrainResult:
        """
        Replay every entry in ``created_at`` order.

        A failing entry stays queued and the drain moves on to the next one,
        so one stuck entry never blocks later, independent entries.

        Returns:
            Counts of processed and failed entries, plus the first error seen
        """
        entries = await self._store.list_queue()
        processed = 0
        failed = 0
        first_error: BaseException | None = None

        for entry in entries:
            try:
                await processor(entry)
            except Exception as e:
                failed += 1
                if first_error is None:
                    first_error = e
                logger.warning(
                    "Replay of %s for record %d failed, keeping it queued: %s",
                    entry.operation_type,
                    entry.local_id,
                    e,
                )
                continue
            await self._store.dequeue(entry.id)
            processed += 1

        return DrainResult(processed=processed, failed=failed, first_error=first_error)

    async def clear(self) -> int:
        """Discard every pending entry. Queued remote writes are lost."""
        removed = await self._store.clear_queue()
        if removed:
            logger.warning("Discarded %d pending sync operations", removed)
        return removed

    async def pending_count(self) -> int:
        return await self._store.count_queue()

    async def entries(self) -> list[QueueEntry]:
        return await self._store.list_queue()
