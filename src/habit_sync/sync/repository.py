"""RecordRepository - the dual-write path used by the application."""

from __future__ import annotations

import asyncio
import logging

from habit_sync.core.queue_entry import OperationType
from habit_sync.core.record import Record
from habit_sync.errors import LocalWriteError, RemoteError
from habit_sync.storage.base import LocalStore
from habit_sync.sync.connectivity import ConnectivityMonitor
from habit_sync.sync.device import AccountIdentity
from habit_sync.sync.queue import SyncQueue
from habit_sync.sync.remote_writer import RemoteWriter

logger = logging.getLogger(__name__)


class RecordRepository:
    """
    Writes records locally, then best-effort to the remote store.

    The local write completes before any method returns and its failure is
    raised as LocalWriteError. The remote half runs in a background task
    when online, or is queued straight away when offline. Remote failures
    never reach the caller; they become queue entries.

    Nothing remote happens while no account is signed in.
    """

    def __init__(
        self,
        store: LocalStore,
        writer: RemoteWriter,
        queue: SyncQueue,
        connectivity: ConnectivityMonitor,
        identity: AccountIdentity,
    ) -> None:
        self._store = store
        self._writer = writer
        self._queue = queue
        self._connectivity = connectivity
        self._identity = identity
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def sync_enabled(self) -> bool:
        return self._identity.is_authenticated()

    # ========== Writes ==========

    async def insert(self, record: Record) -> int:
        """Store a new record. Returns its local id."""
        try:
            local_id = await self._store.insert(record)
        except Exception as e:
            raise LocalWriteError(f"Failed to insert habit {record.name!r}: {e}") from e
        await self._dispatch(OperationType.INSERT, local_id)
        return local_id

    async def update(self, record: Record) -> None:
        """Overwrite a record's content, keeping its sync binding."""
        try:
            # Uploads write the key back under the same lock.
            async with self._writer.lock_for(record.local_id):
                current = await self._store.get_by_id(record.local_id)
                if current is None:
                    raise KeyError(f"Record {record.local_id} does not exist")
                # Sync binding and trash state belong to the store, not the caller's copy.
                updated = record.with_sync_status(
                    current.remote_key, current.last_synced_at
                ).with_deleted(current.deleted)
                await self._store.update(updated)
        except Exception as e:
            raise LocalWriteError(f"Failed to update habit {record.local_id}: {e}") from e
        await self._dispatch(OperationType.UPDATE, record.local_id)

    async def delete(self, local_id: int) -> None:
        """Move a record to the trash and delete its remote document."""
        try:
            await self._store.soft_delete(local_id)
        except Exception as e:
            raise LocalWriteError(f"Failed to delete habit {local_id}: {e}") from e
        await self._dispatch(OperationType.DELETE, local_id)

    async def restore(self, local_id: int) -> None:
        """Take a record out of the trash and push it again."""
        try:
            await self._store.restore(local_id)
        except Exception as e:
            raise LocalWriteError(f"Failed to restore habit {local_id}: {e}") from e
        await self._dispatch(OperationType.UPDATE, local_id)

    async def purge(self, local_id: int) -> None:
        """Remove a record permanently, locally and remotely."""
        try:
            record = await self._store.get_by_id(local_id)
            await self._store.hard_delete(local_id)
        except Exception as e:
            raise LocalWriteError(f"Failed to purge habit {local_id}: {e}") from e
        if record is not None and record.remote_key:
            await self._dispatch(OperationType.DELETE, local_id, snapshot=record)

    # ========== Reads ==========

    async def get(self, local_id: int) -> Record | None:
        return await self._store.get_by_id(local_id)

    async def list_active(self) -> list[Record]:
        return await self._store.get_all()

    async def list_trash(self) -> list[Record]:
        return await self._store.get_trash()

    # ========== Remote half ==========

    async def _dispatch(
        self,
        operation_type: OperationType,
        local_id: int,
        *,
        snapshot: Record | None = None,
    ) -> None:
        if not self.sync_enabled:
            return

        if snapshot is None:
            snapshot = await self._store.get_by_id(local_id)
            if snapshot is None:
                return

        if not self._connectivity.is_online():
            logger.debug("Offline, queueing %s for record %d", operation_type, local_id)
            try:
                await self._queue.enqueue(operation_type, local_id, snapshot)
            except Exception as e:
                raise LocalWriteError(
                    f"Failed to queue {operation_type} for habit {local_id}: {e}"
                ) from e
            return

        account_id = self._identity.current_id()
        task = asyncio.create_task(
            self._remote_write(operation_type, local_id, snapshot, account_id)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _remote_write(
        self,
        operation_type: OperationType,
        local_id: int,
        snapshot: Record,
        account_id: str,
    ) -> None:
        try:
            if operation_type is OperationType.DELETE:
                await self._writer.delete(account_id, local_id, snapshot.remote_key)
            else:
                await self._writer.upload(account_id, local_id)
            return
        except RemoteError as e:
            logger.warning(
                "Remote %s for record %d failed, queueing for retry: %s",
                operation_type,
                local_id,
                e,
            )
        except Exception:
            logger.error(
                "Unexpected error during remote %s for record %d",
                operation_type,
                local_id,
                exc_info=True,
            )
        try:
            await self._queue.enqueue(operation_type, local_id, snapshot)
        except Exception:
            logger.error(
                "Could not queue %s for record %d, the remote write is lost",
                operation_type,
                local_id,
                exc_info=True,
            )

    async def wait_for_remote_writes(self) -> None:
        """Wait until every in-flight background remote write has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
