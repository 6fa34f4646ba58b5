"""Remote write helper shared by the repository, coordinator and resolver."""

from __future__ import annotations

import asyncio
import logging
import weakref
from collections.abc import Callable

from habit_sync.core.record import Record
from habit_sync.remote.base import RemoteStore
from habit_sync.storage.base import LocalStore
from habit_sync.utils.timeutils import now_ms

logger = logging.getLogger(__name__)


class RemoteWriter:
    """
    Uploads and deletes records on the remote store.

    Writes for the same local record are serialized by a per-record lock
    and always read the record's current local state under that lock, so
    a background write and a queue replay can never both create a document
    for the same record.

    Binding a record to a new remote key (create plus key write-back) and
    adopting a remote document as a new local record share one binding
    lock, so a pull never sees a freshly created document before the local
    record that owns it carries its key.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteStore,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._remote = remote
        self._clock = clock
        # Entries vanish once no coroutine holds or waits on the lock.
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._binding_lock = asyncio.Lock()

    @property
    def remote(self) -> RemoteStore:
        return self._remote

    def lock_for(self, local_id: int) -> asyncio.Lock:
        lock = self._locks.get(local_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[local_id] = lock
        return lock

    async def upload(
        self, account_id: str, local_id: int, *, include_deleted: bool = False
    ) -> Record | None:
        """
        Push the record's current local state.

        Creates a document when the record has no remote key, otherwise
        overwrites the document at its key. On success the new key and sync
        time are written back to the local store.

        Returns:
            The updated record, or None if it no longer exists locally
            (or is trashed and ``include_deleted`` is false)

        Raises:
            RemoteError: If the remote call fails
        """
        async with self.lock_for(local_id):
            record = await self._store.get_by_id(local_id)
            if record is None or (record.deleted and not include_deleted):
                return None
            return await self._upload_locked(account_id, record)

    async def upload_record(self, account_id: str, record: Record) -> Record:
        """Push a given record state, bypassing the local re-read."""
        async with self.lock_for(record.local_id):
            return await self._upload_locked(account_id, record)

    async def _upload_locked(self, account_id: str, record: Record) -> Record:
        synced_at = self._clock()
        document = record.to_document(synced_at=synced_at)
        if record.remote_key:
            await self._remote.set(account_id, record.remote_key, document)
            remote_key = record.remote_key
            await self._store.update_sync_status(record.local_id, remote_key, synced_at)
        else:
            async with self._binding_lock:
                remote_key = await self._remote.create(account_id, document)
                await self._store.update_sync_status(record.local_id, remote_key, synced_at)
        logger.debug("Uploaded record %d as %s", record.local_id, remote_key)
        return record.with_sync_status(remote_key, synced_at)

    async def delete(
        self, account_id: str, local_id: int, fallback_key: str | None = None
    ) -> bool:
        """
        Delete the record's remote document.

        Uses the record's current remote key when it still exists locally,
        else ``fallback_key``.

        Returns:
            False when no remote key is known (nothing to delete)

        Raises:
            RemoteError: If the remote call fails
        """
        async with self.lock_for(local_id):
            record = await self._store.get_by_id(local_id)
            remote_key = (record.remote_key if record else None) or fallback_key
            if not remote_key:
                return False
            await self._remote.delete(account_id, remote_key)
            logger.debug("Deleted remote document %s for record %d", remote_key, local_id)
            return True

    # ========== Remote documents into the local store ==========

    async def adopt_document(self, incoming: Record) -> Record | None:
        """
        Insert a remote document as a new local record, unless one is bound to its key.

        Returns:
            The record already bound to ``incoming.remote_key``, or None when
            ``incoming`` was inserted
        """
        async with self._binding_lock:
            existing = await self._store.find_by_remote_key(incoming.remote_key or "")
            if existing is None:
                await self._store.insert(incoming)
            return existing

    async def adopt_content(
        self, local_id: int, incoming: Record, *, newer_only: bool = False
    ) -> bool:
        """
        Overwrite a local record with a remote document's content.

        With ``newer_only`` the record is kept unless the document's
        ``lastSyncedAt`` is strictly greater.

        Returns:
            True if the local record was overwritten
        """
        async with self.lock_for(local_id):
            current = await self._store.get_by_id(local_id)
            if current is None:
                return False
            if newer_only and incoming.last_synced_at <= current.last_synced_at:
                return False
            await self._store.update(current.with_content_of(incoming))
            return True
