"""SyncCoordinator - background reconciliation of the local and remote stores."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from habit_sync.core.queue_entry import OperationType, QueueEntry
from habit_sync.core.record import Record
from habit_sync.errors import RemoteError
from habit_sync.remote.base import RemoteStore
from habit_sync.storage.base import LocalStore
from habit_sync.sync.connectivity import ConnectivityMonitor
from habit_sync.sync.device import AccountIdentity
from habit_sync.sync.protocol import (
    CompletionCallback,
    DrainResult,
    SyncPhase,
    SyncResult,
    notify,
)
from habit_sync.sync.queue import SyncQueue
from habit_sync.sync.remote_writer import RemoteWriter

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """
    Runs sync sessions: drain the queue, then pull the remote collection.

    Sessions are triggered by :meth:`start`, by the connectivity monitor's
    offline -> online transition and by :meth:`sync_now`. At most one
    session runs at a time. A trigger that arrives while a session is
    running is remembered and the session re-runs once it finishes; every
    caller waiting on that session receives the final result.

    The session lock is shared with the conflict resolver so a merge never
    interleaves with a sync session.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteStore,
        connectivity: ConnectivityMonitor,
        identity: AccountIdentity,
        *,
        queue: SyncQueue | None = None,
        writer: RemoteWriter | None = None,
        session_lock: asyncio.Lock | None = None,
    ) -> None:
        self._store = store
        self._remote = remote
        self._connectivity = connectivity
        self._identity = identity
        self._queue = queue or SyncQueue(store)
        self._writer = writer or RemoteWriter(store, remote)
        self._session_lock = session_lock or asyncio.Lock()
        self._phase = SyncPhase.IDLE
        self._session_task: asyncio.Task[SyncResult] | None = None
        self._rerun_requested = False
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def queue(self) -> SyncQueue:
        return self._queue

    # ========== Lifecycle ==========

    async def start(self, on_complete: CompletionCallback | None = None) -> SyncResult:
        """Subscribe to connectivity changes and run the session-start sync."""
        if self._unsubscribe is None:
            self._unsubscribe = self._connectivity.on_online(self._on_online)
        return await self.sync_now(on_complete)

    async def stop(self) -> None:
        """Unsubscribe and wait for a running session to finish."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._session_task is not None:
            await asyncio.gather(self._session_task, return_exceptions=True)

    async def _on_online(self) -> None:
        logger.info("Back online, starting sync")
        await self.sync_now()

    # ========== Sessions ==========

    async def sync_now(self, on_complete: CompletionCallback | None = None) -> SyncResult:
        """
        Run a sync session, or join the one already running.

        Returns:
            The result of the last session run on behalf of this call
        """
        if self._session_task is not None and not self._session_task.done():
            logger.debug("Sync already running, coalescing request")
            self._rerun_requested = True
        else:
            self._session_task = asyncio.create_task(self._run_sessions())
        result = await asyncio.shield(self._session_task)
        await notify(on_complete, result.success, result.message)
        return result

    async def _run_sessions(self) -> SyncResult:
        while True:
            self._rerun_requested = False
            result = await self._run_session()
            if not self._rerun_requested:
                return result
            logger.debug("Re-running coalesced sync request")

    async def _run_session(self) -> SyncResult:
        if not self._identity.is_authenticated() or not self._connectivity.is_online():
            logger.debug("Sync not required (not signed in or offline)")
            return SyncResult(success=False, message="Sync not required")

        account_id = self._identity.current_id()
        async with self._session_lock:
            try:
                self._phase = SyncPhase.DRAINING_QUEUE
                drained = await self._drain(account_id)

                self._phase = SyncPhase.PULLING
                try:
                    fetched, changed = await self._pull(account_id)
                except RemoteError as e:
                    logger.warning("Pull from remote failed: %s", e)
                    return SyncResult(
                        success=False,
                        message=f"Sync failed: {e}",
                        processed=drained.processed,
                        failed=drained.failed,
                    )
            finally:
                self._phase = SyncPhase.IDLE

        message = f"Synced {fetched} habits"
        if drained.failed:
            message += f", {drained.failed} operations still pending"
        logger.info(
            "Sync session done: %d replayed, %d pending, %d fetched, %d changed",
            drained.processed,
            drained.failed,
            fetched,
            changed,
        )
        return SyncResult(
            success=drained.failed == 0,
            message=message,
            processed=drained.processed,
            failed=drained.failed,
            pulled=fetched,
            changed=changed,
        )

    # ========== Queue ==========

    async def pending_count(self) -> int:
        return await self._queue.pending_count()

    async def drain_queue(self, on_complete: CompletionCallback | None = None) -> SyncResult:
        """Replay the queue without pulling."""
        if not self._connectivity.is_online():
            result = SyncResult(success=False, message="Device is offline")
        elif not self._identity.is_authenticated():
            result = SyncResult(success=False, message="Sync not required")
        elif await self._queue.pending_count() == 0:
            result = SyncResult(success=True, message="No pending operations")
        else:
            async with self._session_lock:
                self._phase = SyncPhase.DRAINING_QUEUE
                try:
                    drained = await self._drain(self._identity.current_id())
                finally:
                    self._phase = SyncPhase.IDLE
            result = SyncResult(
                success=drained.failed == 0,
                message=f"Processed {drained.processed} operations",
                processed=drained.processed,
                failed=drained.failed,
            )
        await notify(on_complete, result.success, result.message)
        return result

    async def _drain(self, account_id: str) -> DrainResult:
        async def replay(entry: QueueEntry) -> None:
            await self._replay(account_id, entry)

        return await self._queue.drain(replay)

    async def _replay(self, account_id: str, entry: QueueEntry) -> None:
        """Replay one queue entry against the remote store, using current local state."""
        if entry.operation_type is OperationType.DELETE:
            deleted = await self._writer.delete(
                account_id, entry.local_id, entry.snapshot_remote_key
            )
            if not deleted:
                logger.debug("Record %d was never uploaded, nothing to delete", entry.local_id)
            return

        uploaded = await self._writer.upload(account_id, entry.local_id)
        if uploaded is None:
            logger.debug("Habit %d not found or trashed, skipping", entry.local_id)

    # ========== Pull ==========

    async def pull(self) -> SyncResult:
        """Run only the pulling phase."""
        if not self._identity.is_authenticated() or not self._connectivity.is_online():
            return SyncResult(success=False, message="Sync not required")
        async with self._session_lock:
            self._phase = SyncPhase.PULLING
            try:
                fetched, changed = await self._pull(self._identity.current_id())
            except RemoteError as e:
                return SyncResult(success=False, message=f"Sync failed: {e}")
            finally:
                self._phase = SyncPhase.IDLE
        return SyncResult(
            success=True, message=f"Synced {fetched} habits", pulled=fetched, changed=changed
        )

    async def _pull(self, account_id: str) -> tuple[int, int]:
        """
        Merge the remote collection into the local store, last write wins.

        A remote document replaces its local copy only when its
        ``lastSyncedAt`` is strictly greater. Ties keep the local copy.

        Returns:
            (documents fetched, local records inserted or overwritten)
        """
        documents = await self._remote.list_all(account_id)
        changed = 0
        for key, fields in documents:
            try:
                incoming = Record.from_document(key, fields)
            except (ValueError, TypeError) as e:
                logger.warning("Skipping malformed remote document %s: %s", key, e)
                continue
            local = await self._writer.adopt_document(incoming)
            if local is None:
                changed += 1
                logger.debug("Imported remote document %s", key)
            elif await self._writer.adopt_content(local.local_id, incoming, newer_only=True):
                changed += 1
                logger.debug("Remote copy of record %d is newer, overwrote local", local.local_id)
        return len(documents), changed

    # ========== Push ==========

    async def push_all(self, on_complete: CompletionCallback | None = None) -> SyncResult:
        """Upload every active local record, creating or overwriting its document."""
        if not self._connectivity.is_online():
            result = SyncResult(success=False, message="Device is offline")
        elif not self._identity.is_authenticated():
            result = SyncResult(success=False, message="Sync not required")
        else:
            account_id = self._identity.current_id()
            uploaded = 0
            failed = 0
            async with self._session_lock:
                for record in await self._store.get_all():
                    try:
                        if await self._writer.upload(account_id, record.local_id) is not None:
                            uploaded += 1
                    except RemoteError as e:
                        failed += 1
                        logger.warning("Upload of record %d failed: %s", record.local_id, e)
            message = f"Synced {uploaded} habits"
            if failed:
                message += f", {failed} failed"
            result = SyncResult(
                success=failed == 0, message=message, processed=uploaded, failed=failed
            )
        await notify(on_complete, result.success, result.message)
        return result

    async def clear_queue(self) -> int:
        """Discard every pending operation."""
        async with self._session_lock:
            return await self._queue.clear()
