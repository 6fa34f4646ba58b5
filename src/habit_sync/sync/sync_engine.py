"""Sync engine - wires the sync components together at the application boundary."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from habit_sync.sync.conflict_resolver import ConflictResolver
from habit_sync.sync.coordinator import SyncCoordinator
from habit_sync.sync.protocol import (
    MergeCheck,
    MergeStrategy,
    SignInResult,
    SyncResult,
)
from habit_sync.sync.queue import SyncQueue
from habit_sync.sync.remote_writer import RemoteWriter
from habit_sync.sync.repository import RecordRepository
from habit_sync.utils.timeutils import now_ms

if TYPE_CHECKING:
    from habit_sync.remote.base import RemoteStore
    from habit_sync.storage.base import LocalStore
    from habit_sync.sync.connectivity import ConnectivityMonitor
    from habit_sync.sync.device import AccountIdentity

logger = logging.getLogger(__name__)

StrategyChooser = Callable[[MergeCheck], MergeStrategy | None | Awaitable[MergeStrategy | None]]


class SyncEngine:
    """Owns one set of sync components for a local store and remote store.

    Every component shares one remote writer (per-record write locks) and
    one session lock (one sync session or merge at a time). Collaborators
    are injected; nothing here reaches for process-wide singletons.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteStore,
        connectivity: ConnectivityMonitor,
        identity: AccountIdentity,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self.remote = remote
        self.connectivity = connectivity
        self.identity = identity

        session_lock = asyncio.Lock()
        self.queue = SyncQueue(store, clock=clock)
        self.writer = RemoteWriter(store, remote, clock=clock)
        self.repository = RecordRepository(store, self.writer, self.queue, connectivity, identity)
        self.coordinator = SyncCoordinator(
            store,
            remote,
            connectivity,
            identity,
            queue=self.queue,
            writer=self.writer,
            session_lock=session_lock,
        )
        self.resolver = ConflictResolver(
            store, remote, writer=self.writer, session_lock=session_lock
        )

    async def start(self) -> SyncResult:
        """Run the session-start sync and follow connectivity changes."""
        return await self.coordinator.start()

    async def stop(self) -> None:
        await self.repository.wait_for_remote_writes()
        await self.coordinator.stop()

    async def sign_in(
        self,
        account_id: str,
        choose_strategy: StrategyChooser | None = None,
    ) -> SignInResult:
        """
        Switch to an account, merging device records into it if needed.

        Args:
            account_id: Account to sign in to
            choose_strategy: Called with the merge check when a merge is
                needed. Returning None skips the merge.

        Returns:
            The merge check, the merge report (None if skipped or not
            needed) and the result of the follow-up sync session
        """
        self.identity.sign_in(account_id)
        check = await self.resolver.check_merge_needed(account_id)

        report = None
        if check.needed and choose_strategy is not None:
            choice = choose_strategy(check)
            strategy = await choice if inspect.isawaitable(choice) else choice
            if strategy is not None:
                report = await self.resolver.execute_merge(account_id, strategy)
        elif check.needed:
            logger.info("Merge needed for %s but no strategy chooser given", account_id)

        sync = await self.coordinator.sync_now()
        return SignInResult(account_id=account_id, check=check, merge=report, sync=sync)

    async def sign_out(self) -> None:
        await self.repository.wait_for_remote_writes()
        self.identity.sign_out()
