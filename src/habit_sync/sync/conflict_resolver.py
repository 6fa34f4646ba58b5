"""ConflictResolver - reconcile device records with an account's records at sign-in."""

from __future__ import annotations

import asyncio
import logging

from habit_sync.core.record import Record
from habit_sync.errors import MergeStepError, RemoteError
from habit_sync.remote.base import Document, RemoteStore
from habit_sync.storage.base import LocalStore
from habit_sync.sync.protocol import (
    CompletionCallback,
    MergeCheck,
    MergeReport,
    MergeStrategy,
    notify,
)
from habit_sync.sync.remote_writer import RemoteWriter

logger = logging.getLogger(__name__)


class ConflictResolver:
    """
    Decides whether a sign-in needs a merge and carries out the chosen strategy.

    Only active (non-trashed) records take part. A merge is not
    transactional: each upload, import or delete succeeds or fails on its
    own, failures are collected into the report and the merge carries on.
    """

    def __init__(
        self,
        store: LocalStore,
        remote: RemoteStore,
        *,
        writer: RemoteWriter | None = None,
        session_lock: asyncio.Lock | None = None,
    ) -> None:
        self._store = store
        self._remote = remote
        self._writer = writer or RemoteWriter(store, remote)
        self._session_lock = session_lock or asyncio.Lock()

    async def check_merge_needed(self, account_id: str) -> MergeCheck:
        """
        A merge is needed iff at least one active local record was never uploaded.

        If the remote cannot be reached the merge is still reported as needed,
        with a remote count of 0, so the caller can still choose.
        """
        unsynced = await self._unsynced_records()
        if not unsynced:
            return MergeCheck(needed=False, local_unsynced_count=0, remote_count=0)

        try:
            remote_count = len(await self._remote.list_all(account_id))
        except RemoteError as e:
            logger.warning("Could not count remote habits: %s", e)
            return MergeCheck(
                needed=True,
                local_unsynced_count=len(unsynced),
                remote_count=0,
                remote_reachable=False,
            )
        return MergeCheck(
            needed=True, local_unsynced_count=len(unsynced), remote_count=remote_count
        )

    async def execute_merge(
        self,
        account_id: str,
        strategy: MergeStrategy,
        on_complete: CompletionCallback | None = None,
    ) -> MergeReport:
        """Apply a merge strategy for ``account_id``."""
        logger.info("Executing %s merge for %s", strategy, account_id)
        async with self._session_lock:
            if strategy is MergeStrategy.KEEP_LOCAL:
                report = await self._keep_local(account_id)
            elif strategy is MergeStrategy.KEEP_CLOUD:
                report = await self._keep_cloud(account_id)
            elif strategy is MergeStrategy.MERGE_BOTH:
                report = await self._merge_both(account_id)
            else:
                raise ValueError(f"Unknown merge strategy: {strategy}")

        for error in report.errors:
            logger.warning("Merge step failed: %s", error)
        logger.info("Merge %s finished: %s", strategy, report.message)
        await notify(on_complete, report.success, report.message)
        return report

    # ========== Strategies ==========

    async def _keep_local(self, account_id: str) -> MergeReport:
        """Replace the account's documents with every active local record."""
        local_records = await self._store.get_all()
        if not local_records:
            return MergeReport(
                strategy=MergeStrategy.KEEP_LOCAL,
                success=True,
                message="No local habits to upload",
            )

        errors: list[Exception] = []
        deleted_remote = 0
        try:
            documents = await self._remote.list_all(account_id)
        except RemoteError as e:
            # Upload anyway; the old documents stay behind.
            errors.append(MergeStepError("list", str(e)))
            documents = []

        for key, _ in documents:
            try:
                await self._remote.delete(account_id, key)
                deleted_remote += 1
            except RemoteError as e:
                errors.append(MergeStepError("delete", str(e), remote_key=key))

        # Every document was deleted, so every record gets a fresh key.
        uploaded = await self._upload_all(
            account_id,
            [r.with_sync_status(None, r.last_synced_at) for r in local_records],
            errors,
        )
        upload_failed = uploaded < len(local_records)
        return MergeReport(
            strategy=MergeStrategy.KEEP_LOCAL,
            success=not errors,
            message=(
                "Some habits failed to upload"
                if upload_failed
                else f"Uploaded {uploaded} habits to cloud"
            ),
            uploaded=uploaded,
            deleted_remote=deleted_remote,
            errors=tuple(errors),
        )

    async def _keep_cloud(self, account_id: str) -> MergeReport:
        """Drop never-uploaded local records and import every remote document."""
        try:
            documents = await self._remote.list_all(account_id)
        except RemoteError as e:
            return MergeReport(
                strategy=MergeStrategy.KEEP_CLOUD,
                success=False,
                message=f"Failed to fetch cloud habits: {e}",
                errors=(MergeStepError("list", str(e)),),
            )

        errors: list[Exception] = []
        deleted_local = 0
        for record in await self._unsynced_records():
            await self._store.hard_delete(record.local_id)
            deleted_local += 1

        imported = 0
        for key, fields in documents:
            try:
                await self._import(key, fields)
                imported += 1
            except Exception as e:
                errors.append(MergeStepError("import", str(e), remote_key=key))

        return MergeReport(
            strategy=MergeStrategy.KEEP_CLOUD,
            success=not errors,
            message=f"Imported {imported} habits from cloud",
            imported=imported,
            deleted_local=deleted_local,
            errors=tuple(errors),
        )

    async def _merge_both(self, account_id: str) -> MergeReport:
        """Pair records by name, newer side wins, and keep everything unpaired."""
        unsynced = await self._unsynced_records()
        errors: list[Exception] = []
        try:
            documents = await self._remote.list_all(account_id)
        except RemoteError as e:
            errors.append(MergeStepError("list", str(e)))
            uploaded = await self._upload_all(account_id, unsynced, errors)
            return MergeReport(
                strategy=MergeStrategy.MERGE_BOTH,
                success=False,
                message=f"Could not fetch cloud habits, uploaded {uploaded} local habits",
                uploaded=uploaded,
                errors=tuple(errors),
            )

        remaining: dict[str, Record] = {}
        for key, fields in documents:
            try:
                incoming = Record.from_document(key, fields)
            except (ValueError, TypeError) as e:
                errors.append(MergeStepError("import", str(e), remote_key=key))
                continue
            # Documents already bound to a local record are not up for pairing.
            if await self._store.find_by_remote_key(key) is None:
                remaining[key] = incoming

        to_upload: list[Record] = []
        imported = 0
        for local in unsynced:
            incoming = self._take_match(remaining, local.match_key)
            if incoming is None:
                to_upload.append(local)
                continue
            key = incoming.remote_key
            if local.last_synced_at >= incoming.last_synced_at:
                logger.debug("Local %r wins over remote %s", local.name, key)
                to_upload.append(local.with_sync_status(key, local.last_synced_at))
                continue
            try:
                if await self._writer.adopt_content(local.local_id, incoming):
                    imported += 1
                logger.debug("Remote %s wins over local %r", key, local.name)
            except Exception as e:
                errors.append(
                    MergeStepError("import", str(e), local_id=local.local_id, remote_key=key)
                )

        for key, incoming in remaining.items():
            try:
                if await self._writer.adopt_document(incoming) is None:
                    imported += 1
            except Exception as e:
                errors.append(MergeStepError("import", str(e), remote_key=key))

        uploaded = await self._upload_all(account_id, to_upload, errors)
        return MergeReport(
            strategy=MergeStrategy.MERGE_BOTH,
            success=not errors,
            message=(
                "Merge completed successfully"
                if not errors
                else f"Merge completed with {len(errors)} errors"
            ),
            uploaded=uploaded,
            imported=imported,
            errors=tuple(errors),
        )

    # ========== Helpers ==========

    async def _unsynced_records(self) -> list[Record]:
        return [r for r in await self._store.get_all() if not r.is_synced]

    @staticmethod
    def _take_match(
        remaining: dict[str, Record], match_key: str
    ) -> Record | None:
        """Remove and return the first unconsumed document with the same name."""
        for key, incoming in remaining.items():
            if incoming.match_key == match_key:
                return remaining.pop(key)
        return None

    async def _import(self, key: str, fields: Document) -> None:
        incoming = Record.from_document(key, fields)
        existing = await self._writer.adopt_document(incoming)
        if existing is not None:
            await self._writer.adopt_content(existing.local_id, incoming)

    async def _upload_all(
        self, account_id: str, records: list[Record], errors: list[Exception]
    ) -> int:
        uploaded = 0
        for record in records:
            try:
                await self._writer.upload_record(account_id, record)
                uploaded += 1
            except RemoteError as e:
                errors.append(MergeStepError("upload", str(e), local_id=record.local_id))
        return uploaded
