"""Tests for RecordRepository dual writes."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from habit_sync.core.queue_entry import OperationType
from habit_sync.core.record import Record
from habit_sync.errors import LocalWriteError, RemoteRejectedError, RemoteTransientError
from habit_sync.remote.memory_remote import InMemoryRemoteStore
from habit_sync.storage.base import LocalStore
from habit_sync.sync.connectivity import ManualConnectivityMonitor
from habit_sync.sync.device import DeviceAccountIdentity
from habit_sync.sync.sync_engine import SyncEngine

ACCOUNT_ID = "user-1"


class TestInsert:
    """Tests for RecordRepository.insert."""

    async def test_online_insert_uploads_in_background(
        self, engine: SyncEngine, remote: InMemoryRemoteStore, drink_water: Record
    ) -> None:
        local_id = await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()

        stored = await engine.repository.get(local_id)
        assert stored is not None
        assert stored.remote_key is not None
        assert stored.last_synced_at > 0
        docs = remote.documents(ACCOUNT_ID)
        assert docs[stored.remote_key]["name"] == "Drink Water"
        assert docs[stored.remote_key]["glasses"] == 8
        assert docs[stored.remote_key]["lastSyncedAt"] == stored.last_synced_at
        assert await engine.coordinator.pending_count() == 0

    async def test_local_write_visible_even_when_remote_unreachable(
        self, engine: SyncEngine, remote: InMemoryRemoteStore, drink_water: Record
    ) -> None:
        remote.reachable = False

        local_id = await engine.repository.insert(drink_water)
        stored = await engine.repository.get(local_id)

        assert stored is not None
        assert stored.name == drink_water.name
        assert stored.fields == drink_water.fields

    async def test_remote_failure_is_queued_not_raised(
        self, engine: SyncEngine, remote: InMemoryRemoteStore, drink_water: Record
    ) -> None:
        remote.reachable = False

        local_id = await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()

        entries = await engine.queue.entries()
        assert [(e.operation_type, e.local_id) for e in entries] == [
            (OperationType.INSERT, local_id)
        ]
        stored = await engine.repository.get(local_id)
        assert stored is not None
        assert stored.remote_key is None

    async def test_rejected_remote_write_is_queued_too(
        self, engine: SyncEngine, remote: InMemoryRemoteStore, drink_water: Record
    ) -> None:
        remote.create = AsyncMock(side_effect=RemoteRejectedError("denied", status_code=403))

        await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()

        assert await engine.coordinator.pending_count() == 1

    async def test_offline_insert_enqueues_without_remote_call(
        self,
        engine: SyncEngine,
        remote: InMemoryRemoteStore,
        connectivity: ManualConnectivityMonitor,
        drink_water: Record,
    ) -> None:
        connectivity.set_online(False)
        remote.create = AsyncMock()

        local_id = await engine.repository.insert(drink_water)

        remote.create.assert_not_called()
        entries = await engine.queue.entries()
        assert len(entries) == 1
        assert entries[0].local_id == local_id
        assert entries[0].record().name == "Drink Water"

    async def test_sync_disabled_does_nothing_remote(
        self,
        engine: SyncEngine,
        remote: InMemoryRemoteStore,
        identity: DeviceAccountIdentity,
        drink_water: Record,
    ) -> None:
        identity.sign_out()
        remote.create = AsyncMock()

        await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()

        remote.create.assert_not_called()
        assert await engine.coordinator.pending_count() == 0

    async def test_local_error_is_raised(self, engine: SyncEngine, drink_water: Record) -> None:
        engine.store.insert = AsyncMock(  # type: ignore[method-assign]
            side_effect=OSError("disk full")
        )

        with pytest.raises(LocalWriteError, match="disk full"):
            await engine.repository.insert(drink_water)


class TestUpdate:
    """Tests for RecordRepository.update."""

    async def test_update_overwrites_same_remote_key(
        self, engine: SyncEngine, remote: InMemoryRemoteStore, drink_water: Record
    ) -> None:
        local_id = await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()
        first = await engine.repository.get(local_id)
        assert first is not None

        await engine.repository.update(
            Record(name="Drink Water", fields={"glasses": 10}, local_id=local_id)
        )
        await engine.repository.wait_for_remote_writes()

        second = await engine.repository.get(local_id)
        assert second is not None
        assert second.remote_key == first.remote_key
        assert second.last_synced_at > first.last_synced_at
        docs = remote.documents(ACCOUNT_ID)
        assert len(docs) == 1
        assert docs[first.remote_key]["glasses"] == 10

    async def test_update_keeps_stored_sync_binding(
        self, engine: SyncEngine, drink_water: Record
    ) -> None:
        local_id = await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()

        # Caller's copy carries no remote key.
        await engine.repository.update(Record(name="Renamed", local_id=local_id))

        stored = await engine.repository.get(local_id)
        assert stored is not None
        assert stored.remote_key is not None

    async def test_update_missing_record_raises(self, engine: SyncEngine) -> None:
        with pytest.raises(LocalWriteError):
            await engine.repository.update(Record(name="ghost", local_id=99))

    async def test_offline_update_queued(
        self,
        engine: SyncEngine,
        connectivity: ManualConnectivityMonitor,
        drink_water: Record,
    ) -> None:
        local_id = await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()
        connectivity.set_online(False)

        await engine.repository.update(Record(name="Water", local_id=local_id))

        entries = await engine.queue.entries()
        assert [e.operation_type for e in entries] == [OperationType.UPDATE]
        assert entries[0].snapshot_remote_key is not None

    async def test_update_right_after_insert_keeps_one_document(
        self, engine: SyncEngine, remote: InMemoryRemoteStore, drink_water: Record
    ) -> None:
        """An update issued while the insert's create is in flight binds to the same key."""
        real_create = remote.create
        created = asyncio.Event()

        async def slow_create(account_id: str, fields: dict) -> str:
            key = await real_create(account_id, fields)
            created.set()
            await asyncio.sleep(0.01)
            return key

        remote.create = slow_create  # type: ignore[method-assign]

        local_id = await engine.repository.insert(drink_water)
        await created.wait()
        await engine.repository.update(Record(name="Drink more water", local_id=local_id))
        await engine.repository.wait_for_remote_writes()

        docs = remote.documents(ACCOUNT_ID)
        assert len(docs) == 1
        stored = await engine.repository.get(local_id)
        assert stored is not None
        assert list(docs) == [stored.remote_key]
        assert docs[stored.remote_key]["name"] == "Drink more water"


class TestDeleteRestorePurge:
    """Tests for trash handling."""

    async def test_delete_tombstones_locally_and_removes_remote(
        self, engine: SyncEngine, remote: InMemoryRemoteStore, drink_water: Record
    ) -> None:
        local_id = await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()

        await engine.repository.delete(local_id)
        await engine.repository.wait_for_remote_writes()

        assert await engine.repository.list_active() == []
        trash = await engine.repository.list_trash()
        assert [r.local_id for r in trash] == [local_id]
        assert remote.documents(ACCOUNT_ID) == {}

    async def test_offline_delete_carries_remote_key(
        self,
        engine: SyncEngine,
        connectivity: ManualConnectivityMonitor,
        drink_water: Record,
    ) -> None:
        local_id = await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()
        stored = await engine.repository.get(local_id)
        assert stored is not None
        connectivity.set_online(False)

        await engine.repository.delete(local_id)

        entries = await engine.queue.entries()
        assert entries[0].operation_type is OperationType.DELETE
        assert entries[0].snapshot_remote_key == stored.remote_key

    async def test_restore_reuploads_at_same_key(
        self, engine: SyncEngine, remote: InMemoryRemoteStore, drink_water: Record
    ) -> None:
        local_id = await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()
        await engine.repository.delete(local_id)
        await engine.repository.wait_for_remote_writes()

        await engine.repository.restore(local_id)
        await engine.repository.wait_for_remote_writes()

        stored = await engine.repository.get(local_id)
        assert stored is not None
        assert stored.deleted is False
        docs = remote.documents(ACCOUNT_ID)
        assert list(docs) == [stored.remote_key]
        assert docs[stored.remote_key]["deleted"] is False

    async def test_purge_removes_everywhere(
        self, engine: SyncEngine, remote: InMemoryRemoteStore, drink_water: Record
    ) -> None:
        local_id = await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()

        await engine.repository.purge(local_id)
        await engine.repository.wait_for_remote_writes()

        assert await engine.repository.get(local_id) is None
        assert remote.documents(ACCOUNT_ID) == {}

    async def test_purge_failure_queues_delete_with_key(
        self, engine: SyncEngine, remote: InMemoryRemoteStore, drink_water: Record
    ) -> None:
        local_id = await engine.repository.insert(drink_water)
        await engine.repository.wait_for_remote_writes()
        stored = await engine.repository.get(local_id)
        assert stored is not None
        remote.delete = AsyncMock(side_effect=RemoteTransientError("timeout"))

        await engine.repository.purge(local_id)
        await engine.repository.wait_for_remote_writes()

        entries = await engine.queue.entries()
        assert entries[0].operation_type is OperationType.DELETE
        assert entries[0].snapshot_remote_key == stored.remote_key

    async def test_purge_of_never_synced_record_stays_local(
        self,
        local_store: LocalStore,
        remote: InMemoryRemoteStore,
        connectivity: ManualConnectivityMonitor,
        identity: DeviceAccountIdentity,
    ) -> None:
        connectivity.set_online(False)
        engine = SyncEngine(local_store, remote, connectivity, identity)
        local_id = await engine.repository.insert(Record.create("Offline only"))
        await engine.queue.clear()

        await engine.repository.purge(local_id)

        assert await engine.coordinator.pending_count() == 0
