"""Tests for RemoteWriter locking and adoption of remote documents."""

from __future__ import annotations

import asyncio
import gc

from habit_sync.core.record import Record
from habit_sync.remote.base import Document
from habit_sync.remote.memory_remote import InMemoryRemoteStore
from habit_sync.storage.base import LocalStore
from habit_sync.sync.sync_engine import SyncEngine

ACCOUNT_ID = "user-1"


# ── Record locks ──────────────────────────────────────────────────────────────


class TestRecordLocks:
    """Per-record locks only live while in use."""

    async def test_same_lock_while_held(self, engine: SyncEngine) -> None:
        lock = engine.writer.lock_for(1)
        async with lock:
            assert engine.writer.lock_for(1) is lock

    async def test_locks_released_after_writes(
        self, engine: SyncEngine, local_store: LocalStore
    ) -> None:
        ids = [await local_store.insert(Record.create(f"Habit {i}")) for i in range(20)]
        for local_id in ids:
            await engine.writer.upload(ACCOUNT_ID, local_id)
        for local_id in ids[:10]:
            await engine.writer.delete(ACCOUNT_ID, local_id)
            await local_store.hard_delete(local_id)

        gc.collect()

        assert len(engine.writer._locks) == 0


# ── Adoption ──────────────────────────────────────────────────────────────────


class TestAdoptDocument:
    """Binding remote documents to local records."""

    async def test_new_document_is_inserted(
        self, engine: SyncEngine, local_store: LocalStore
    ) -> None:
        incoming = Record(name="Stretch", remote_key="k1", last_synced_at=300)

        assert await engine.writer.adopt_document(incoming) is None

        records = await local_store.get_all()
        assert [(r.name, r.remote_key) for r in records] == [("Stretch", "k1")]

    async def test_bound_document_returns_owner(
        self, engine: SyncEngine, local_store: LocalStore
    ) -> None:
        local_id = await local_store.insert(
            Record(name="Stretch", remote_key="k1", last_synced_at=300)
        )

        existing = await engine.writer.adopt_document(
            Record(name="Stretch", remote_key="k1", last_synced_at=900)
        )

        assert existing is not None
        assert existing.local_id == local_id
        assert len(await local_store.get_all(include_deleted=True)) == 1

    async def test_waits_for_in_flight_create(
        self, engine: SyncEngine, local_store: LocalStore, remote: InMemoryRemoteStore
    ) -> None:
        local_id = await local_store.insert(Record.create("Read"))
        real_create = remote.create
        created: asyncio.Future[str] = asyncio.get_running_loop().create_future()

        async def slow_create(account_id: str, fields: Document) -> str:
            key = await real_create(account_id, fields)
            created.set_result(key)
            await asyncio.sleep(0.02)
            return key

        remote.create = slow_create  # type: ignore[method-assign]
        upload = asyncio.create_task(engine.writer.upload(ACCOUNT_ID, local_id))
        key = await created

        existing = await engine.writer.adopt_document(Record(name="Read", remote_key=key))
        await upload

        assert existing is not None
        assert existing.local_id == local_id
        assert len(await local_store.get_all()) == 1


class TestAdoptContent:
    """Overwriting a local record with remote content."""

    async def test_newer_only_skips_older_copy(
        self, engine: SyncEngine, local_store: LocalStore
    ) -> None:
        local_id = await local_store.insert(
            Record(name="Read", fields={"v": "local"}, remote_key="k1", last_synced_at=500)
        )
        incoming = Record(name="Read", fields={"v": "remote"}, remote_key="k1", last_synced_at=500)

        assert await engine.writer.adopt_content(local_id, incoming, newer_only=True) is False

        stored = await local_store.get_by_id(local_id)
        assert stored is not None
        assert stored.fields == {"v": "local"}

    async def test_overwrites_and_keeps_local_id(
        self, engine: SyncEngine, local_store: LocalStore
    ) -> None:
        local_id = await local_store.insert(Record(name="Read", fields={"v": "local"}))
        incoming = Record(name="Read", fields={"v": "remote"}, remote_key="k1", last_synced_at=200)

        assert await engine.writer.adopt_content(local_id, incoming) is True

        stored = await local_store.get_by_id(local_id)
        assert stored is not None
        assert (stored.local_id, stored.fields, stored.remote_key) == (
            local_id,
            {"v": "remote"},
            "k1",
        )

    async def test_missing_record(self, engine: SyncEngine) -> None:
        incoming = Record(name="Read", remote_key="k1", last_synced_at=200)

        assert await engine.writer.adopt_content(404, incoming) is False
