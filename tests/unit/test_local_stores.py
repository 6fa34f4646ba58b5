"""Tests shared by every LocalStore backend."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import aiosqlite
import pytest
import pytest_asyncio

from habit_sync.core.queue_entry import OperationType, QueueEntry
from habit_sync.core.record import Record
from habit_sync.storage.base import LocalStore
from habit_sync.storage.memory_store import InMemoryLocalStore
from habit_sync.storage.sqlite_schema import SCHEMA_VERSION
from habit_sync.storage.sqlite_store import SQLiteLocalStore

# ── Fixture ───────────────────────────────────────────────────────────────────


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def store(
    request: pytest.FixtureRequest, tmp_path: Path
) -> AsyncGenerator[LocalStore, None]:
    """Each test runs against both backends."""
    if request.param == "memory":
        yield InMemoryLocalStore()
        return
    sqlite = SQLiteLocalStore(tmp_path / "habits.db")
    await sqlite.initialize()
    yield sqlite
    await sqlite.close()


def _entry(local_id: int, created_at: int, op: OperationType = OperationType.UPDATE) -> QueueEntry:
    return QueueEntry(
        operation_type=op,
        local_id=local_id,
        snapshot=Record(name=f"h{local_id}", local_id=local_id).to_snapshot(),
        created_at=created_at,
    )


# ── Records ───────────────────────────────────────────────────────────────────


class TestRecords:
    """Record CRUD."""

    async def test_insert_assigns_ids_and_round_trips_fields(self, store: LocalStore) -> None:
        first = await store.insert(Record.create("Read", minutes=20, tags=["a", "b"]))
        second = await store.insert(Record.create("Run"))

        assert second > first
        stored = await store.get_by_id(first)
        assert stored is not None
        assert stored.local_id == first
        assert stored.name == "Read"
        assert stored.fields == {"minutes": 20, "tags": ["a", "b"]}
        assert stored.remote_key is None

    async def test_get_missing_returns_none(self, store: LocalStore) -> None:
        assert await store.get_by_id(999) is None

    async def test_update_overwrites(self, store: LocalStore) -> None:
        local_id = await store.insert(Record.create("Read"))
        await store.update(Record(name="Read more", fields={"x": 1}, local_id=local_id))

        stored = await store.get_by_id(local_id)
        assert stored is not None
        assert stored.name == "Read more"
        assert stored.fields == {"x": 1}

    async def test_update_missing_raises(self, store: LocalStore) -> None:
        with pytest.raises(KeyError):
            await store.update(Record(name="ghost", local_id=42))

    async def test_soft_delete_and_restore(self, store: LocalStore) -> None:
        keep = await store.insert(Record.create("Keep"))
        trash = await store.insert(Record.create("Trash"))

        await store.soft_delete(trash)

        assert [r.local_id for r in await store.get_all()] == [keep]
        assert [r.local_id for r in await store.get_trash()] == [trash]
        assert len(await store.get_all(include_deleted=True)) == 2

        await store.restore(trash)
        assert await store.get_trash() == []

    async def test_soft_delete_missing_raises(self, store: LocalStore) -> None:
        with pytest.raises(KeyError):
            await store.soft_delete(404)

    async def test_hard_delete_ignores_missing(self, store: LocalStore) -> None:
        local_id = await store.insert(Record.create("Gone"))
        await store.hard_delete(local_id)
        await store.hard_delete(local_id)

        assert await store.get_by_id(local_id) is None

    async def test_update_sync_status_and_find_by_remote_key(self, store: LocalStore) -> None:
        local_id = await store.insert(Record.create("Read"))
        await store.update_sync_status(local_id, "key-1", 500)
        await store.soft_delete(local_id)

        found = await store.find_by_remote_key("key-1")
        assert found is not None
        assert found.local_id == local_id
        assert found.last_synced_at == 500
        assert found.deleted is True
        assert await store.find_by_remote_key("other") is None


# ── Queue ─────────────────────────────────────────────────────────────────────


class TestQueue:
    """Durable queue operations."""

    async def test_list_orders_by_created_at_then_id(self, store: LocalStore) -> None:
        late = await store.enqueue(_entry(1, created_at=30))
        early = await store.enqueue(_entry(2, created_at=10))
        tie = await store.enqueue(_entry(3, created_at=10))

        entries = await store.list_queue()

        assert [e.id for e in entries] == [early, tie, late]
        assert entries[0].operation_type is OperationType.UPDATE

    async def test_dequeue_and_count(self, store: LocalStore) -> None:
        first = await store.enqueue(_entry(1, created_at=1))
        await store.enqueue(_entry(2, created_at=2, op=OperationType.DELETE))

        await store.dequeue(first)

        assert await store.count_queue() == 1
        remaining = await store.list_queue()
        assert remaining[0].operation_type is OperationType.DELETE
        assert remaining[0].record().name == "h2"

    async def test_clear_returns_count(self, store: LocalStore) -> None:
        for i in range(3):
            await store.enqueue(_entry(i, created_at=i))

        assert await store.clear_queue() == 3
        assert await store.list_queue() == []


# ── SQLite specifics ──────────────────────────────────────────────────────────


class TestSQLiteLocalStore:
    """Behaviour specific to the SQLite backend."""

    async def test_requires_initialize(self, tmp_path: Path) -> None:
        store = SQLiteLocalStore(tmp_path / "db.sqlite")
        with pytest.raises(RuntimeError, match="not initialized"):
            await store.get_all()

    async def test_data_survives_reopen(self, tmp_path: Path) -> None:
        db_path = tmp_path / "habits.db"
        store = SQLiteLocalStore(db_path)
        await store.initialize()
        local_id = await store.insert(Record.create("Persist", n=1))
        await store.enqueue(_entry(local_id, created_at=5, op=OperationType.INSERT))
        await store.close()

        reopened = SQLiteLocalStore(db_path)
        await reopened.initialize()
        try:
            record = await reopened.get_by_id(local_id)
            assert record is not None
            assert record.fields == {"n": 1}
            assert await reopened.count_queue() == 1
        finally:
            await reopened.close()

    async def test_schema_version_stamped(self, tmp_path: Path) -> None:
        db_path = tmp_path / "habits.db"
        store = SQLiteLocalStore(db_path)
        await store.initialize()
        await store.close()

        async with aiosqlite.connect(db_path) as conn:
            async with conn.execute("SELECT version FROM schema_version") as cursor:
                rows = await cursor.fetchall()
        assert rows == [(SCHEMA_VERSION,)]
