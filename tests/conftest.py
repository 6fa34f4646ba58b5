"""Pytest configuration and fixtures."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from habit_sync.core.record import Record
from habit_sync.remote.memory_remote import InMemoryRemoteStore
from habit_sync.storage.base import LocalStore
from habit_sync.storage.memory_store import InMemoryLocalStore
from habit_sync.storage.sqlite_store import SQLiteLocalStore
from habit_sync.sync.connectivity import ManualConnectivityMonitor
from habit_sync.sync.device import DeviceAccountIdentity
from habit_sync.sync.sync_engine import SyncEngine

ACCOUNT_ID = "user-1"


class FakeClock:
    """Deterministic epoch-ms clock. Every call advances by ``step``."""

    def __init__(self, start: int = 1_000, step: int = 10) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture(params=["memory", "sqlite"])
async def local_store(
    request: pytest.FixtureRequest, tmp_path: Path
) -> AsyncGenerator[LocalStore, None]:
    """Local store, once in memory and once on SQLite.

    SQLite calls really suspend, so engine tests also cover interleaving of
    foreground writes with background uploads.
    """
    if request.param == "memory":
        yield InMemoryLocalStore()
        return
    store = SQLiteLocalStore(tmp_path / "local.db")
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def remote() -> InMemoryRemoteStore:
    return InMemoryRemoteStore()


@pytest.fixture
def connectivity() -> ManualConnectivityMonitor:
    """Monitor that starts online."""
    return ManualConnectivityMonitor(online=True)


@pytest.fixture
def identity(tmp_path: Path) -> DeviceAccountIdentity:
    """Identity signed in to ACCOUNT_ID."""
    return DeviceAccountIdentity(tmp_path / "data", account_id=ACCOUNT_ID)


@pytest_asyncio.fixture
async def engine(
    local_store: LocalStore,
    remote: InMemoryRemoteStore,
    connectivity: ManualConnectivityMonitor,
    identity: DeviceAccountIdentity,
    clock: FakeClock,
) -> AsyncGenerator[SyncEngine, None]:
    """Fully wired engine over the parametrized local store and an in-memory remote."""
    engine = SyncEngine(local_store, remote, connectivity, identity, clock=clock)
    yield engine
    await engine.stop()


@pytest.fixture
def drink_water() -> Record:
    return Record.create("Drink Water", glasses=8, days=["mon", "tue"])
