"""Offline-first synchronization of habit records."""

from habit_sync.sync.conflict_resolver import ConflictResolver
from habit_sync.sync.connectivity import (
    ConnectivityMonitor,
    HttpProbeMonitor,
    ManualConnectivityMonitor,
)
from habit_sync.sync.coordinator import SyncCoordinator
from habit_sync.sync.device import AccountIdentity, DeviceAccountIdentity, get_device_id
from habit_sync.sync.protocol import (
    DrainResult,
    MergeCheck,
    MergeReport,
    MergeStrategy,
    SignInResult,
    SyncPhase,
    SyncResult,
)
from habit_sync.sync.queue import SyncQueue
from habit_sync.sync.remote_writer import RemoteWriter
from habit_sync.sync.repository import RecordRepository
from habit_sync.sync.sync_engine import SyncEngine

__all__ = [
    "AccountIdentity",
    "ConflictResolver",
    "ConnectivityMonitor",
    "DeviceAccountIdentity",
    "DrainResult",
    "HttpProbeMonitor",
    "ManualConnectivityMonitor",
    "MergeCheck",
    "MergeReport",
    "MergeStrategy",
    "RecordRepository",
    "RemoteWriter",
    "SignInResult",
    "SyncCoordinator",
    "SyncEngine",
    "SyncPhase",
    "SyncQueue",
    "SyncResult",
    "get_device_id",
]
