"""habit-sync - offline-first synchronization core for a habit tracker."""

from habit_sync.core import OperationType, QueueEntry, Record
from habit_sync.errors import (
    LocalWriteError,
    MergeStepError,
    RemoteError,
    RemoteRejectedError,
    RemoteTransientError,
    SyncError,
)

__version__ = "0.1.0"

__all__ = [
    "LocalWriteError",
    "MergeStepError",
    "OperationType",
    "QueueEntry",
    "Record",
    "RemoteError",
    "RemoteRejectedError",
    "RemoteTransientError",
    "SyncError",
    "__version__",
]
