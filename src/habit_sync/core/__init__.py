"""Core data structures for habit-sync."""

from habit_sync.core.queue_entry import OperationType, QueueEntry
from habit_sync.core.record import Record

__all__ = ["OperationType", "QueueEntry", "Record"]
