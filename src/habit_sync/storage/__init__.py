"""Local storage backends for habit-sync."""

from habit_sync.storage.base import LocalStore
from habit_sync.storage.memory_store import InMemoryLocalStore
from habit_sync.storage.sqlite_store import SQLiteLocalStore

__all__ = ["LocalStore", "InMemoryLocalStore", "SQLiteLocalStore"]
