"""Remote document stores for habit-sync."""

from habit_sync.remote.base import Document, RemoteStore
from habit_sync.remote.http_remote import HttpRemoteStore
from habit_sync.remote.memory_remote import InMemoryRemoteStore

__all__ = ["Document", "RemoteStore", "HttpRemoteStore", "InMemoryRemoteStore"]
