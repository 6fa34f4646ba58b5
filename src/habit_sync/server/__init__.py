"""Reference document server for habit-sync."""

from habit_sync.server.app import create_app

__all__ = ["create_app"]
