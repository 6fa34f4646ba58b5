"""SQLite schema definition for the local habit store."""

from __future__ import annotations

# Bump when SCHEMA changes in a way CREATE ... IF NOT EXISTS cannot absorb.
SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Habit records
CREATE TABLE IF NOT EXISTS records (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    fields TEXT NOT NULL DEFAULT '{}',  -- JSON, opaque domain fields
    deleted INTEGER NOT NULL DEFAULT 0,
    remote_key TEXT,  -- NULL until first successful remote write
    last_synced_at INTEGER NOT NULL DEFAULT 0  -- epoch ms
);
CREATE INDEX IF NOT EXISTS idx_records_deleted ON records(deleted);
CREATE INDEX IF NOT EXISTS idx_records_remote_key ON records(remote_key);

-- Deferred remote writes
CREATE TABLE IF NOT EXISTS sync_queue (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    operation_type TEXT NOT NULL,  -- INSERT, UPDATE, DELETE
    local_id INTEGER NOT NULL,
    snapshot TEXT NOT NULL,  -- JSON record state at enqueue time
    created_at INTEGER NOT NULL  -- epoch ms, FIFO order key
);
CREATE INDEX IF NOT EXISTS idx_sync_queue_created ON sync_queue(created_at, id);
"""
