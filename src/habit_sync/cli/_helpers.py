"""Shared CLI helpers for configuration, engine wiring, and output formatting."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from typing import Any, TypeVar

import typer

from habit_sync.config import HabitSyncConfig
from habit_sync.core.record import RESERVED_DOC_KEYS, Record
from habit_sync.remote.http_remote import HttpRemoteStore
from habit_sync.storage.sqlite_store import SQLiteLocalStore
from habit_sync.sync.connectivity import (
    ConnectivityMonitor,
    HttpProbeMonitor,
    ManualConnectivityMonitor,
)
from habit_sync.sync.device import DeviceAccountIdentity
from habit_sync.sync.sync_engine import SyncEngine
from habit_sync.utils.timeutils import format_ms

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_config() -> HabitSyncConfig:
    """Get habit-sync configuration."""
    return HabitSyncConfig.load()


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async CLI command.

    Yields once before the loop is torn down so pending callbacks from
    aiosqlite worker threads are drained ("Event loop is closed" noise).
    """

    async def _with_cleanup() -> T:
        try:
            return await coro
        finally:
            await asyncio.sleep(0)

    return asyncio.run(_with_cleanup())


@asynccontextmanager
async def open_engine(
    config: HabitSyncConfig, *, offline: bool = False
) -> AsyncIterator[SyncEngine]:
    """
    Build a SyncEngine for one CLI command and tear it down afterwards.

    Connectivity is probed once against the server's health endpoint
    (no background polling). With ``offline`` or no server configured the
    engine starts offline, so remote writes are queued.

    Background remote writes are awaited before the stores are closed.
    """
    store = SQLiteLocalStore(config.db_path)
    await store.initialize()

    remote = HttpRemoteStore(
        config.remote.server_url,
        timeout=config.remote.timeout,
        api_key=config.remote.api_key or None,
    )

    connectivity: ConnectivityMonitor
    probe: HttpProbeMonitor | None = None
    if offline or not config.remote.enabled:
        connectivity = ManualConnectivityMonitor(online=False)
    else:
        probe = HttpProbeMonitor(
            config.remote.server_url,
            interval=config.connectivity.probe_interval,
            timeout=config.connectivity.probe_timeout,
        )
        await probe.check()
        connectivity = probe

    identity = DeviceAccountIdentity(config.data_dir, config.account_id or None)
    engine = SyncEngine(store, remote, connectivity, identity)
    try:
        yield engine
    finally:
        try:
            await engine.stop()
        finally:
            if probe is not None:
                await probe.stop()
            await remote.close()
            await store.close()


def parse_fields(pairs: list[str] | None) -> dict[str, Any]:
    """Parse ``key=value`` options. Values are JSON when they parse as JSON."""
    fields: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}")
        if key in RESERVED_DOC_KEYS:
            raise typer.BadParameter(f"{key!r} is managed by habit-sync")
        try:
            fields[key] = json.loads(raw)
        except json.JSONDecodeError:
            fields[key] = raw
    return fields


def record_to_output(record: Record) -> dict[str, Any]:
    data = record.to_dict()
    data["last_synced"] = format_ms(record.last_synced_at)
    return data


def output_result(data: dict[str, Any], as_json: bool = False) -> None:
    """Output result in appropriate format."""
    if as_json:
        typer.echo(json.dumps(data, indent=2, default=str))
        return

    if "error" in data:
        typer.secho(f"Error: {data['error']}", fg=typer.colors.RED)
    elif "message" in data:
        color = typer.colors.GREEN if data.get("success", True) else typer.colors.YELLOW
        typer.secho(data["message"], fg=color)
    else:
        typer.echo(str(data))


def print_records(records: list[Record], *, empty_message: str) -> None:
    if not records:
        typer.echo(empty_message)
        return
    for record in records:
        status = "synced" if record.is_synced else "local only"
        typer.echo(f"  [{record.local_id}] {record.name}")
        detail = f"    {status}, last synced {format_ms(record.last_synced_at)}"
        typer.secho(detail, fg=typer.colors.BRIGHT_BLACK)
        if record.fields:
            fields = ", ".join(f"{k}={v}" for k, v in sorted(record.fields.items()))
            typer.secho(f"    {fields}", fg=typer.colors.BRIGHT_BLACK)
