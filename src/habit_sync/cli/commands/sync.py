"""Sync session commands."""

from __future__ import annotations

from typing import Annotated

import typer

from habit_sync.cli._helpers import get_config, open_engine, output_result, run_async

sync_app = typer.Typer(help="Synchronize with the document server")

JsonOption = Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")]


@sync_app.command("now")
def sync_now(json_output: JsonOption = False) -> None:
    """Replay queued writes, then pull the account's habits.

    Examples:
        habit-sync sync now
        habit-sync sync now --json
    """

    async def _sync() -> None:
        config = get_config()
        async with open_engine(config) as engine:
            result = await engine.coordinator.sync_now()
            pending = await engine.coordinator.pending_count()
        output_result({**result.to_dict(), "pending": pending}, json_output)

    run_async(_sync())


@sync_app.command("status")
def sync_status(json_output: JsonOption = False) -> None:
    """Show identity, connectivity and pending operations."""

    async def _status() -> None:
        config = get_config()
        async with open_engine(config) as engine:
            entries = await engine.queue.entries()
            data = {
                "account_id": engine.identity.current_id(),
                "authenticated": engine.identity.is_authenticated(),
                "online": engine.connectivity.is_online(),
                "server_url": config.remote.server_url,
                "pending": len(entries),
                "queue": [
                    {
                        "id": e.id,
                        "operation": str(e.operation_type),
                        "local_id": e.local_id,
                        "created_at": e.created_at,
                    }
                    for e in entries
                ],
            }

        if json_output:
            output_result(data, True)
            return
        mode = "account" if data["authenticated"] else "device"
        typer.echo(f"Identity:  {data['account_id']} ({mode})")
        typer.echo(f"Server:    {data['server_url'] or '(none)'}")
        typer.echo(f"Online:    {'yes' if data['online'] else 'no'}")
        typer.echo(f"Pending:   {data['pending']}")
        for entry in data["queue"]:
            typer.secho(
                f"  #{entry['id']} {entry['operation']} habit {entry['local_id']}",
                fg=typer.colors.BRIGHT_BLACK,
            )

    run_async(_status())


@sync_app.command("push-all")
def sync_push_all(json_output: JsonOption = False) -> None:
    """Upload every active habit, overwriting its remote copy."""

    async def _push() -> None:
        config = get_config()
        async with open_engine(config) as engine:
            result = await engine.coordinator.push_all()
        output_result(result.to_dict(), json_output)

    run_async(_push())


@sync_app.command("clear-queue")
def sync_clear_queue(
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Discard every pending operation. Unsent changes never reach the server."""
    if not yes and not typer.confirm("Discard all pending sync operations?"):
        raise typer.Abort()

    async def _clear() -> None:
        config = get_config()
        async with open_engine(config, offline=True) as engine:
            removed = await engine.coordinator.clear_queue()
        output_result({"message": f"Discarded {removed} pending operations"})

    run_async(_clear())
