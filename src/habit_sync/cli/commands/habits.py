"""Habit record commands."""

from __future__ import annotations

from dataclasses import replace
from typing import Annotated, NoReturn

import typer

from habit_sync.cli._helpers import (
    get_config,
    open_engine,
    output_result,
    parse_fields,
    print_records,
    record_to_output,
    run_async,
)
from habit_sync.core.record import Record
from habit_sync.errors import LocalWriteError

habit_app = typer.Typer(help="Create, edit and list habits")

OfflineOption = Annotated[
    bool, typer.Option("--offline", help="Skip the remote write and queue it instead")
]
FieldOption = Annotated[
    list[str] | None,
    typer.Option("--field", "-f", help="Extra field as key=value (repeatable)"),
]
JsonOption = Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")]


def _fail(error: Exception) -> NoReturn:
    typer.secho(f"Error: {error}", fg=typer.colors.RED, err=True)
    raise typer.Exit(1)


@habit_app.command("add")
def habit_add(
    name: Annotated[str, typer.Argument(help="Habit name")],
    field: FieldOption = None,
    offline: OfflineOption = False,
    json_output: JsonOption = False,
) -> None:
    """Add a habit.

    Examples:
        habit-sync habit add "Drink Water"
        habit-sync habit add Read -f minutes=20 -f days='["mon","wed"]'
    """

    async def _add() -> None:
        config = get_config()
        async with open_engine(config, offline=offline) as engine:
            try:
                record = Record.create(name, **parse_fields(field))
                local_id = await engine.repository.insert(record)
            except LocalWriteError as e:
                _fail(e)
        output_result(
            {
                "success": True,
                "message": f"Added habit {name!r} ({local_id})",
                "local_id": local_id,
            },
            json_output,
        )

    run_async(_add())


@habit_app.command("update")
def habit_update(
    local_id: Annotated[int, typer.Argument(help="Local id of the habit")],
    name: Annotated[str | None, typer.Option("--name", "-n", help="New name")] = None,
    field: FieldOption = None,
    unset: Annotated[
        list[str] | None, typer.Option("--unset", help="Field to remove (repeatable)")
    ] = None,
    offline: OfflineOption = False,
    json_output: JsonOption = False,
) -> None:
    """Rename a habit or change its fields.

    Examples:
        habit-sync habit update 3 --name "Read a book"
        habit-sync habit update 3 -f minutes=30 --unset days
    """

    async def _update() -> None:
        config = get_config()
        async with open_engine(config, offline=offline) as engine:
            record = await engine.repository.get(local_id)
            if record is None:
                _fail(LookupError(f"No habit with id {local_id}"))
            fields = {k: v for k, v in record.fields.items() if k not in set(unset or [])}
            fields.update(parse_fields(field))
            updated = replace(record, name=name or record.name, fields=fields)
            try:
                await engine.repository.update(updated)
            except LocalWriteError as e:
                _fail(e)
        output_result(
            {"success": True, "message": f"Updated habit {local_id}", "local_id": local_id},
            json_output,
        )

    run_async(_update())


@habit_app.command("delete")
def habit_delete(
    local_id: Annotated[int, typer.Argument(help="Local id of the habit")],
    offline: OfflineOption = False,
) -> None:
    """Move a habit to the trash."""

    async def _delete() -> None:
        config = get_config()
        async with open_engine(config, offline=offline) as engine:
            try:
                await engine.repository.delete(local_id)
            except LocalWriteError as e:
                _fail(e)
        output_result({"message": f"Moved habit {local_id} to trash"})

    run_async(_delete())


@habit_app.command("restore")
def habit_restore(
    local_id: Annotated[int, typer.Argument(help="Local id of the habit")],
    offline: OfflineOption = False,
) -> None:
    """Take a habit out of the trash."""

    async def _restore() -> None:
        config = get_config()
        async with open_engine(config, offline=offline) as engine:
            try:
                await engine.repository.restore(local_id)
            except LocalWriteError as e:
                _fail(e)
        output_result({"message": f"Restored habit {local_id}"})

    run_async(_restore())


@habit_app.command("purge")
def habit_purge(
    local_id: Annotated[int, typer.Argument(help="Local id of the habit")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
    offline: OfflineOption = False,
) -> None:
    """Delete a habit permanently, locally and remotely."""
    if not yes and not typer.confirm(
        f"Delete habit {local_id} permanently? This cannot be undone."
    ):
        raise typer.Abort()

    async def _purge() -> None:
        config = get_config()
        async with open_engine(config, offline=offline) as engine:
            try:
                await engine.repository.purge(local_id)
            except LocalWriteError as e:
                _fail(e)
        output_result({"message": f"Deleted habit {local_id} permanently"})

    run_async(_purge())


@habit_app.command("list")
def habit_list(
    trash: Annotated[bool, typer.Option("--trash", "-t", help="List trashed habits")] = False,
    json_output: JsonOption = False,
) -> None:
    """List habits.

    Examples:
        habit-sync habit list
        habit-sync habit list --trash --json
    """

    async def _list() -> None:
        config = get_config()
        async with open_engine(config, offline=True) as engine:
            if trash:
                records = await engine.repository.list_trash()
            else:
                records = await engine.repository.list_active()

        if json_output:
            output_result(
                {"habits": [record_to_output(r) for r in records], "count": len(records)}, True
            )
            return
        title = "Trash" if trash else "Habits"
        typer.echo(f"{title} ({len(records)}):")
        print_records(records, empty_message="  (none)")

    run_async(_list())
