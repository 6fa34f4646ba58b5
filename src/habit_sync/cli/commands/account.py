"""Account sign-in and merge commands."""

from __future__ import annotations

from typing import Annotated

import typer

from habit_sync.cli._helpers import get_config, open_engine, output_result, run_async
from habit_sync.config import validate_account_id
from habit_sync.sync.protocol import MergeCheck, MergeStrategy

account_app = typer.Typer(help="Account identity and sign-in merges")

JsonOption = Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")]

_STRATEGY_HELP = {
    MergeStrategy.KEEP_LOCAL: "replace the account's habits with this device's",
    MergeStrategy.KEEP_CLOUD: "drop never-uploaded habits on this device, keep the account's",
    MergeStrategy.MERGE_BOTH: "keep both, newer copy wins for habits with the same name",
}


def prompt_strategy(check: MergeCheck) -> MergeStrategy | None:
    """Ask the user how to merge. Returns None to skip."""
    typer.echo(
        f"This device has {check.local_unsynced_count} habits that were never uploaded; "
        f"the account has {check.remote_count}."
    )
    if not check.remote_reachable:
        typer.secho("  (could not reach the server to count the account's habits)", fg="yellow")
    for strategy, description in _STRATEGY_HELP.items():
        typer.echo(f"  {strategy}: {description}")
    typer.echo("  skip: decide later")
    choices = [str(s) for s in MergeStrategy] + ["skip"]
    answer = typer.prompt("Strategy", default=str(MergeStrategy.MERGE_BOTH))
    while answer not in choices:
        answer = typer.prompt(f"Choose one of {', '.join(choices)}")
    return None if answer == "skip" else MergeStrategy(answer)


@account_app.command("status")
def account_status(json_output: JsonOption = False) -> None:
    """Show the device id and signed-in account."""
    config = get_config()

    async def _status() -> None:
        async with open_engine(config, offline=True) as engine:
            identity = engine.identity
            data = {
                "device_id": getattr(identity, "device_id", None),
                "account_id": config.account_id or None,
                "authenticated": identity.is_authenticated(),
                "current_id": identity.current_id(),
            }
        if json_output:
            output_result(data, True)
            return
        typer.echo(f"Device:   {data['device_id']}")
        typer.echo(f"Account:  {data['account_id'] or '(signed out)'}")

    run_async(_status())


@account_app.command("sign-in")
def account_sign_in(
    account_id: Annotated[str, typer.Argument(help="Account to sign in to")],
    strategy: Annotated[
        MergeStrategy | None,
        typer.Option("--strategy", "-s", help="Merge strategy, if a merge is needed"),
    ] = None,
    skip_merge: Annotated[
        bool, typer.Option("--skip-merge", help="Do not merge device habits into the account")
    ] = False,
    json_output: JsonOption = False,
) -> None:
    """Sign in, merging this device's habits into the account if needed.

    Examples:
        habit-sync account sign-in alice@example.com
        habit-sync account sign-in alice@example.com --strategy keep_cloud
    """
    try:
        account_id = validate_account_id(account_id)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    config = get_config()

    def choose(check: MergeCheck) -> MergeStrategy | None:
        if skip_merge:
            return None
        if strategy is not None:
            return strategy
        if json_output:
            return None
        return prompt_strategy(check)

    async def _sign_in() -> None:
        async with open_engine(config) as engine:
            result = await engine.sign_in(account_id, choose)
        config.account_id = account_id
        config.save()

        if json_output:
            output_result(result.to_dict(), True)
            return
        typer.secho(f"Signed in as {account_id}", fg=typer.colors.GREEN)
        if result.merge is not None:
            output_result({"success": result.merge.success, "message": result.merge.message})
            for error in result.merge.errors:
                typer.secho(f"  {error}", fg=typer.colors.YELLOW)
        output_result(result.sync.to_dict())

    run_async(_sign_in())


@account_app.command("sign-out")
def account_sign_out() -> None:
    """Sign out and go back to the device identity."""
    config = get_config()

    async def _sign_out() -> None:
        async with open_engine(config, offline=True) as engine:
            pending = await engine.coordinator.pending_count()
            await engine.sign_out()
        config.account_id = ""
        config.save()
        if pending:
            typer.secho(
                f"{pending} pending operations stay queued until you sign in again",
                fg=typer.colors.YELLOW,
            )
        output_result({"message": "Signed out"})

    run_async(_sign_out())


@account_app.command("merge")
def account_merge(
    strategy: Annotated[MergeStrategy, typer.Argument(help="Merge strategy")],
    json_output: JsonOption = False,
) -> None:
    """Run a merge for the signed-in account."""
    config = get_config()
    if not config.account_id:
        typer.secho("Not signed in. Run: habit-sync account sign-in <account>", fg="red", err=True)
        raise typer.Exit(1)

    async def _merge() -> None:
        async with open_engine(config) as engine:
            report = await engine.resolver.execute_merge(config.account_id, strategy)
        if json_output:
            output_result(report.to_dict(), True)
            return
        output_result({"success": report.success, "message": report.message})
        for error in report.errors:
            typer.secho(f"  {error}", fg=typer.colors.YELLOW)

    run_async(_merge())
