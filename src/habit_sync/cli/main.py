"""habit-sync CLI main entry point."""

from __future__ import annotations

import logging
import sys
from typing import Annotated

import typer

from habit_sync.cli.commands.account import account_app
from habit_sync.cli.commands.habits import habit_app
from habit_sync.cli.commands.sync import sync_app

app = typer.Typer(
    name="habit-sync",
    help="habit-sync - offline-first habit records with a sync server",
    no_args_is_help=True,
)

app.add_typer(habit_app, name="habit")
app.add_typer(sync_app, name="sync")
app.add_typer(account_app, name="account")


@app.callback()
def configure(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", "-h", help="Host to bind to")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port to bind to")] = 8765,
) -> None:
    """Run the reference document server (in-memory, for development).

    Examples:
        habit-sync serve
        habit-sync serve -p 9000 --host 0.0.0.0
    """
    try:
        import uvicorn
    except ImportError:
        typer.echo("Error: uvicorn not installed. Run: pip install habit-sync[server]", err=True)
        raise typer.Exit(1)

    typer.echo(f"Starting habit-sync document server on http://{host}:{port}")
    typer.echo(f"  Docs: http://{host}:{port}/docs")

    uvicorn.run(
        "habit_sync.server.app:create_app",
        host=host,
        port=port,
        factory=True,
    )


@app.command()
def version() -> None:
    """Show version information."""
    from habit_sync import __version__

    typer.echo(f"habit-sync v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
