"""Main CLI application for Bitbucket Activity DB."""

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from bitbucket_activity_db import __version__
from bitbucket_activity_db.cli import db as db_cmd
from bitbucket_activity_db.cli import repo as repo_cmd
from bitbucket_activity_db.cli import sync as sync_cmd
from bitbucket_activity_db.config import get_settings
from bitbucket_activity_db.logging import setup_logging

app = typer.Typer(
    name="bbactivity",
    help="Incremental mirror of Bitbucket commits and pull requests.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"bbactivity version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """Bitbucket Activity DB - mirror commits and pull requests into SQL."""
    settings = get_settings()
    log_config = settings.logging

    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


# Register subcommands
app.add_typer(db_cmd.app, name="db")
app.add_typer(repo_cmd.app, name="repo")
app.add_typer(sync_cmd.app, name="sync")


if __name__ == "__main__":
    app()
