"""Database maintenance commands."""

import typer

from bitbucket_activity_db.cli.common import console, run_async_command
from bitbucket_activity_db.config import get_settings
from bitbucket_activity_db.db import create_tables, dispose_engine

app = typer.Typer(help="Database commands")


@app.command("init")
def init_db() -> None:
    """Create any missing tables in the configured database.

    Safe to run repeatedly; existing tables and rows are left alone.

    Examples:
        bbactivity db init
        DATABASE_URL=sqlite+aiosqlite:///./mirror.db bbactivity db init
    """

    async def _init() -> None:
        try:
            await create_tables()
        finally:
            await dispose_engine()

    run_async_command(_init(), error_prefix="Database init failed")
    console.print(f"[green]Database ready:[/green] {get_settings().database_url}")
