"""Common CLI option factories and helpers.

This module centralizes reusable CLI options to reduce duplication
and consolidate noqa comments for Typer's required function call pattern.

It also provides:
- `run_async_command`: Unified async execution with error handling for CLI commands
- Repository argument type aliases and validation
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from typing import Annotated, TypeVar

import typer
from rich.console import Console

from bitbucket_activity_db.bitbucket.exceptions import AuthenticationError
from bitbucket_activity_db.cancellation import CancellationRequested
from bitbucket_activity_db.sync.enums import OutputFormat

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")

EXIT_CANCELLED = 130


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from a synchronous CLI command with unified error handling.

    Exit codes:
        1: Any error
        2: Authentication failure
        130: Cancelled (SIGINT / SIGTERM)

    Example:
        async def _init() -> None:
            await create_tables()

        run_async_command(_init(), error_prefix="Database init failed")
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        # Re-raise deliberate exits (e.g., from validation helpers)
        raise
    except (CancellationRequested, KeyboardInterrupt) as e:
        reason = str(e) if isinstance(e, CancellationRequested) else "interrupted"
        console.print(f"[yellow]Cancelled:[/yellow] {reason}")
        raise typer.Exit(EXIT_CANCELLED) from None
    except AuthenticationError as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(2) from None
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


# Typer requires function calls as default arguments, which triggers B008.
# Using Annotated with a centralized type alias keeps the noqa in one place.

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""

RepoArgument = Annotated[
    str,
    typer.Argument(
        help="Repository in workspace/slug format (e.g., acme/widgets)",
    ),
]

RepoFilterOption = Annotated[
    str | None,
    typer.Option(
        "--repo",
        "-r",
        help="Filter by repository (workspace/slug format)",
    ),
]


def validate_repo(repo: str) -> tuple[str, str]:
    """Parse and validate a ``workspace/slug`` string.

    Raises:
        typer.Exit(1): If format is invalid
    """
    from bitbucket_activity_db.schemas import RepositoryCreate

    try:
        parsed = RepositoryCreate.from_full_name(repo)
    except ValueError:
        console.print("[red]Error:[/red] Repository must be in workspace/slug format")
        raise typer.Exit(1) from None
    return parsed.workspace, parsed.slug
