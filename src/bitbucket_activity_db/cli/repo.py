"""Repository registration commands.

Only repositories stored in the database are synced. They get there either
by hand (``repo add``) or from a workspace listing (``repo discover``).
"""

import json
from typing import Any

import typer
from rich.table import Table

from bitbucket_activity_db.bitbucket import BitbucketClient
from bitbucket_activity_db.cli.common import (
    OutputFormatOption,
    RepoArgument,
    console,
    run_async_command,
    validate_repo,
)
from bitbucket_activity_db.db import RepositoryRepository, get_session
from bitbucket_activity_db.schemas import RepositoryRead
from bitbucket_activity_db.sync import OutputFormat, RepositoryDirectory

app = typer.Typer(help="Manage tracked repositories")


@app.command("add")
def add_repo(repo: RepoArgument) -> None:
    """Register a repository for syncing.

    Examples:
        bbactivity repo add acme/widgets
    """
    workspace, slug = validate_repo(repo)

    async def _add() -> bool:
        async with get_session() as session:
            _repository, created = await RepositoryRepository(session).get_or_create(
                workspace, slug
            )
            return created

    created = run_async_command(_add(), error_prefix="Failed to add repository")
    if created:
        console.print(f"[green]Added[/green] {workspace}/{slug}")
    else:
        console.print(f"[dim]{workspace}/{slug} is already tracked[/dim]")


@app.command("list")
def list_repos(output_format: OutputFormatOption = OutputFormat.TEXT) -> None:
    """List tracked repositories.

    Examples:
        bbactivity repo list
        bbactivity repo list --format json
    """

    async def _list() -> list[dict[str, Any]]:
        async with get_session() as session:
            repos = await RepositoryRepository(session).get_all()
            return [
                RepositoryRead.from_orm(r).to_json_dict()
                for r in sorted(repos, key=lambda r: (r.workspace, r.slug))
            ]

    rows = run_async_command(_list(), error_prefix="Failed to list repositories")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(rows))
        return

    if not rows:
        console.print("[dim]No repositories tracked. Use 'bbactivity repo add' first.[/dim]")
        return

    table = Table(title="Tracked Repositories")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Repository")
    table.add_column("Sync")
    table.add_column("Last Delta Sync")

    for row in rows:
        last_delta = row["last_delta_sync_at"]
        table.add_row(
            str(row["id"]),
            f"{row['workspace']}/{row['slug']}",
            "[red]excluded[/red]" if row["exclude_from_sync"] else "[green]yes[/green]",
            last_delta[:19].replace("T", " ") if last_delta else "-",
        )
    console.print(table)


def _set_excluded(repo: str, excluded: bool) -> None:
    workspace, slug = validate_repo(repo)

    async def _update() -> None:
        async with get_session() as session:
            repos = RepositoryRepository(session)
            repository = await repos.get_by_workspace_and_slug(workspace, slug)
            if repository is None:
                console.print(f"[red]Error:[/red] Repository {repo} not found in database")
                raise typer.Exit(1)
            await repos.set_excluded(repository.id, excluded)

    run_async_command(_update(), error_prefix="Failed to update repository")
    state = "excluded from" if excluded else "included in"
    console.print(f"{workspace}/{slug} {state} sync")


@app.command("exclude")
def exclude_repo(repo: RepoArgument) -> None:
    """Skip a repository in future sync runs (its data is kept)."""
    _set_excluded(repo, True)


@app.command("include")
def include_repo(repo: RepoArgument) -> None:
    """Make an excluded repository eligible for sync again."""
    _set_excluded(repo, False)


@app.command("discover")
def discover_repos(
    workspace: str = typer.Argument(help="Workspace slug (e.g., acme)"),
) -> None:
    """Register every repository visible in a workspace.

    Existing rows keep their exclusion flag.

    Examples:
        bbactivity repo discover acme
    """

    async def _discover() -> int:
        async with BitbucketClient() as client, get_session() as session:
            return await RepositoryDirectory(client, session).sync_workspace(workspace)

    count = run_async_command(_discover(), error_prefix="Discovery failed")
    console.print(f"[green]Found {count} repositories[/green] in {workspace}")
