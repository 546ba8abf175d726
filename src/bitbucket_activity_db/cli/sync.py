"""Sync commands for Bitbucket Activity DB."""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.table import Table

from bitbucket_activity_db.bitbucket import BitbucketClient
from bitbucket_activity_db.cancellation import CancellationRequested, CancellationToken
from bitbucket_activity_db.cli.common import (
    OutputFormatOption,
    RepoFilterOption,
    console,
    run_async_command,
    validate_repo,
)
from bitbucket_activity_db.config import SyncConfig, get_settings
from bitbucket_activity_db.db import (
    RepositoryRepository,
    SyncLogRepository,
    SyncLogStatus,
    get_session,
)
from bitbucket_activity_db.schemas import SyncLogRead
from bitbucket_activity_db.sync import OutputFormat, SyncMode, SyncOrchestrator

app = typer.Typer(help="Sync commits and pull requests from Bitbucket")


def build_sync_config(
    base: SyncConfig,
    *,
    mode: SyncMode | None = None,
    batch_days: int | None = None,
    delta_days: int | None = None,
    overwrite: bool | None = None,
    commits: bool | None = None,
    pull_requests: bool | None = None,
    repositories: bool | None = None,
    users: bool | None = None,
) -> SyncConfig:
    """Apply per-invocation CLI overrides on top of the configured sync settings.

    Options left as None keep the configured value.
    """
    target_updates = {
        key: value
        for key, value in {
            "commits": commits,
            "pull_requests": pull_requests,
            "repositories": repositories,
            "users": users,
        }.items()
        if value is not None
    }
    updates: dict[str, Any] = {"targets": base.targets.model_copy(update=target_updates)}
    if mode is not None:
        updates["mode"] = mode.value
    if batch_days is not None:
        updates["batch_days"] = batch_days
    if delta_days is not None:
        updates["delta_sync_days"] = delta_days
    if overwrite is not None:
        updates["overwrite"] = overwrite
    # Round-trip through validation so CLI values get the same bounds as env vars
    return SyncConfig.model_validate({**base.model_dump(), **updates})


@app.command("run")
def sync_run(
    mode: SyncMode | None = typer.Option(
        None,
        "--mode",
        "-m",
        help="full = walk history backward in windows; delta = trailing window only",
    ),
    batch_days: int | None = typer.Option(
        None,
        "--batch-days",
        min=1,
        help="Window size in days for full mode",
    ),
    delta_days: int | None = typer.Option(
        None,
        "--delta-days",
        min=0,
        help="Trailing days covered by delta mode",
    ),
    overwrite: bool | None = typer.Option(
        None,
        "--overwrite/--no-overwrite",
        help="Re-ingest windows that already have a completed ledger entry",
    ),
    commits: bool | None = typer.Option(
        None,
        "--commits/--no-commits",
        help="Sync commits",
    ),
    pull_requests: bool | None = typer.Option(
        None,
        "--pull-requests/--no-pull-requests",
        help="Sync pull requests (and their commits)",
    ),
    repositories: bool | None = typer.Option(
        None,
        "--repositories/--no-repositories",
        help="Refresh each workspace's repository list first",
    ),
    users: bool | None = typer.Option(
        None,
        "--users/--no-users",
        help="Refresh each workspace's members first",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Sync every eligible repository in full or delta mode.

    Full mode resumes where the last run stopped: windows already recorded
    as completed are skipped unless --overwrite is given. SIGINT/SIGTERM
    stop the run after recording the current window as cancelled.

    Examples:
        bbactivity sync run
        bbactivity sync run --mode delta --delta-days 3
        bbactivity sync run --batch-days 30 --no-pull-requests
        bbactivity -v sync run --format json
    """
    config = build_sync_config(
        get_settings().sync,
        mode=mode,
        batch_days=batch_days,
        delta_days=delta_days,
        overwrite=overwrite,
        commits=commits,
        pull_requests=pull_requests,
        repositories=repositories,
        users=users,
    )

    async def _sync() -> dict[str, Any]:
        cancel = CancellationToken()
        cancel.install_signal_handlers()

        async with BitbucketClient() as client, get_session() as session:
            orchestrator = SyncOrchestrator.create(client, session, config=config, cancel=cancel)
            try:
                result = await orchestrator.run()
            except CancellationRequested:
                partial = orchestrator.last_result
                if partial is not None and output_format == OutputFormat.TEXT:
                    _print_run_summary(partial.to_dict())
                raise
            return result.to_dict()

    if output_format == OutputFormat.TEXT:
        console.print(
            f"[dim]Starting {config.mode} sync "
            f"(batch {config.batch_days}d, delta {config.delta_sync_days}d, "
            f"overwrite={'on' if config.overwrite else 'off'})[/dim]"
        )

    result = run_async_command(_sync(), error_prefix="Sync failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result))
        return

    _print_run_summary(result)


def _print_run_summary(result: dict[str, Any]) -> None:
    summary = result.get("summary", {})
    title = "Sync Cancelled" if summary.get("cancelled") else "Sync Complete"

    console.print()
    console.print(f"[bold]{title}[/bold] ({summary.get('mode', '?')} mode)")
    console.print()
    console.print("  [bold]Windows:[/bold]")
    console.print(f"    [green]Completed:[/green]     {summary.get('windows_completed', 0)}")
    console.print(f"    [dim]Skipped:[/dim]       {summary.get('windows_skipped', 0)}")
    console.print(f"    [red]Failed:[/red]        {summary.get('windows_failed', 0)}")
    console.print(f"  [bold]Items processed:[/bold] {summary.get('items_processed', 0)}")
    console.print(
        f"  [bold]Repositories:[/bold]    {summary.get('repositories_completed', 0)} completed, "
        f"{summary.get('repositories_abandoned', 0)} abandoned"
    )
    if summary.get("users_synced") or summary.get("repositories_synced"):
        console.print(
            f"  [bold]Directory:[/bold]       {summary.get('users_synced', 0)} users, "
            f"{summary.get('repositories_synced', 0)} repositories"
        )
    console.print()
    console.print(f"  Duration: {summary.get('duration_seconds', 0):.1f}s")

    failed = [w for w in result.get("windows", []) if w.get("action") == "failed"]
    if failed:
        console.print()
        console.print("[bold]Failed windows:[/bold]")
        for item in failed[:20]:
            error = item.get("error") or ""
            if len(error) > 60:
                error = error[:57] + "..."
            console.print(
                f"  [red]✗[/red] {item['repository']} "
                f"{item['start'][:10]}..{item['end'][:10]}: {error}"
            )
        if len(failed) > 20:
            console.print(f"  ... and {len(failed) - 20} more")


@app.command("log")
def sync_log(
    repo: RepoFilterOption = None,
    limit: int = typer.Option(
        20,
        "--limit",
        "-n",
        min=1,
        help="Number of ledger rows to show",
    ),
    status: SyncLogStatus | None = typer.Option(
        None,
        "--status",
        "-s",
        help="Only show rows with this status",
    ),
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Show recent sync ledger entries and status counts.

    Examples:
        bbactivity sync log
        bbactivity sync log --repo acme/widgets --status failed
        bbactivity sync log --format json
    """

    async def _log() -> dict[str, Any]:
        async with get_session() as session:
            repository_id: int | None = None
            names: dict[int, str] = {}

            repos = RepositoryRepository(session)
            if repo is not None:
                workspace, slug = validate_repo(repo)
                repository = await repos.get_by_workspace_and_slug(workspace, slug)
                if repository is None:
                    console.print(f"[red]Error:[/red] Repository {repo} not found in database")
                    raise typer.Exit(1)
                repository_id = repository.id

            for r in await repos.get_all():
                names[r.id] = r.full_name

            log_repo = SyncLogRepository(session)
            entries = await log_repo.list_recent(repository_id, limit=limit, status=status)
            stats = await log_repo.get_stats(repository_id)

            rows = []
            for entry in entries:
                row = SyncLogRead.from_orm(entry).to_json_dict()
                row["repository"] = names.get(entry.repository_id, str(entry.repository_id))
                rows.append(row)
            return {"stats": stats, "entries": rows}

    result = run_async_command(_log(), error_prefix="Failed to read sync log")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result))
        return

    entries = result["entries"]
    if not entries:
        console.print("[dim]No sync log entries[/dim]")
    else:
        table = Table(title="Sync Log")
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Repository")
        table.add_column("Window")
        table.add_column("Entity")
        table.add_column("Status")
        table.add_column("Items", justify="right")
        table.add_column("Synced At")
        table.add_column("Message", max_width=40)

        styles = {"completed": "green", "failed": "red", "cancelled": "yellow"}
        for row in entries:
            style = styles.get(row["status"], "dim")
            table.add_row(
                str(row["id"]),
                row["repository"],
                f"{row['start_date'][:10]}..{row['end_date'][:10]}",
                row["entity_type"] or "all",
                f"[{style}]{row['status']}[/{style}]",
                "" if row["commit_count"] is None else str(row["commit_count"]),
                row["synced_at"][:19].replace("T", " "),
                row["message"] or "",
            )
        console.print(table)

    stats = result["stats"]
    console.print(
        f"Total {stats['total']}: "
        f"[green]{stats['completed']} completed[/green], "
        f"[red]{stats['failed']} failed[/red], "
        f"[yellow]{stats['cancelled']} cancelled[/yellow], "
        f"{stats['started']} started"
    )
