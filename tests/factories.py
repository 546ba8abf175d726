"""Factory functions for creating test data.

This module provides factory functions for:
- SQLAlchemy ORM models (Repository, PullRequest, Commit, SyncLogEntry)
- Pydantic upsert schemas

Design principles:
- Factories provide sensible defaults that can be overridden
- Model factories add to session but don't flush (tests control flush timing)
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from bitbucket_activity_db.db.models import (
    Commit,
    PullRequest,
    Repository,
    SyncLogEntry,
    SyncLogStatus,
)
from bitbucket_activity_db.schemas import CommitUpsert, PRUpsert, UserUpsert
from tests.conftest import JAN_10, JAN_15, JAN_20


# -----------------------------------------------------------------------------
# Model Factories
# -----------------------------------------------------------------------------
def make_repository(
    session: AsyncSession,
    *,
    workspace: str = "acme",
    slug: str = "widgets",
    uuid: str | None = None,
    name: str | None = None,
    exclude_from_sync: bool = False,
    **overrides: Any,
) -> Repository:
    """Create a Repository model instance.

    Args:
        session: Async database session (model will be added but not flushed)
        workspace: Workspace slug
        slug: Repository slug
        uuid: Bitbucket uuid (defaults to ``{workspace-slug}``)
        name: Display name (defaults to slug)
        exclude_from_sync: Whether the orchestrator skips it
        **overrides: Additional field overrides

    Returns:
        Repository instance (added to session, not flushed)
    """
    repo = Repository(
        uuid=uuid or f"{{{workspace}-{slug}}}",
        workspace=workspace,
        slug=slug,
        name=name or slug,
        exclude_from_sync=exclude_from_sync,
        **overrides,
    )
    session.add(repo)
    return repo


def make_pull_request(
    session: AsyncSession,
    repository: Repository,
    *,
    bitbucket_pr_id: int = 101,
    title: str = "Add widget caching",
    state: str = "OPEN",
    created_on: datetime = JAN_10,
    updated_on: datetime | None = JAN_15,
    **overrides: Any,
) -> PullRequest:
    """Create a PullRequest model instance (added, not flushed)."""
    pr = PullRequest(
        repository_id=repository.id,
        bitbucket_pr_id=bitbucket_pr_id,
        title=title,
        state=state,
        created_on=created_on,
        updated_on=updated_on,
        **overrides,
    )
    session.add(pr)
    return pr


def make_commit(
    session: AsyncSession,
    repository: Repository,
    *,
    hash: str = "a" * 40,
    committed_at: datetime = JAN_15,
    message: str = "Fix widget rendering",
    **overrides: Any,
) -> Commit:
    """Create a Commit model instance (added, not flushed)."""
    commit = Commit(
        hash=hash,
        repository_id=repository.id,
        committed_at=committed_at,
        message=message,
        **overrides,
    )
    session.add(commit)
    return commit


def make_sync_log_entry(
    session: AsyncSession,
    repository: Repository,
    *,
    start_date: datetime = JAN_10,
    end_date: datetime = JAN_20,
    status: SyncLogStatus = SyncLogStatus.COMPLETED,
    entity_type: str | None = None,
    message: str | None = None,
    commit_count: int | None = None,
    synced_at: datetime | None = None,
) -> SyncLogEntry:
    """Create a SyncLogEntry model instance (added, not flushed)."""
    entry = SyncLogEntry(
        repository_id=repository.id,
        start_date=start_date,
        end_date=end_date,
        entity_type=entity_type,
        status=status,
        message=message,
        commit_count=commit_count,
        synced_at=synced_at or datetime.now(UTC),
    )
    session.add(entry)
    return entry


# -----------------------------------------------------------------------------
# Schema Factories
# -----------------------------------------------------------------------------
def make_commit_upsert(repository_id: int, **overrides: Any) -> CommitUpsert:
    data: dict[str, Any] = {
        "hash": "b" * 40,
        "repository_id": repository_id,
        "author_uuid": "{user-1}",
        "author_raw": "Jane Dev <jane@example.com>",
        "message": "Tune widget cache",
        "committed_at": JAN_15,
    }
    data.update(overrides)
    return CommitUpsert(**data)


def make_pr_upsert(repository_id: int, **overrides: Any) -> PRUpsert:
    data: dict[str, Any] = {
        "repository_id": repository_id,
        "bitbucket_pr_id": 101,
        "title": "Add widget caching",
        "state": "OPEN",
        "author_uuid": "{user-1}",
        "created_on": JAN_10,
        "updated_on": JAN_15,
    }
    data.update(overrides)
    return PRUpsert(**data)


def make_user_upsert(**overrides: Any) -> UserUpsert:
    data: dict[str, Any] = {
        "uuid": "{user-1}",
        "display_name": "Jane Dev",
        "nickname": "jdev",
    }
    data.update(overrides)
    return UserUpsert(**data)
