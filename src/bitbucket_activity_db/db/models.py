"""SQLAlchemy ORM models for Bitbucket Activity DB.

Datetimes are written as UTC. SQLite drops the offset, so values read back
are naive UTC.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class SyncLogStatus(str, Enum):
    """Lifecycle of one sync window attempt."""

    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"  # cooperative abort, window must be redone

    @property
    def is_terminal(self) -> bool:
        return self is not SyncLogStatus.STARTED


# ------------------------------------------------------------------------------
# Repository model
# ------------------------------------------------------------------------------
class Repository(Base):
    """Bitbucket repository tracked for sync."""

    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(primary_key=True)
    uuid: Mapped[str] = mapped_column(String(64), unique=True)  # "{...}"
    workspace: Mapped[str] = mapped_column(String(100))
    slug: Mapped[str] = mapped_column(String(200))
    name: Mapped[str] = mapped_column(String(200))
    created_on: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    exclude_from_sync: Mapped[bool] = mapped_column(default=False)
    last_delta_sync_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    commits: Mapped[list["Commit"]] = relationship(
        back_populates="repository",
        cascade="all, delete-orphan",
    )
    pull_requests: Mapped[list["PullRequest"]] = relationship(
        back_populates="repository",
        cascade="all, delete-orphan",
    )

    __table_args__ = (UniqueConstraint("workspace", "slug", name="uq_repo_workspace_slug"),)

    def __repr__(self) -> str:
        return f"<Repository(id={self.id}, full_name='{self.full_name}')>"

    @property
    def full_name(self) -> str:
        return f"{self.workspace}/{self.slug}"


# ------------------------------------------------------------------------------
# User model
# ------------------------------------------------------------------------------
class User(Base):
    """Workspace member, keyed by Bitbucket user UUID."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    uuid: Mapped[str] = mapped_column(String(64), unique=True)
    display_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<User(id={self.id}, nickname='{self.nickname}')>"


# ------------------------------------------------------------------------------
# PullRequest model
# ------------------------------------------------------------------------------
class PullRequest(Base):
    """Bitbucket pull request."""

    __tablename__ = "pull_requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id", ondelete="CASCADE"))
    bitbucket_pr_id: Mapped[int] = mapped_column()

    title: Mapped[str] = mapped_column(String(500))
    state: Mapped[str] = mapped_column(String(20))  # OPEN, MERGED, DECLINED, SUPERSEDED
    author_uuid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_on: Mapped[datetime] = mapped_column(DateTime)
    updated_on: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    merged_on: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    closed_on: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    is_revert: Mapped[bool] = mapped_column(default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    repository: Mapped["Repository"] = relationship(back_populates="pull_requests")
    commits: Mapped[list["Commit"]] = relationship(back_populates="pull_request")

    # One PR id per repo
    __table_args__ = (
        UniqueConstraint("repository_id", "bitbucket_pr_id", name="uq_repo_bitbucket_pr_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<PullRequest(id={self.id}, repo='{self.repository_id}', "
            f"bitbucket_pr_id={self.bitbucket_pr_id})>"
        )

    @property
    def is_merged(self) -> bool:
        return self.state == "MERGED"


# ------------------------------------------------------------------------------
# Commit model
# ------------------------------------------------------------------------------
class Commit(Base):
    """Commit on a repository, optionally linked to the PR that carried it."""

    __tablename__ = "commits"

    id: Mapped[int] = mapped_column(primary_key=True)
    hash: Mapped[str] = mapped_column(String(40), unique=True)
    repository_id: Mapped[int] = mapped_column(ForeignKey("repositories.id", ondelete="CASCADE"))
    author_uuid: Mapped[str | None] = mapped_column(String(64), nullable=True)
    author_raw: Mapped[str | None] = mapped_column(String(500), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    committed_at: Mapped[datetime] = mapped_column(DateTime)
    is_merge: Mapped[bool] = mapped_column(default=False)
    is_revert: Mapped[bool] = mapped_column(default=False)
    pull_request_id: Mapped[int | None] = mapped_column(
        ForeignKey("pull_requests.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    repository: Mapped["Repository"] = relationship(back_populates="commits")
    pull_request: Mapped["PullRequest | None"] = relationship(back_populates="commits")

    __table_args__ = (Index("ix_commits_repo_committed_at", "repository_id", "committed_at"),)

    def __repr__(self) -> str:
        return f"<Commit(id={self.id}, hash='{self.hash[:12]}')>"


# ------------------------------------------------------------------------------
# SyncLogEntry model
# ------------------------------------------------------------------------------
class SyncLogEntry(Base):
    """One attempt at syncing one window of one repository.

    Rows are append-only: inserted as ``started`` and updated exactly once
    to a terminal status. ``entity_type`` is NULL for a combined full-mode
    window and names the entity for a delta row.
    """

    __tablename__ = "repository_sync_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="RESTRICT")
    )
    start_date: Mapped[datetime] = mapped_column(DateTime)
    end_date: Mapped[datetime] = mapped_column(DateTime)
    entity_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[SyncLogStatus] = mapped_column(default=SyncLogStatus.STARTED)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    commit_count: Mapped[int | None] = mapped_column(nullable=True)
    synced_at: Mapped[datetime] = mapped_column(DateTime)

    # Relationships
    repository: Mapped["Repository"] = relationship()

    __table_args__ = (
        Index("ix_sync_log_window", "repository_id", "start_date", "end_date"),
    )

    def __repr__(self) -> str:
        return (
            f"<SyncLogEntry(id={self.id}, repo_id={self.repository_id}, "
            f"window={self.start_date}..{self.end_date}, status={self.status.value})>"
        )
