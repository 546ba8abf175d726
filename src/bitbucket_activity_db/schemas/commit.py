"""Pydantic schemas for Commit model."""

from datetime import datetime

from pydantic import Field

from .base import SchemaBase


class CommitUpsert(SchemaBase):
    """Fields written when a commit is inserted or refreshed."""

    hash: str = Field(min_length=7, max_length=40, description="Full commit hash")
    repository_id: int = Field(description="Foreign key to repository")
    author_uuid: str | None = Field(default=None, description="Mapped Bitbucket user, if any")
    author_raw: str | None = Field(default=None, max_length=500, description="Git author line")
    message: str | None = None
    committed_at: datetime = Field(description="Author date (UTC)")
    is_merge: bool = False
    is_revert: bool = False
    pull_request_id: int | None = Field(default=None, description="Linked PR row, if known")
