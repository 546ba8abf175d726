"""Pydantic schemas for PullRequest model."""

from datetime import datetime

from pydantic import Field

from .base import SchemaBase


class PRUpsert(SchemaBase):
    """Fields written when a pull request is inserted or refreshed."""

    repository_id: int = Field(description="Foreign key to repository")
    bitbucket_pr_id: int = Field(gt=0, description="PR id, unique per repository")
    title: str = Field(default="", max_length=500)
    state: str = Field(description="OPEN, MERGED, DECLINED or SUPERSEDED")
    author_uuid: str | None = None
    created_on: datetime
    updated_on: datetime | None = None
    merged_on: datetime | None = None
    closed_on: datetime | None = None
    is_revert: bool = False


class PRRead(SchemaBase):
    """Schema for reading PR data."""

    id: int
    repository_id: int
    bitbucket_pr_id: int
    title: str
    state: str
    author_uuid: str | None
    created_on: datetime
    updated_on: datetime | None
    merged_on: datetime | None
    closed_on: datetime | None
    is_revert: bool
