"""Pydantic schemas for parsing Bitbucket Cloud 2.0 API responses.

Every list endpoint returns the same envelope (``values`` + ``next``); it
is decoded once by :class:`Page` and parameterized per resource kind.
See: https://developer.atlassian.com/cloud/bitbucket/rest/intro/#pagination
"""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .commit import CommitUpsert
from .pr import PRUpsert
from .user import UserUpsert

ItemT = TypeVar("ItemT", bound=BaseModel)


class Page(BaseModel, Generic[ItemT]):
    """One page of a paginated list response.

    ``next_cursor`` is the opaque absolute URL of the following page, or
    None on the last page.
    """

    model_config = ConfigDict(populate_by_name=True)

    items: list[ItemT] = Field(default_factory=list, validation_alias="values")
    next_cursor: str | None = Field(default=None, validation_alias="next")

    @property
    def is_last(self) -> bool:
        return not self.next_cursor


class AvatarLink(BaseModel):
    href: str | None = None


class UserLinks(BaseModel):
    avatar: AvatarLink | None = None


class BitbucketUser(BaseModel):
    """User object embedded in many responses."""

    uuid: str | None = Field(default=None, description="Stable user UUID ({...} form)")
    display_name: str | None = None
    nickname: str | None = None
    links: UserLinks | None = None

    @property
    def avatar_url(self) -> str | None:
        if self.links and self.links.avatar:
            return self.links.avatar.href
        return None

    def to_user_upsert(self) -> UserUpsert | None:
        """Convert to UserUpsert; None for users without a uuid."""
        if not self.uuid:
            return None
        return UserUpsert(
            uuid=self.uuid,
            display_name=self.display_name,
            nickname=self.nickname,
            avatar_url=self.avatar_url,
        )


class WorkspaceMembership(BaseModel):
    """Entry of ``GET /workspaces/{workspace}/members``."""

    user: BitbucketUser


class WorkspaceRef(BaseModel):
    slug: str


class BitbucketRepository(BaseModel):
    """Entry of ``GET /repositories/{workspace}``."""

    uuid: str
    name: str
    slug: str
    full_name: str | None = None
    workspace: WorkspaceRef | None = None
    created_on: datetime | None = None


class CommitParent(BaseModel):
    hash: str


class CommitAuthor(BaseModel):
    """Commit author: ``raw`` is the git author line, ``user`` is set when mapped."""

    raw: str | None = None
    user: BitbucketUser | None = None


class BitbucketCommit(BaseModel):
    """Entry of ``GET /repositories/{workspace}/{slug}/commits``."""

    hash: str
    date: datetime
    message: str | None = None
    author: CommitAuthor | None = None
    parents: list[CommitParent] = Field(default_factory=list)

    @property
    def is_merge(self) -> bool:
        return len(self.parents) >= 2

    @property
    def is_revert(self) -> bool:
        return bool(self.message) and 'revert "' in self.message.lower()

    @property
    def author_uuid(self) -> str | None:
        if self.author and self.author.user:
            return self.author.user.uuid
        return None

    def to_commit_upsert(
        self,
        repository_id: int,
        pull_request_id: int | None = None,
    ) -> CommitUpsert:
        """
        Factory method to convert to CommitUpsert schema.

        Args:
            repository_id: ID of the repository this commit belongs to
            pull_request_id: ID of the PR row that carried it (optional)
        """
        return CommitUpsert(
            hash=self.hash,
            repository_id=repository_id,
            author_uuid=self.author_uuid,
            author_raw=self.author.raw if self.author else None,
            message=self.message,
            committed_at=self.date,
            is_merge=self.is_merge,
            is_revert=self.is_revert,
            pull_request_id=pull_request_id,
        )


class MergeCommitRef(BaseModel):
    hash: str
    date: datetime | None = None


class BitbucketPullRequest(BaseModel):
    """Entry of ``GET /repositories/{workspace}/{slug}/pullrequests``."""

    id: int
    title: str = ""
    state: str = Field(description="OPEN, MERGED, DECLINED or SUPERSEDED")
    author: BitbucketUser | None = None
    created_on: datetime
    updated_on: datetime | None = None
    closed_on: datetime | None = None
    merge_commit: MergeCommitRef | None = None

    @property
    def is_revert(self) -> bool:
        return "revert" in self.title.lower()

    @property
    def merged_on(self) -> datetime | None:
        """Merge time: merge commit date, else last update, for MERGED PRs."""
        if self.state != "MERGED":
            return None
        if self.merge_commit and self.merge_commit.date:
            return self.merge_commit.date
        return self.updated_on

    @property
    def effective_closed_on(self) -> datetime | None:
        if self.state in ("DECLINED", "SUPERSEDED"):
            return self.closed_on or self.updated_on
        return None

    def to_pr_upsert(self, repository_id: int) -> PRUpsert:
        """Factory method to convert to PRUpsert schema."""
        return PRUpsert(
            repository_id=repository_id,
            bitbucket_pr_id=self.id,
            title=self.title[:500],
            state=self.state,
            author_uuid=self.author.uuid if self.author else None,
            created_on=self.created_on,
            updated_on=self.updated_on,
            merged_on=self.merged_on,
            closed_on=self.effective_closed_on,
            is_revert=self.is_revert,
        )
