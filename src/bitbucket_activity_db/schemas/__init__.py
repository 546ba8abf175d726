"""Pydantic schemas for Bitbucket Activity DB.

This module provides API response models and the input/output models of
the store.
"""

from .base import SchemaBase
from .bitbucket_api import (
    BitbucketCommit,
    BitbucketPullRequest,
    BitbucketRepository,
    BitbucketUser,
    CommitAuthor,
    CommitParent,
    MergeCommitRef,
    Page,
    WorkspaceMembership,
)
from .commit import CommitUpsert
from .pr import PRRead, PRUpsert
from .repository import RepositoryCreate, RepositoryRead
from .sync_log import SyncLogRead
from .user import UserUpsert

__all__ = [
    # Base
    "SchemaBase",
    # Bitbucket API
    "BitbucketCommit",
    "BitbucketPullRequest",
    "BitbucketRepository",
    "BitbucketUser",
    "CommitAuthor",
    "CommitParent",
    "MergeCommitRef",
    "Page",
    "WorkspaceMembership",
    # Store
    "CommitUpsert",
    "PRRead",
    "PRUpsert",
    "RepositoryCreate",
    "RepositoryRead",
    "SyncLogRead",
    "UserUpsert",
]
