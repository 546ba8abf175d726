"""Repository pattern implementation for database access.

This module provides repository classes that encapsulate all database
access logic, providing a clean abstraction over SQLAlchemy models.
"""

from .base import BaseRepository
from .commit import CommitRepository
from .pull_request import PullRequestRepository
from .repository import RepositoryRepository
from .sync_log import SyncLogRepository
from .user import UserRepository

__all__ = [
    "BaseRepository",
    "CommitRepository",
    "PullRequestRepository",
    "RepositoryRepository",
    "SyncLogRepository",
    "UserRepository",
]
