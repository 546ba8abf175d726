"""Database module for Bitbucket Activity DB."""

from bitbucket_activity_db.db.engine import (
    create_tables,
    dispose_engine,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
)
from bitbucket_activity_db.db.models import (
    Base,
    Commit,
    PullRequest,
    Repository,
    SyncLogEntry,
    SyncLogStatus,
    User,
)
from bitbucket_activity_db.db.repositories import (
    BaseRepository,
    CommitRepository,
    PullRequestRepository,
    RepositoryRepository,
    SyncLogRepository,
    UserRepository,
)

__all__ = [
    # Models
    "Base",
    "Commit",
    "PullRequest",
    "Repository",
    "SyncLogEntry",
    "SyncLogStatus",
    "User",
    # Engine
    "create_tables",
    "dispose_engine",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    # Repositories
    "BaseRepository",
    "CommitRepository",
    "PullRequestRepository",
    "RepositoryRepository",
    "SyncLogRepository",
    "UserRepository",
]
