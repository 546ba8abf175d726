"""Ingestion collaborators called by the orchestrator.

- CommitIngestor / PullRequestIngestor: windowed, implement :class:`Ingestor`
- RepositoryDirectory / UserDirectory: per-workspace pre-pass
"""

from .base import Ingestor
from .commits import CommitIngestor
from .directory import RepositoryDirectory, UserDirectory
from .pull_requests import PullRequestIngestor

__all__ = [
    "CommitIngestor",
    "Ingestor",
    "PullRequestIngestor",
    "RepositoryDirectory",
    "UserDirectory",
]
