"""Window-based sync engine.

This module provides:
- SyncOrchestrator: full/delta state machine over every eligible repository
- Ingestors: CommitIngestor, PullRequestIngestor (windowed) and the
  RepositoryDirectory / UserDirectory pre-pass
- Results: IngestionResult, WindowOutcome, SyncRunResult
- Window arithmetic: SyncWindow, full_window, delta_window
"""

from .enums import EntityType, OutputFormat, SyncMode, WindowAction
from .exceptions import CancellationRequested, IngestionError
from .ingestion import (
    CommitIngestor,
    Ingestor,
    PullRequestIngestor,
    RepositoryDirectory,
    UserDirectory,
)
from .orchestrator import RepoRef, SyncOrchestrator
from .results import IngestionResult, SyncRunResult, WindowOutcome
from .windows import SyncWindow, delta_window, end_of_today, full_window

__all__ = [
    # Orchestration
    "RepoRef",
    "SyncOrchestrator",
    # Ingestion
    "CommitIngestor",
    "Ingestor",
    "PullRequestIngestor",
    "RepositoryDirectory",
    "UserDirectory",
    # Results
    "IngestionResult",
    "SyncRunResult",
    "WindowOutcome",
    # Windows
    "SyncWindow",
    "delta_window",
    "end_of_today",
    "full_window",
    # Enums
    "EntityType",
    "OutputFormat",
    "SyncMode",
    "WindowAction",
    # Exceptions
    "CancellationRequested",
    "IngestionError",
]
