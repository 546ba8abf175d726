"""Enums for sync operations."""

from enum import Enum


class SyncMode(str, Enum):
    """How the orchestrator chooses windows."""

    FULL = "full"
    """Walk each repository's history backward in fixed windows until exhausted."""

    DELTA = "delta"
    """Sync one trailing window per entity type and stop."""


class EntityType(str, Enum):
    """Windowed entity types, in the order a full-mode window ingests them."""

    COMMITS = "commits"
    PULL_REQUESTS = "pull_requests"


class WindowAction(str, Enum):
    """What the orchestrator did with one window."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    CANCELLED = "cancelled"


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
