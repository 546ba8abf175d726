"""Result objects for sync operations.

Structured results provide consistent interfaces for the orchestrator,
logging, and CLI output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .enums import EntityType, SyncMode, WindowAction
from .windows import SyncWindow


@dataclass(frozen=True)
class IngestionResult:
    """Outcome of one ingestor over one window.

    A cancelled result is a tagged outcome rather than an exception so an
    ingestor can stop between pages and still report what it wrote.
    """

    has_more_history: bool = False
    """True if the ingestor saw items older than the window start."""

    items_processed: int = 0
    """Rows written during this call."""

    cancelled: bool = False
    """True if the ingestor stopped early on a cancellation request."""

    @classmethod
    def finished(cls, items_processed: int, *, has_more_history: bool) -> IngestionResult:
        return cls(has_more_history=has_more_history, items_processed=items_processed)

    @classmethod
    def interrupted(cls, items_processed: int) -> IngestionResult:
        """Result for an ingestor that observed cancellation."""
        return cls(items_processed=items_processed, cancelled=True)


@dataclass
class WindowOutcome:
    """What happened to one window of one repository."""

    repository: str
    """Full repository name (workspace/slug)."""

    window: SyncWindow
    """The ``[start, end)`` range."""

    action: WindowAction
    """Completed, skipped, failed or cancelled."""

    entity_type: EntityType | None = None
    """Set for delta rows; None for a combined full-mode window."""

    items_processed: int = 0
    """Summed items across the window's ingestors."""

    has_more_history: bool = False
    """True if any ingestor saw older history."""

    log_id: int | None = None
    """Ledger row ID (None when skipped)."""

    error: str | None = None
    """Error message for failed or cancelled windows."""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "repository": self.repository,
            "start": self.window.start.isoformat(),
            "end": self.window.end.isoformat(),
            "action": self.action.value,
            "items_processed": self.items_processed,
            "has_more_history": self.has_more_history,
        }
        if self.entity_type is not None:
            result["entity_type"] = self.entity_type.value
        if self.log_id is not None:
            result["log_id"] = self.log_id
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class SyncRunResult:
    """Aggregated result of one orchestrator run."""

    mode: SyncMode
    """Mode the run executed in."""

    outcomes: list[WindowOutcome] = field(default_factory=list)
    """One entry per window visited, in processing order."""

    repositories_completed: list[str] = field(default_factory=list)
    """Repositories whose history was exhausted (full) or fully synced (delta)."""

    repositories_abandoned: list[str] = field(default_factory=list)
    """Repositories given up for this run after repeated window failures."""

    users_synced: int = 0
    """Workspace members upserted by the directory pass."""

    repositories_synced: int = 0
    """Repositories upserted by the directory pass."""

    rounds: int = 0
    """Round-robin passes over the repositories (full mode)."""

    cancelled: bool = False
    """True if the run ended on a cancellation request."""

    duration_seconds: float = 0.0
    """Total wall time of the run."""

    def _count(self, action: WindowAction) -> int:
        return sum(1 for o in self.outcomes if o.action == action)

    @property
    def windows_completed(self) -> int:
        return self._count(WindowAction.COMPLETED)

    @property
    def windows_skipped(self) -> int:
        return self._count(WindowAction.SKIPPED)

    @property
    def windows_failed(self) -> int:
        return self._count(WindowAction.FAILED)

    @property
    def items_processed(self) -> int:
        return sum(o.items_processed for o in self.outcomes)

    def record(self, outcome: WindowOutcome) -> WindowOutcome:
        self.outcomes.append(outcome)
        return outcome

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "summary": {
                "mode": self.mode.value,
                "rounds": self.rounds,
                "windows_completed": self.windows_completed,
                "windows_skipped": self.windows_skipped,
                "windows_failed": self.windows_failed,
                "items_processed": self.items_processed,
                "repositories_completed": len(self.repositories_completed),
                "repositories_abandoned": len(self.repositories_abandoned),
                "users_synced": self.users_synced,
                "repositories_synced": self.repositories_synced,
                "cancelled": self.cancelled,
                "duration_seconds": round(self.duration_seconds, 2),
            },
            "repositories_completed": self.repositories_completed,
            "repositories_abandoned": self.repositories_abandoned,
            "windows": [o.to_dict() for o in self.outcomes],
        }
