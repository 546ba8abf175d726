"""Sync engine exceptions."""

from bitbucket_activity_db.cancellation import CancellationRequested


class IngestionError(Exception):
    """Raised by an ingestor for a failure that is not a client error.

    The orchestrator records the window as failed and moves on.
    """

    def __init__(self, message: str, entity_type: str | None = None) -> None:
        super().__init__(message)
        self.entity_type = entity_type


__all__ = ["CancellationRequested", "IngestionError"]
