"""Ingestor contract used by the orchestrator."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from bitbucket_activity_db.sync.enums import EntityType
from bitbucket_activity_db.sync.results import IngestionResult

if TYPE_CHECKING:
    from bitbucket_activity_db.cancellation import CancellationToken


class Ingestor(Protocol):
    """Pulls one entity type for one repository and time range into the store.

    Implementations must be idempotent: re-running the same window upserts
    the same rows. ``has_more_history`` reports whether the remote holds
    items older than ``start``.
    """

    entity_type: EntityType

    async def sync(
        self,
        workspace: str,
        repo_slug: str,
        start: datetime,
        end: datetime,
        cancel: CancellationToken | None = None,
    ) -> IngestionResult: ...
