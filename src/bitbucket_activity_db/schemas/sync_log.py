"""Pydantic schemas for the sync ledger."""

from datetime import datetime

from bitbucket_activity_db.db.models import SyncLogStatus

from .base import SchemaBase


class SyncLogRead(SchemaBase):
    """One ledger row as shown by ``bbactivity sync log``."""

    id: int
    repository_id: int
    start_date: datetime
    end_date: datetime
    entity_type: str | None
    status: SyncLogStatus
    message: str | None
    commit_count: int | None
    synced_at: datetime
