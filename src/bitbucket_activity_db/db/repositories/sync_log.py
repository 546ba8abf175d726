"""Repository for the append-only sync window ledger."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bitbucket_activity_db.db.models import SyncLogEntry, SyncLogStatus

from .base import BaseRepository

if TYPE_CHECKING:
    from bitbucket_activity_db.sync.windows import SyncWindow


class SyncLogRepository(BaseRepository[SyncLogEntry]):
    """Ledger of sync window attempts.

    Lifecycle of a row:
    - ``insert`` creates it as ``started``
    - ``complete`` moves it to a terminal status, exactly once

    Unlike the other repositories this one commits: a ledger row must be
    durable on insert and on completion regardless of what the ingestion
    writes on the same session do afterwards.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, SyncLogEntry)

    # -------------------------------------------------------------------------
    # Write Methods
    # -------------------------------------------------------------------------

    async def insert(self, window: SyncWindow, entity_type: str | None = None) -> int:
        """Record the start of a window attempt.

        Args:
            window: Repository and ``[start, end)`` range being synced
            entity_type: Entity the row covers, or None for a combined window

        Returns:
            ID of the new ``started`` row
        """
        entry = SyncLogEntry(
            repository_id=window.repository_id,
            start_date=window.start,
            end_date=window.end,
            entity_type=entity_type,
            status=SyncLogStatus.STARTED,
            synced_at=datetime.now(UTC),
        )
        self.add(entry)
        await self.flush()
        entry_id = entry.id
        await self._session.commit()
        return entry_id

    async def complete(
        self,
        entry_id: int,
        status: SyncLogStatus,
        message: str | None = None,
        count: int | None = None,
    ) -> SyncLogEntry:
        """Write the terminal status of a window attempt.

        Args:
            entry_id: Row returned by :meth:`insert`
            status: COMPLETED, FAILED or CANCELLED
            message: Error text for failed/cancelled rows
            count: Items processed in the window

        Raises:
            ValueError: If the status is not terminal, the row does not exist,
                or the row was already completed
        """
        if not status.is_terminal:
            raise ValueError(f"Cannot complete a sync log entry with status {status.value!r}")

        entry = await self.get_by_id(entry_id)
        if entry is None:
            raise ValueError(f"Sync log entry {entry_id} not found")
        if entry.status.is_terminal:
            raise ValueError(
                f"Sync log entry {entry_id} already {entry.status.value}, refusing {status.value}"
            )

        entry.status = status
        entry.message = message
        entry.commit_count = count
        entry.synced_at = datetime.now(UTC)
        await self.flush()
        await self._session.commit()
        return entry

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def find_completed(
        self,
        repository_id: int,
        start: datetime,
        end: datetime,
        entity_type: str | None = None,
    ) -> int | None:
        """Find a completed row for exactly this window.

        No overlap or containment matching: a window with different bounds
        is a different window.

        Returns:
            ID of a matching completed row, or None
        """
        stmt = (
            select(SyncLogEntry.id)
            .where(
                SyncLogEntry.repository_id == repository_id,
                SyncLogEntry.start_date == start,
                SyncLogEntry.end_date == end,
                SyncLogEntry.status == SyncLogStatus.COMPLETED,
            )
            .order_by(SyncLogEntry.id.desc())
            .limit(1)
        )
        if entity_type is None:
            stmt = stmt.where(SyncLogEntry.entity_type.is_(None))
        else:
            stmt = stmt.where(SyncLogEntry.entity_type == entity_type)

        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_recent(
        self,
        repository_id: int | None = None,
        limit: int = 50,
        status: SyncLogStatus | None = None,
    ) -> list[SyncLogEntry]:
        """Most recent rows first.

        Args:
            repository_id: Filter by repository (optional)
            limit: Maximum number of rows to return
            status: Filter by status (optional)
        """
        stmt = select(SyncLogEntry).order_by(SyncLogEntry.id.desc()).limit(limit)
        if repository_id is not None:
            stmt = stmt.where(SyncLogEntry.repository_id == repository_id)
        if status is not None:
            stmt = stmt.where(SyncLogEntry.status == status)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_stats(self, repository_id: int | None = None) -> dict[str, Any]:
        """Count rows by status.

        Returns:
            Dictionary with a count per status and ``total``
        """
        stmt = select(SyncLogEntry.status, func.count(SyncLogEntry.id))
        if repository_id is not None:
            stmt = stmt.where(SyncLogEntry.repository_id == repository_id)
        stmt = stmt.group_by(SyncLogEntry.status)

        result = await self._session.execute(stmt)

        stats: dict[str, Any] = {status.value: 0 for status in SyncLogStatus}
        stats["total"] = 0
        for status, count in result.all():
            stats[status.value] = count
            stats["total"] += count

        return stats
