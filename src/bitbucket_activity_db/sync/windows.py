"""Sync window arithmetic.

Windows are half-open ``[start, end)`` ranges in UTC, aligned to midnight.
Full mode anchors at the start of tomorrow ("end of today") and steps
backward ``batch_days`` at a time; delta mode covers the trailing
``delta_days`` plus today.
"""

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta


@dataclass(frozen=True)
class SyncWindow:
    """One ``[start, end)`` range of one repository."""

    repository_id: int
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"Empty sync window: {self.start} >= {self.end}")

    def __str__(self) -> str:
        return f"{self.start:%Y-%m-%d}..{self.end:%Y-%m-%d}"

    def previous(self, batch_days: int) -> "SyncWindow":
        """The adjacent older window of ``batch_days``."""
        return full_window(self.repository_id, self.start, batch_days)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def start_of_day(value: datetime) -> datetime:
    return as_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_today(now: datetime) -> datetime:
    """Midnight at the start of tomorrow, UTC."""
    return start_of_day(now) + timedelta(days=1)


def full_window(repository_id: int, end: datetime, batch_days: int) -> SyncWindow:
    """The full-mode window ending at ``end``."""
    return SyncWindow(repository_id, end - timedelta(days=batch_days), end)


def delta_window(repository_id: int, now: datetime, delta_days: int) -> SyncWindow:
    """``[today 00:00 - delta_days, tomorrow 00:00)``."""
    end = end_of_today(now)
    return SyncWindow(repository_id, start_of_day(now) - timedelta(days=delta_days), end)
