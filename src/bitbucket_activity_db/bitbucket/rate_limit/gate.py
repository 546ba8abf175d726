"""Process-wide rate-limit gate.

A 429 from any caller pushes a shared deadline into the future; every
request, including ones that have never failed, waits for that deadline
before going out. The gate is a shared-fault barrier, not a per-call
counter.

The deadline only ever moves forward: concurrent updates keep the
maximum of the current and the proposed deadline.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

from .clock import Clock, SystemClock

if TYPE_CHECKING:
    from bitbucket_activity_db.cancellation import CancellationToken

logger = logging.getLogger(__name__)


def compute_backoff(attempt: int, floor: float, cap: float) -> float:
    """Exponential 429 backoff for the given zero-based attempt.

    ``2 ** (attempt + 4)`` seconds, clamped to ``[floor, cap]``.
    """
    return min(cap, max(floor, float(2 ** (attempt + 4))))


def parse_retry_after(value: str | None, now: datetime) -> float | None:
    """Parse a ``Retry-After`` header into seconds.

    Accepts delta-seconds or an HTTP date. Returns None when the header is
    absent or unparseable so the caller falls back to computed backoff.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        return None
    return max(0.0, (when - now).total_seconds())


class RateLimitGate:
    """Shared deadline before which no outbound request may be issued.

    Usage:
        gate = RateLimitGate()

        await gate.wait_until_clear(cancel)     # before every request
        ...
        if response.status_code == 429:
            gate.raise_for(delay_seconds)       # parks every caller
    """

    def __init__(
        self,
        clock: Clock | None = None,
        heartbeat_seconds: float = 10.0,
    ) -> None:
        """Initialize the gate.

        Args:
            clock: Time source (defaults to the wall clock)
            heartbeat_seconds: Longest single sleep while waiting; one
                heartbeat line is logged per chunk.
        """
        self._clock: Clock = clock or SystemClock()
        self._heartbeat_seconds = heartbeat_seconds
        self._deadline: datetime | None = None
        self._lock = threading.Lock()

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def deadline(self) -> datetime | None:
        """Current reset deadline (None if never rate limited)."""
        with self._lock:
            return self._deadline

    def remaining_seconds(self) -> float:
        """Seconds until the deadline passes (0.0 when clear)."""
        with self._lock:
            deadline = self._deadline
        if deadline is None:
            return 0.0
        return max(0.0, (deadline - self._clock.now()).total_seconds())

    def is_blocked(self) -> bool:
        return self.remaining_seconds() > 0

    def raise_deadline(self, deadline: datetime) -> datetime:
        """Merge a proposed deadline; the later of the two wins.

        Returns:
            The effective deadline after the merge.
        """
        with self._lock:
            if self._deadline is None or deadline > self._deadline:
                self._deadline = deadline
                logger.warning(
                    "Global rate limit set: all API calls pause until %s UTC",
                    deadline.strftime("%H:%M:%S"),
                )
            return self._deadline

    def raise_for(self, delay_seconds: float) -> datetime:
        """Raise the deadline to ``now + delay_seconds``."""
        proposed = self._clock.now() + timedelta(seconds=delay_seconds)
        return self.raise_deadline(proposed)

    async def wait_until_clear(self, cancel: CancellationToken | None = None) -> float:
        """Block until the deadline has passed.

        Sleeps in heartbeat-sized chunks and checks the cancellation token
        before each one.

        Returns:
            Seconds spent waiting.

        Raises:
            CancellationRequested: If the token is cancelled while waiting.
        """
        waited = 0.0
        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()
            remaining = self.remaining_seconds()
            if remaining <= 0:
                return waited
            chunk = min(remaining, self._heartbeat_seconds)
            logger.info("Global rate limit active, %.1fs remaining", remaining)
            await self._clock.sleep(chunk)
            waited += chunk


_default_gate: RateLimitGate | None = None


def get_default_gate() -> RateLimitGate:
    """Get the process-wide gate shared by every client that is not given one."""
    global _default_gate
    if _default_gate is None:
        from bitbucket_activity_db.config import get_settings

        _default_gate = RateLimitGate(
            heartbeat_seconds=get_settings().rate_limit.heartbeat_seconds,
        )
    return _default_gate


def reset_default_gate() -> None:
    """Forget the process-wide gate (primarily for testing)."""
    global _default_gate
    _default_gate = None
