"""Time source used by the rate-limit gate.

The gate only needs "what time is it" and "sleep for N seconds"; tests
substitute a virtual clock so 429 waits complete instantly.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import Protocol


class Clock(Protocol):
    """Minimal clock interface."""

    def now(self) -> datetime:
        """Current time as a timezone-aware UTC datetime."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for ``seconds``."""
        ...


class SystemClock:
    """Wall clock backed by ``datetime.now`` and ``asyncio.sleep``."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
