"""Cooperative cancellation shared by the client and the orchestrator."""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Iterable

from bitbucket_activity_db.logging import get_logger

logger = get_logger(__name__)


class CancellationRequested(Exception):
    """Raised when a sync run observes a cancellation request."""

    def __init__(self, message: str = "Cancellation requested") -> None:
        super().__init__(message)


class CancellationToken:
    """One-shot cancellation flag threaded through every awaited step.

    Usage:
        token = CancellationToken()
        token.install_signal_handlers()   # SIGINT / SIGTERM -> cancel()

        token.raise_if_cancelled()        # before each network-bound step
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "Cancellation requested") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()
            logger.warning("Cancellation requested: {}", reason)

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancellationRequested(self._reason or "Cancellation requested")

    async def wait(self) -> None:
        await self._event.wait()

    def install_signal_handlers(
        self,
        signals: Iterable[signal.Signals] = (signal.SIGINT, signal.SIGTERM),
    ) -> None:
        """Route process signals to :meth:`cancel` on the running loop.

        Platforms without ``loop.add_signal_handler`` (Windows) keep the
        default handlers.
        """
        loop = asyncio.get_running_loop()
        for sig in signals:
            try:
                loop.add_signal_handler(sig, self.cancel, f"received {sig.name}")
            except (NotImplementedError, RuntimeError, ValueError):
                logger.debug("Signal handlers unavailable for {}", sig.name)
