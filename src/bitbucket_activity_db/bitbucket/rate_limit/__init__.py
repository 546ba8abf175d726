"""Rate limiting for the Bitbucket API.

This module provides:
- RateLimitGate: shared 429 deadline that every request waits on
- Clock / SystemClock: injectable time source for the gate
- compute_backoff / parse_retry_after: delay calculation helpers
"""

from .clock import Clock, SystemClock
from .gate import (
    RateLimitGate,
    compute_backoff,
    get_default_gate,
    parse_retry_after,
    reset_default_gate,
)

__all__ = [
    "Clock",
    "RateLimitGate",
    "SystemClock",
    "compute_backoff",
    "get_default_gate",
    "parse_retry_after",
    "reset_default_gate",
]
