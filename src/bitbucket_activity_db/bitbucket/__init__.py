"""Bitbucket API client module.

This module provides:
- BitbucketClient: Async Bitbucket Cloud client, the single chokepoint for API calls
- TokenProvider: OAuth2 client-credentials token cache
- Rate limiting: RateLimitGate, Clock, SystemClock
- Exceptions: BitbucketClientError and subclasses
"""

from .auth import TokenProvider
from .client import BitbucketClient
from .exceptions import (
    AuthenticationError,
    BitbucketClientError,
    NotFoundError,
    RateLimitBackoff,
    TransportError,
)
from .rate_limit import (
    Clock,
    RateLimitGate,
    SystemClock,
    compute_backoff,
    get_default_gate,
    parse_retry_after,
    reset_default_gate,
)

__all__ = [
    # Client
    "BitbucketClient",
    "TokenProvider",
    # Exceptions
    "AuthenticationError",
    "BitbucketClientError",
    "NotFoundError",
    "RateLimitBackoff",
    "TransportError",
    # Rate limiting
    "Clock",
    "RateLimitGate",
    "SystemClock",
    "compute_backoff",
    "get_default_gate",
    "parse_retry_after",
    "reset_default_gate",
]
