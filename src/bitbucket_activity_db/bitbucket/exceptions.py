"""Bitbucket client exceptions."""

from datetime import datetime


class BitbucketClientError(Exception):
    """Base exception for Bitbucket client errors."""

    pass


class AuthenticationError(BitbucketClientError):
    """Raised when the token exchange fails or a refreshed token is rejected again (401)."""

    pass


class NotFoundError(BitbucketClientError):
    """Raised when a resource is not found (404). Never retried."""

    pass


class TransportError(BitbucketClientError):
    """Raised for a non-retryable HTTP status or once retries are exhausted."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitBackoff(BitbucketClientError):
    """Controlled wait for a 429 response.

    Never raised to callers; a recovered 429 is only added latency. Once the
    retry budget is spent it is chained as the cause of the ``TransportError``.
    """

    def __init__(self, delay_seconds: float, deadline: datetime) -> None:
        super().__init__(f"Rate limited, backing off {delay_seconds:.1f}s")
        self.delay_seconds = delay_seconds
        self.deadline = deadline
