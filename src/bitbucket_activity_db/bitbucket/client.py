"""Async Bitbucket Cloud API client.

Every outbound API call goes through :meth:`BitbucketClient.fetch`, which
waits on the shared rate-limit gate, attaches the bearer token, and applies
the retry policy:

- 401: drop the cached token and retry once
- 429: push the shared gate deadline forward, then retry
- 5xx / connection errors: per-call ``2 ** attempt`` backoff, then retry
- 404: :class:`NotFoundError`, never retried
- anything else non-2xx: :class:`TransportError`

429 and transient retries share one budget of ``max_retries``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from bitbucket_activity_db.config import BitbucketConfig, RateLimitConfig, get_settings
from bitbucket_activity_db.logging import get_logger
from bitbucket_activity_db.schemas.bitbucket_api import (
    BitbucketCommit,
    BitbucketPullRequest,
    BitbucketRepository,
    Page,
    WorkspaceMembership,
)

from .auth import TokenProvider
from .exceptions import (
    AuthenticationError,
    BitbucketClientError,
    NotFoundError,
    RateLimitBackoff,
    TransportError,
)
from .rate_limit import RateLimitGate, compute_backoff, get_default_gate, parse_retry_after

if TYPE_CHECKING:
    from bitbucket_activity_db.cancellation import CancellationToken

logger = get_logger(__name__)

ItemT = TypeVar("ItemT", bound=BaseModel)

PR_STATES = ("OPEN", "MERGED", "DECLINED", "SUPERSEDED")
PAGE_LEN = 50


def format_query_time(value: datetime) -> str:
    """Format a datetime for a BBQL filter (``2024-01-31T00:00:00Z``)."""
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


class BitbucketClient:
    """Async Bitbucket API client with shared rate limiting.

    Usage:
        async with BitbucketClient() as client:
            async for page in client.list_commits("acme", "widgets"):
                for commit in page.items:
                    print(commit.hash)

    Or without context manager:
        client = BitbucketClient()
        payload = await client.fetch("repositories/acme")
        await client.close()
    """

    def __init__(
        self,
        config: BitbucketConfig | None = None,
        rate_limit: RateLimitConfig | None = None,
        *,
        gate: RateLimitGate | None = None,
        http: httpx.AsyncClient | None = None,
        token_provider: TokenProvider | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: API endpoints and credentials. Defaults to settings.
            rate_limit: Backoff and retry limits. Defaults to settings.
            gate: Shared rate-limit gate. Defaults to the process-wide gate.
            http: Preconfigured HTTP client (tests pass one backed by
                ``httpx.MockTransport``). The caller keeps ownership.
            token_provider: Token source. Defaults to a client-credentials
                provider using ``config``.
        """
        settings = None
        if config is None or rate_limit is None:
            settings = get_settings()
        self._config = config or settings.bitbucket  # type: ignore[union-attr]
        self._limits = rate_limit or settings.rate_limit  # type: ignore[union-attr]
        self._gate = gate or get_default_gate()

        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=self._config.timeout_seconds)
        self._base_url = httpx.URL(self._config.api_base_url.rstrip("/") + "/")
        self._tokens = token_provider or TokenProvider(
            self._http,
            self._config.token_url,
            self._config.client_id,
            self._config.client_secret,
        )

    @property
    def gate(self) -> RateLimitGate:
        """Access the rate-limit gate this client waits on."""
        return self._gate

    @property
    def token_provider(self) -> TokenProvider:
        return self._tokens

    async def close(self) -> None:
        """Close the underlying HTTP client if this client created it."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> BitbucketClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Core request path
    # -------------------------------------------------------------------------
    def resolve_url(self, path_or_cursor: str) -> httpx.URL:
        """Resolve a relative resource path; absolute cursors pass unchanged."""
        url = httpx.URL(path_or_cursor)
        if url.is_absolute_url:
            return url
        return self._base_url.join(path_or_cursor.lstrip("/"))

    async def fetch(
        self,
        path_or_cursor: str,
        *,
        params: Any = None,
        cancel: CancellationToken | None = None,
    ) -> dict[str, Any]:
        """GET a resource and decode its JSON body.

        Args:
            path_or_cursor: Relative resource path or absolute ``next`` URL
            params: Query parameters (only meaningful for first pages;
                cursors already carry theirs)
            cancel: Cancellation token checked before every attempt

        Raises:
            AuthenticationError: Token exchange failed or a refreshed token
                was rejected again
            NotFoundError: HTTP 404
            TransportError: Other non-2xx status, or retries exhausted
            CancellationRequested: Cancelled while waiting or retrying
        """
        response = await self._send(self.resolve_url(path_or_cursor), params, cancel)
        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON from {response.request.url}", response.status_code
            ) from e
        if not isinstance(payload, dict):
            raise TransportError(
                f"Unexpected payload from {response.request.url}", response.status_code
            )
        return payload

    async def _send(
        self,
        url: httpx.URL,
        params: Any,
        cancel: CancellationToken | None,
    ) -> httpx.Response:
        attempt = 0
        reauthenticated = False

        while True:
            if cancel is not None:
                cancel.raise_if_cancelled()
            await self._gate.wait_until_clear(cancel)
            token = await self._tokens.get_token()

            try:
                response = await self._http.get(
                    url,
                    params=params,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "Accept": "application/json",
                    },
                )
            except httpx.TransportError as e:
                if attempt >= self._limits.max_retries:
                    raise TransportError(
                        f"GET {url} failed after {attempt} retries: {e}"
                    ) from e
                await self._transient_backoff(attempt, url, str(e) or type(e).__name__, cancel)
                attempt += 1
                continue

            status = response.status_code
            if response.is_success:
                return response

            if status == 401:
                self._tokens.invalidate(token)
                if reauthenticated:
                    raise AuthenticationError(f"Access token rejected for {url}")
                logger.info("Access token rejected, refreshing and retrying once")
                reauthenticated = True
                continue

            if status == 429:
                delay, deadline = self._rate_limit_backoff(response, attempt)
                if attempt >= self._limits.max_retries:
                    raise TransportError(
                        f"GET {url} still rate limited after {attempt} retries", status
                    ) from RateLimitBackoff(delay, deadline)
                logger.warning(
                    "429 from {} (attempt {}), backing off {:.1f}s",
                    url.path,
                    attempt + 1,
                    delay,
                )
                attempt += 1
                continue

            if status == 404:
                raise NotFoundError(f"Resource not found: {url}")

            if status >= 500:
                if attempt >= self._limits.max_retries:
                    raise TransportError(
                        f"GET {url} returned {status} after {attempt} retries", status
                    )
                await self._transient_backoff(attempt, url, f"HTTP {status}", cancel)
                attempt += 1
                continue

            raise TransportError(f"GET {url} returned {status}: {response.text[:200]}", status)

    def _rate_limit_backoff(
        self, response: httpx.Response, attempt: int
    ) -> tuple[float, datetime]:
        """Push the shared deadline forward; returns the delay and the merged deadline."""
        clock = self._gate.clock
        delay = parse_retry_after(response.headers.get("Retry-After"), clock.now())
        if delay is None:
            delay = compute_backoff(
                attempt,
                self._limits.backoff_floor_seconds,
                self._limits.backoff_cap_seconds,
            )
        deadline = self._gate.raise_for(delay)
        return delay, deadline

    async def _transient_backoff(
        self,
        attempt: int,
        url: httpx.URL,
        reason: str,
        cancel: CancellationToken | None,
    ) -> None:
        delay = float(2**attempt)
        logger.warning(
            "Transient failure on {} ({}), retry {} in {:.0f}s",
            url.path,
            reason,
            attempt + 1,
            delay,
        )
        if cancel is not None:
            cancel.raise_if_cancelled()
        await self._gate.clock.sleep(delay)

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------
    async def fetch_page(
        self,
        path_or_cursor: str,
        item_model: type[ItemT],
        *,
        params: Any = None,
        cancel: CancellationToken | None = None,
    ) -> Page[ItemT]:
        """Fetch one page and decode it as ``Page[item_model]``."""
        payload = await self.fetch(path_or_cursor, params=params, cancel=cancel)
        try:
            return Page[item_model].model_validate(payload)  # type: ignore[valid-type]
        except ValidationError as e:
            raise BitbucketClientError(
                f"Malformed {item_model.__name__} page from {path_or_cursor}: {e}"
            ) from e

    async def iter_pages(
        self,
        path: str,
        item_model: type[ItemT],
        *,
        params: Any = None,
        cancel: CancellationToken | None = None,
    ) -> AsyncGenerator[Page[ItemT], None]:
        """Follow ``next`` cursors lazily, yielding one page at a time.

        Callers may stop iterating early; no further pages are fetched.
        """
        page = await self.fetch_page(path, item_model, params=params, cancel=cancel)
        yield page
        while page.next_cursor:
            page = await self.fetch_page(page.next_cursor, item_model, cancel=cancel)
            yield page

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------
    def list_commits(
        self,
        workspace: str,
        repo_slug: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> AsyncGenerator[Page[BitbucketCommit], None]:
        """Commits of a repository, newest first."""
        return self.iter_pages(
            f"repositories/{workspace}/{repo_slug}/commits",
            BitbucketCommit,
            params={"pagelen": PAGE_LEN},
            cancel=cancel,
        )

    def list_pull_requests(
        self,
        workspace: str,
        repo_slug: str,
        start: datetime,
        end: datetime,
        *,
        cancel: CancellationToken | None = None,
    ) -> AsyncGenerator[Page[BitbucketPullRequest], None]:
        """Pull requests in any state updated within ``[start, end)``."""
        query = (
            f"updated_on >= {format_query_time(start)} "
            f"AND updated_on < {format_query_time(end)}"
        )
        params: list[tuple[str, str | int]] = [("q", query), ("pagelen", PAGE_LEN)]
        params.extend(("state", state) for state in PR_STATES)
        return self.iter_pages(
            f"repositories/{workspace}/{repo_slug}/pullrequests",
            BitbucketPullRequest,
            params=params,
            cancel=cancel,
        )

    def list_pull_request_commits(
        self,
        workspace: str,
        repo_slug: str,
        pr_id: int,
        *,
        cancel: CancellationToken | None = None,
    ) -> AsyncGenerator[Page[BitbucketCommit], None]:
        return self.iter_pages(
            f"repositories/{workspace}/{repo_slug}/pullrequests/{pr_id}/commits",
            BitbucketCommit,
            params={"pagelen": PAGE_LEN},
            cancel=cancel,
        )

    def list_repositories(
        self,
        workspace: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> AsyncGenerator[Page[BitbucketRepository], None]:
        return self.iter_pages(
            f"repositories/{workspace}",
            BitbucketRepository,
            params={"pagelen": 100},
            cancel=cancel,
        )

    def list_workspace_members(
        self,
        workspace: str,
        *,
        cancel: CancellationToken | None = None,
    ) -> AsyncGenerator[Page[WorkspaceMembership], None]:
        return self.iter_pages(
            f"workspaces/{workspace}/members",
            WorkspaceMembership,
            params={"pagelen": 100},
            cancel=cancel,
        )
