"""OAuth2 client-credentials token handling.

The bearer token is fetched lazily on first use and cached in memory for
the lifetime of the provider. A 401 from the API invalidates it so the
next request performs a fresh exchange.
"""

from __future__ import annotations

import asyncio

import httpx

from bitbucket_activity_db.logging import get_logger

from .exceptions import AuthenticationError, TransportError

logger = get_logger(__name__)


class TokenProvider:
    """Exchanges consumer credentials for a bearer token and caches it.

    Concurrent callers share a single in-flight exchange.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        token_url: str,
        client_id: str,
        client_secret: str,
    ) -> None:
        self._http = http
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._token: str | None = None
        self._lock = asyncio.Lock()

    @property
    def cached_token(self) -> str | None:
        return self._token

    async def get_token(self) -> str:
        """Return the cached token, exchanging credentials if there is none."""
        if self._token is not None:
            return self._token
        async with self._lock:
            if self._token is None:
                self._token = await self._exchange()
            return self._token

    def invalidate(self, token: str | None = None) -> None:
        """Drop the cached token.

        Args:
            token: When given, only clear if it is still the cached value, so
                a caller holding a stale token cannot discard a fresh one.
        """
        if token is None or token == self._token:
            self._token = None

    async def _exchange(self) -> str:
        if not self._client_id or not self._client_secret:
            raise AuthenticationError(
                "Bitbucket OAuth credentials required. "
                "Set BITBUCKET__CLIENT_ID and BITBUCKET__CLIENT_SECRET."
            )

        logger.debug("Requesting access token from {}", self._token_url)
        try:
            response = await self._http.post(
                self._token_url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Token request failed: {e}") from e

        if response.status_code >= 400:
            raise AuthenticationError(
                f"Token exchange rejected ({response.status_code}): {response.text[:200]}"
            )

        try:
            token = response.json()["access_token"]
        except (ValueError, KeyError) as e:
            raise AuthenticationError("Token response missing access_token") from e

        logger.info("Obtained Bitbucket access token")
        return str(token)
