"""Pytest configuration and shared fixtures.

Usage Guide:
- For ORM model tests: import factories from tests.factories
- For API payloads: import builders from tests.fixtures.bitbucket_responses
- For client tests: use ``virtual_clock`` + ``make_client`` so 429 waits are instant
- For orchestrator tests: use fakes from tests.fixtures.fakes
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from bitbucket_activity_db.bitbucket import BitbucketClient, RateLimitGate, reset_default_gate
from bitbucket_activity_db.config import BitbucketConfig, RateLimitConfig, get_settings
from bitbucket_activity_db.db.models import Base

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# A fixed "now" keeps window arithmetic deterministic across tests.
# -----------------------------------------------------------------------------

NOW = datetime(2024, 3, 15, 12, 30, 0, tzinfo=UTC)  # mid-day, so windows align to midnight
TODAY = datetime(2024, 3, 15, tzinfo=UTC)
TOMORROW = datetime(2024, 3, 16, tzinfo=UTC)  # full-mode anchor

JAN_10 = datetime(2024, 1, 10, 9, 0, 0, tzinfo=UTC)
JAN_15 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)
JAN_20 = datetime(2024, 1, 20, 16, 0, 0, tzinfo=UTC)

API_BASE = "https://api.bitbucket.test/2.0/"
TOKEN_URL = "https://bitbucket.test/site/oauth2/access_token"


# -----------------------------------------------------------------------------
# Virtual Clock
# -----------------------------------------------------------------------------
class VirtualClock:
    """Clock whose sleeps complete immediately but advance virtual time.

    ``sleep`` yields to the event loop once before moving time forward, so
    concurrent sleepers interleave the way they would on a real clock.
    """

    def __init__(self, start: datetime = NOW) -> None:
        self._now = start
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self._now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        target = self._now + timedelta(seconds=seconds)
        await asyncio.sleep(0)
        if target > self._now:
            self._now = target

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


# -----------------------------------------------------------------------------
# Global State Reset
# -----------------------------------------------------------------------------
@pytest.fixture(autouse=True)
def reset_global_state():
    """Clear cached settings and the process-wide rate-limit gate."""
    get_settings.cache_clear()
    reset_default_gate()
    yield
    get_settings.cache_clear()
    reset_default_gate()


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
async def test_engine():
    """Create an in-memory SQLite engine for tests.

    Each test gets a fresh database with all tables created.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create an async session with auto-rollback.

    Uncommitted changes are rolled back after each test. The sync ledger
    commits, so tests needing isolation get a fresh engine anyway.
    """
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


# -----------------------------------------------------------------------------
# Client Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def virtual_clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def gate(virtual_clock) -> RateLimitGate:
    """Rate-limit gate on the virtual clock."""
    return RateLimitGate(clock=virtual_clock, heartbeat_seconds=10.0)


@pytest.fixture
def bitbucket_config() -> BitbucketConfig:
    return BitbucketConfig(
        api_base_url=API_BASE,
        token_url=TOKEN_URL,
        client_id="consumer-key",
        client_secret="consumer-secret",
    )


@pytest.fixture
async def make_client(bitbucket_config, gate):
    """Factory for a BitbucketClient backed by ``httpx.MockTransport``.

    Usage:
        client = make_client(handler)
        client = make_client(handler, max_retries=1)

    The handler only sees API requests; the token endpoint is answered
    here with ``token-1``, ``token-2``, ... on successive exchanges.
    """
    http_clients: list[httpx.AsyncClient] = []

    def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        **limits: float,
    ) -> BitbucketClient:
        exchanges = 0

        def _route(request: httpx.Request) -> httpx.Response:
            nonlocal exchanges
            if str(request.url) == TOKEN_URL:
                exchanges += 1
                return httpx.Response(200, json={"access_token": f"token-{exchanges}"})
            return handler(request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(_route))
        http_clients.append(http)
        return BitbucketClient(
            bitbucket_config,
            RateLimitConfig(**limits),
            gate=gate,
            http=http,
        )

    yield _make

    for http in http_clients:
        await http.aclose()
