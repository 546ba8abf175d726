"""Async SQLAlchemy engine and session management.

One engine per process, created lazily from ``Settings.database_url``.
SQLite connections get ``PRAGMA foreign_keys=ON`` so repository deletes
cascade to commits and pull requests, and are refused while ledger rows exist.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, pool
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bitbucket_activity_db.config import get_settings
from bitbucket_activity_db.db.models import Base
from bitbucket_activity_db.logging import get_logger

logger = get_logger(__name__)

_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str) -> AsyncEngine:
    """Create an engine for ``database_url`` with the project's defaults.

    NullPool keeps SQLite from holding a file lock between sessions.
    """
    engine = create_async_engine(database_url, future=True, poolclass=pool.NullPool)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def get_engine() -> AsyncEngine:
    """Get or create the process-wide async engine."""
    global _engine
    if _engine is None:
        url = get_settings().database_url
        _engine = build_engine(url)
        logger.debug(
            "Created database engine for {}",
            _engine.url.render_as_string(hide_password=True),
        )
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the async session factory.

    ``expire_on_commit=False`` because the ledger commits mid-window and
    the orchestrator keeps using the loaded repository rows afterwards.
    """
    global _async_session_factory
    if _async_session_factory is None:
        _async_session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_factory


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session that commits on clean exit.

    Usage:
        async with get_session() as session:
            repos = await RepositoryRepository(session).get_eligible()
    """
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except BaseException:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create all tables that do not exist yet (``bbactivity db init``)."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables() -> None:
    """Drop all tables. Deletes all data."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_factory = None
