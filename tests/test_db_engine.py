"""Tests for database engine and session management."""

from datetime import datetime

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError

from bitbucket_activity_db.db import engine as engine_module
from bitbucket_activity_db.db.engine import (
    create_tables,
    dispose_engine,
    drop_tables,
    get_engine,
    get_session,
)
from bitbucket_activity_db.db.models import Commit, Repository, SyncLogEntry, SyncLogStatus


@pytest.fixture
async def file_database(tmp_path, monkeypatch):
    """Point the process-wide engine at a temporary SQLite file."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await dispose_engine()
    await create_tables()
    yield
    await dispose_engine()


class TestDatabaseEngine:
    """Tests for async SQLAlchemy engine operations."""

    async def test_create_tables(self, test_engine):
        """Test that all tables are created successfully."""
        async with test_engine.connect() as conn:
            result = await conn.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
            tables = {row[0] for row in result.fetchall()}

        assert {
            "repositories",
            "users",
            "pull_requests",
            "commits",
            "repository_sync_log",
        } <= tables

    async def test_engine_is_cached(self, file_database):
        assert get_engine() is get_engine()

    async def test_create_tables_is_idempotent(self, file_database):
        """Running init twice keeps existing rows."""
        async with get_session() as session:
            session.add(Repository(uuid="{r}", workspace="acme", slug="widgets", name="Widgets"))

        await create_tables()

        async with get_session() as session:
            result = await session.execute(select(Repository))
            assert len(result.scalars().all()) == 1

    async def test_session_commits_on_success(self, file_database):
        """Changes are committed when the block exits cleanly."""
        async with get_session() as session:
            repo = Repository(uuid="{r}", workspace="acme", slug="widgets", name="Widgets")
            session.add(repo)
            await session.flush()
            repo_id = repo.id

        async with get_session() as session:
            result = await session.get(Repository, repo_id)
            assert result is not None
            assert result.full_name == "acme/widgets"

    async def test_session_rollbacks_on_error(self, file_database):
        """Test that session rolls back on exception."""
        with pytest.raises(ValueError):
            async with get_session() as session:
                session.add(Repository(uuid="{r}", workspace="acme", slug="gone", name="Gone"))
                await session.flush()
                raise ValueError("Simulated error")

        async with get_session() as session:
            result = await session.execute(
                text("SELECT COUNT(*) FROM repositories WHERE slug = 'gone'")
            )
            assert result.scalar() == 0

    async def test_foreign_keys_enforced(self, file_database):
        """Deleting a repository cascades to its commits."""
        async with get_session() as session:
            repo = Repository(uuid="{r}", workspace="acme", slug="widgets", name="Widgets")
            session.add(repo)
            await session.flush()
            session.add(
                Commit(
                    hash="abc1234",
                    repository_id=repo.id,
                    committed_at=datetime(2024, 1, 15, 10, 0),
                )
            )

        async with get_session() as session:
            await session.execute(text("DELETE FROM repositories"))

        async with get_session() as session:
            result = await session.execute(select(Commit))
            assert result.scalars().all() == []

    async def test_sync_log_blocks_repository_delete(self, file_database):
        """Ledger rows are never removed by deleting their repository."""
        async with get_session() as session:
            repo = Repository(uuid="{r}", workspace="acme", slug="widgets", name="Widgets")
            session.add(repo)
            await session.flush()
            session.add(
                SyncLogEntry(
                    repository_id=repo.id,
                    start_date=datetime(2024, 1, 10),
                    end_date=datetime(2024, 1, 20),
                    status=SyncLogStatus.COMPLETED,
                    synced_at=datetime(2024, 1, 20, 1, 0),
                )
            )

        with pytest.raises(IntegrityError):
            async with get_session() as session:
                await session.execute(text("DELETE FROM repositories"))

        async with get_session() as session:
            result = await session.execute(select(SyncLogEntry))
            assert len(result.scalars().all()) == 1

    async def test_drop_tables(self, file_database):
        await drop_tables()

        async with get_engine().connect() as conn:
            result = await conn.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
            assert result.fetchall() == []

    async def test_dispose_engine_resets_factory(self, file_database):
        get_engine()
        await dispose_engine()

        assert engine_module._engine is None
        assert engine_module._async_session_factory is None
