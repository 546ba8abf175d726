"""Tests for SQLAlchemy ORM models."""

import pytest
from sqlalchemy.exc import IntegrityError

from bitbucket_activity_db.db.models import SyncLogStatus
from tests.factories import (
    make_commit,
    make_pull_request,
    make_repository,
    make_sync_log_entry,
)


class TestRepositoryModel:
    """Tests for Repository model."""

    async def test_create_repository(self, db_session):
        """Test creating a repository."""
        repo = make_repository(db_session, workspace="acme", slug="widgets")
        await db_session.flush()
        await db_session.refresh(repo)

        assert repo.id is not None
        assert repo.full_name == "acme/widgets"
        assert repo.exclude_from_sync is False
        assert repo.last_delta_sync_at is None
        assert "acme/widgets" in repr(repo)

    async def test_repository_unique_workspace_slug(self, db_session):
        """Test that workspace/slug must be unique."""
        make_repository(db_session, uuid="{one}")
        await db_session.flush()

        make_repository(db_session, uuid="{two}")
        with pytest.raises(IntegrityError):
            await db_session.flush()


class TestPullRequestModel:
    """Tests for PullRequest model."""

    async def test_pr_unique_per_repository(self, db_session):
        repo = make_repository(db_session)
        await db_session.flush()
        make_pull_request(db_session, repo, bitbucket_pr_id=7)
        await db_session.flush()

        make_pull_request(db_session, repo, bitbucket_pr_id=7)
        with pytest.raises(IntegrityError):
            await db_session.flush()

    async def test_is_merged(self, db_session):
        repo = make_repository(db_session)
        await db_session.flush()
        pr = make_pull_request(db_session, repo, state="MERGED")

        assert pr.is_merged


class TestCommitModel:
    """Tests for Commit model."""

    async def test_hash_unique(self, db_session):
        repo = make_repository(db_session)
        await db_session.flush()
        make_commit(db_session, repo, hash="c" * 40)
        await db_session.flush()

        make_commit(db_session, repo, hash="c" * 40)
        with pytest.raises(IntegrityError):
            await db_session.flush()

    async def test_commit_links_to_pull_request(self, db_session):
        repo = make_repository(db_session)
        await db_session.flush()
        pr = make_pull_request(db_session, repo)
        await db_session.flush()

        commit = make_commit(db_session, repo, pull_request_id=pr.id)
        await db_session.flush()

        assert commit.pull_request_id == pr.id


class TestSyncLogEntryModel:
    """Tests for SyncLogEntry model."""

    async def test_defaults_to_started(self, db_session):
        repo = make_repository(db_session)
        await db_session.flush()
        entry = make_sync_log_entry(db_session, repo, status=SyncLogStatus.STARTED)
        await db_session.flush()

        assert entry.status == SyncLogStatus.STARTED
        assert entry.entity_type is None

    @pytest.mark.parametrize(
        ("status", "terminal"),
        [
            (SyncLogStatus.STARTED, False),
            (SyncLogStatus.COMPLETED, True),
            (SyncLogStatus.FAILED, True),
            (SyncLogStatus.CANCELLED, True),
        ],
    )
    def test_status_is_terminal(self, status, terminal):
        assert status.is_terminal is terminal
