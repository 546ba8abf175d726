"""Repository for Commit model upserts."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bitbucket_activity_db.db.models import Commit
from bitbucket_activity_db.schemas.commit import CommitUpsert

from .base import BaseRepository


class CommitRepository(BaseRepository[Commit]):
    """Repository for Commit entities.

    Commits are keyed by hash, so re-ingesting an overlapping window or a
    PR's commits never duplicates rows.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Commit)

    async def get_by_hash(self, hash: str) -> Commit | None:
        return await self._get_by_field("hash", hash)

    async def count_for_repository(self, repository_id: int) -> int:
        stmt = select(func.count()).select_from(Commit).where(Commit.repository_id == repository_id)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def upsert(self, data: CommitUpsert) -> tuple[Commit, bool]:
        """Insert a commit or refresh a known one.

        An existing PR link is kept when the incoming data carries none, so
        the plain commit listing cannot detach a commit from its PR.

        Returns:
            Tuple of (commit, created) where created=True if new
        """
        existing = await self.get_by_hash(data.hash)
        if existing is None:
            commit = Commit(**data.model_dump())
            self.add(commit)
            await self.flush()
            return commit, True

        existing.author_uuid = data.author_uuid
        existing.author_raw = data.author_raw
        existing.message = data.message
        existing.committed_at = data.committed_at
        existing.is_merge = data.is_merge
        existing.is_revert = data.is_revert
        if data.pull_request_id is not None:
            existing.pull_request_id = data.pull_request_id
        await self.flush()
        return existing, False
