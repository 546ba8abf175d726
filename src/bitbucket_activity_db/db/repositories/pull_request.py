"""Repository for PullRequest model upserts."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bitbucket_activity_db.db.models import PullRequest
from bitbucket_activity_db.schemas.pr import PRUpsert

from .base import BaseRepository


class PullRequestRepository(BaseRepository[PullRequest]):
    """Repository for PullRequest entities.

    PRs are keyed by (repository_id, bitbucket_pr_id). Every sync refreshes
    the mutable fields; there is no frozen state because a window may be
    re-ingested with ``overwrite`` at any time.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, PullRequest)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_bitbucket_id(
        self,
        repository_id: int,
        bitbucket_pr_id: int,
    ) -> PullRequest | None:
        """Get a PR by repository and Bitbucket PR id.

        Args:
            repository_id: Repository ID
            bitbucket_pr_id: PR id as shown in Bitbucket

        Returns:
            PullRequest or None if not found
        """
        stmt = select(PullRequest).where(
            PullRequest.repository_id == repository_id,
            PullRequest.bitbucket_pr_id == bitbucket_pr_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Create/Update Methods
    # -------------------------------------------------------------------------

    async def upsert(self, data: PRUpsert) -> tuple[PullRequest, bool]:
        """Create a PR if new, otherwise refresh it.

        Returns:
            Tuple of (PullRequest, created) where created=True if new
        """
        existing = await self.get_by_bitbucket_id(data.repository_id, data.bitbucket_pr_id)

        if existing is None:
            pr = PullRequest(**data.model_dump())
            self.add(pr)
            await self.flush()
            return pr, True

        for key, value in data.model_dump(exclude={"repository_id", "bitbucket_pr_id"}).items():
            setattr(existing, key, value)

        await self.flush()
        return existing, False
