"""Repository for the Bitbucket Repository model."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bitbucket_activity_db.db.models import Repository
from bitbucket_activity_db.schemas.bitbucket_api import BitbucketRepository

from .base import BaseRepository


class RepositoryRepository(BaseRepository[Repository]):
    """Repository for tracked Bitbucket repositories."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Repository)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_by_uuid(self, uuid: str) -> Repository | None:
        return await self._get_by_field("uuid", uuid)

    async def get_by_workspace_and_slug(self, workspace: str, slug: str) -> Repository | None:
        """Get a repository by workspace and slug.

        Args:
            workspace: Workspace slug (e.g., "acme")
            slug: Repository slug (e.g., "widgets")

        Returns:
            Repository or None if not found
        """
        stmt = select(Repository).where(
            Repository.workspace == workspace,
            Repository.slug == slug,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_eligible(self) -> list[Repository]:
        """Get repositories not excluded from sync, in stable id order."""
        stmt = (
            select(Repository)
            .where(Repository.exclude_from_sync.is_(False))
            .order_by(Repository.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Create/Update Methods
    # -------------------------------------------------------------------------

    async def create(
        self,
        workspace: str,
        slug: str,
        *,
        uuid: str | None = None,
        name: str | None = None,
        exclude_from_sync: bool = False,
    ) -> Repository:
        """Create a new repository row (not yet committed).

        A placeholder uuid of ``workspace/slug`` is used until the
        directory pass replaces it with the real one.
        """
        repo = Repository(
            uuid=uuid or f"{workspace}/{slug}",
            workspace=workspace,
            slug=slug,
            name=name or slug,
            exclude_from_sync=exclude_from_sync,
        )
        self.add(repo)
        await self.flush()
        return repo

    async def get_or_create(self, workspace: str, slug: str) -> tuple[Repository, bool]:
        """Get existing repository or create a new one.

        Returns:
            Tuple of (repository, created) where created is True if new
        """
        existing = await self.get_by_workspace_and_slug(workspace, slug)
        if existing is not None:
            return existing, False

        repo = await self.create(workspace, slug)
        return repo, True

    async def upsert_from_api(
        self,
        workspace: str,
        data: BitbucketRepository,
    ) -> tuple[Repository, bool]:
        """Insert or refresh a repository from an API listing.

        Matches on uuid first, then on workspace/slug so rows registered by
        hand pick up their real uuid. ``exclude_from_sync`` is never touched.

        Returns:
            Tuple of (repository, created)
        """
        repo = await self.get_by_uuid(data.uuid)
        if repo is None:
            repo = await self.get_by_workspace_and_slug(workspace, data.slug)

        if repo is None:
            repo = Repository(
                uuid=data.uuid,
                workspace=workspace,
                slug=data.slug,
                name=data.name,
                created_on=data.created_on,
            )
            self.add(repo)
            await self.flush()
            return repo, True

        repo.uuid = data.uuid
        repo.slug = data.slug
        repo.name = data.name
        repo.created_on = data.created_on
        await self.flush()
        return repo, False

    async def update_last_delta_sync(
        self,
        repository_id: int,
        synced_at: datetime,
    ) -> Repository | None:
        """Record when a delta pass last finished for a repository."""
        repo = await self.get_by_id(repository_id)
        if repo is None:
            return None

        repo.last_delta_sync_at = synced_at
        await self.flush()
        return repo

    async def set_excluded(self, repository_id: int, excluded: bool) -> Repository | None:
        repo = await self.get_by_id(repository_id)
        if repo is None:
            return None

        repo.exclude_from_sync = excluded
        await self.flush()
        return repo
