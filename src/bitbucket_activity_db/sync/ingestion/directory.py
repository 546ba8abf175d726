"""Workspace directory sync: repositories and members.

These run once per workspace before any window is processed. They are not
windowed and write no ledger rows.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from bitbucket_activity_db.db.repositories import RepositoryRepository, UserRepository
from bitbucket_activity_db.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from bitbucket_activity_db.bitbucket.client import BitbucketClient
    from bitbucket_activity_db.cancellation import CancellationToken

logger = get_logger(__name__)


class RepositoryDirectory:
    """Upserts every repository listed under a workspace.

    New repositories are eligible for sync by default; the
    ``exclude_from_sync`` flag of known ones is left alone.
    """

    def __init__(self, client: BitbucketClient, session: AsyncSession) -> None:
        self._client = client
        self._session = session
        self._repos = RepositoryRepository(session)

    async def sync_workspace(
        self,
        workspace: str,
        cancel: CancellationToken | None = None,
    ) -> int:
        count = 0
        created = 0
        async for page in self._client.list_repositories(workspace, cancel=cancel):
            for item in page.items:
                _repo, is_new = await self._repos.upsert_from_api(workspace, item)
                count += 1
                created += int(is_new)
            await self._session.commit()

        logger.info("Synced {} repositories in {} ({} new)", count, workspace, created)
        return count


class UserDirectory:
    """Upserts every member of a workspace."""

    def __init__(self, client: BitbucketClient, session: AsyncSession) -> None:
        self._client = client
        self._session = session
        self._users = UserRepository(session)

    async def sync_workspace(
        self,
        workspace: str,
        cancel: CancellationToken | None = None,
    ) -> int:
        count = 0
        async for page in self._client.list_workspace_members(workspace, cancel=cancel):
            for membership in page.items:
                data = membership.user.to_user_upsert()
                if data is None:
                    logger.debug("Skipping workspace member without uuid in {}", workspace)
                    continue
                await self._users.upsert(data)
                count += 1
            await self._session.commit()

        logger.info("Synced {} users in {}", count, workspace)
        return count
