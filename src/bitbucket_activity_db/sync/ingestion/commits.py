"""Commit ingestion for one repository window."""

from __future__ import annotations

from contextlib import aclosing
from datetime import datetime
from typing import TYPE_CHECKING

from bitbucket_activity_db.db.repositories import CommitRepository, RepositoryRepository
from bitbucket_activity_db.logging import bind_repo
from bitbucket_activity_db.sync.enums import EntityType
from bitbucket_activity_db.sync.exceptions import IngestionError
from bitbucket_activity_db.sync.results import IngestionResult
from bitbucket_activity_db.sync.windows import as_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from bitbucket_activity_db.bitbucket.client import BitbucketClient
    from bitbucket_activity_db.cancellation import CancellationToken


class CommitIngestor:
    """Upserts the commits of ``[start, end)``.

    The commit listing is newest first. Commits at or after ``end`` are
    skipped; the first commit before ``start`` ends the scan and marks
    that older history exists. Each page is committed on its own.
    """

    entity_type = EntityType.COMMITS

    def __init__(self, client: BitbucketClient, session: AsyncSession) -> None:
        self._client = client
        self._session = session
        self._repos = RepositoryRepository(session)
        self._commits = CommitRepository(session)

    async def sync(
        self,
        workspace: str,
        repo_slug: str,
        start: datetime,
        end: datetime,
        cancel: CancellationToken | None = None,
    ) -> IngestionResult:
        repo = await self._repos.get_by_workspace_and_slug(workspace, repo_slug)
        if repo is None:
            raise IngestionError(
                f"Repository {workspace}/{repo_slug} is not registered", self.entity_type.value
            )

        log = bind_repo(workspace, repo_slug)
        processed = 0
        has_more = False

        pages = self._client.list_commits(workspace, repo_slug, cancel=cancel)
        async with aclosing(pages):
            async for page in pages:
                for item in page.items:
                    committed_at = as_utc(item.date)
                    if committed_at < start:
                        has_more = True
                        break
                    if committed_at >= end:
                        continue
                    await self._commits.upsert(item.to_commit_upsert(repo.id))
                    processed += 1

                await self._session.commit()

                if has_more or page.is_last:
                    break
                if cancel is not None and cancel.is_cancelled:
                    log.info("Commit sync interrupted after {} commits", processed)
                    return IngestionResult.interrupted(processed)

        log.debug("Synced {} commits (more history: {})", processed, has_more)
        return IngestionResult.finished(processed, has_more_history=has_more)
