"""Pull request ingestion for one repository window."""

from __future__ import annotations

from contextlib import aclosing
from datetime import datetime
from typing import TYPE_CHECKING

from bitbucket_activity_db.bitbucket.exceptions import NotFoundError
from bitbucket_activity_db.db.repositories import (
    CommitRepository,
    PullRequestRepository,
    RepositoryRepository,
)
from bitbucket_activity_db.logging import bind_repo
from bitbucket_activity_db.sync.enums import EntityType
from bitbucket_activity_db.sync.exceptions import IngestionError
from bitbucket_activity_db.sync.results import IngestionResult
from bitbucket_activity_db.sync.windows import as_utc

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from bitbucket_activity_db.bitbucket.client import BitbucketClient
    from bitbucket_activity_db.cancellation import CancellationToken


class PullRequestIngestor:
    """Upserts pull requests updated in the window, with their commits.

    The remote filter is ``start <= updated_on < end``, over every PR
    state. A PR created before ``start`` means older history exists. Each
    PR's commits are linked to the PR row; a 404 on that listing (deleted
    source branch, empty PR) is logged and skipped.

    ``items_processed`` counts PRs plus commits written through them.
    """

    entity_type = EntityType.PULL_REQUESTS

    def __init__(self, client: BitbucketClient, session: AsyncSession) -> None:
        self._client = client
        self._session = session
        self._repos = RepositoryRepository(session)
        self._prs = PullRequestRepository(session)
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

        pages = self._client.list_pull_requests(workspace, repo_slug, start, end, cancel=cancel)
        async with aclosing(pages):
            async for page in pages:
                for item in page.items:
                    if as_utc(item.created_on) < start:
                        has_more = True

                    pr, _created = await self._prs.upsert(item.to_pr_upsert(repo.id))
                    processed += 1

                    if cancel is not None and cancel.is_cancelled:
                        await self._session.commit()
                        log.info("PR sync interrupted after PR #{}", item.id)
                        return IngestionResult.interrupted(processed)

                    processed += await self._sync_pr_commits(
                        workspace, repo_slug, item.id, repo.id, pr.id, cancel
                    )

                await self._session.commit()

                # Updated-on filtering does not bound creation dates, so the
                # scan stops at the first page that reaches past the window.
                if has_more or page.is_last:
                    break
                if cancel is not None and cancel.is_cancelled:
                    return IngestionResult.interrupted(processed)

        log.debug("Synced {} PR items (more history: {})", processed, has_more)
        return IngestionResult.finished(processed, has_more_history=has_more)

    async def _sync_pr_commits(
        self,
        workspace: str,
        repo_slug: str,
        bitbucket_pr_id: int,
        repository_id: int,
        pr_row_id: int,
        cancel: CancellationToken | None,
    ) -> int:
        count = 0
        pages = self._client.list_pull_request_commits(
            workspace, repo_slug, bitbucket_pr_id, cancel=cancel
        )
        try:
            async with aclosing(pages):
                async for page in pages:
                    for item in page.items:
                        await self._commits.upsert(
                            item.to_commit_upsert(repository_id, pull_request_id=pr_row_id)
                        )
                        count += 1
        except NotFoundError:
            bind_repo(workspace, repo_slug).warning(
                "PR #{} has no accessible commits, skipping its commit sync", bitbucket_pr_id
            )
        return count
