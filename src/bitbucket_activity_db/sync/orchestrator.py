"""Sync Orchestrator - window-based sync of every eligible repository.

Full mode walks each repository's history backward from the end of today
in ``batch_days`` windows, one window per repository per round, until every
repository reports that no older history exists. Delta mode syncs one
trailing window per enabled entity type and stops.

Every window attempt is recorded in the sync ledger: ``started`` before
the ingestors run, then exactly one of ``completed``, ``failed`` or
``cancelled``. Completed full-mode windows are skipped on later runs
unless ``overwrite`` is set, which is what makes a full backfill resumable.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bitbucket_activity_db.bitbucket.rate_limit import Clock, SystemClock
from bitbucket_activity_db.cancellation import CancellationRequested, CancellationToken
from bitbucket_activity_db.config import SyncConfig, get_settings
from bitbucket_activity_db.db.models import Repository, SyncLogStatus
from bitbucket_activity_db.db.repositories import RepositoryRepository, SyncLogRepository
from bitbucket_activity_db.logging import LogContext, bind_window, get_logger

from .enums import EntityType, SyncMode, WindowAction
from .ingestion import (
    CommitIngestor,
    Ingestor,
    PullRequestIngestor,
    RepositoryDirectory,
    UserDirectory,
)
from .results import SyncRunResult, WindowOutcome
from .windows import SyncWindow, delta_window, end_of_today, full_window

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

    from bitbucket_activity_db.bitbucket.client import BitbucketClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class RepoRef:
    """Detached snapshot of a repository row.

    A rollback expires ORM instances, and reloading them lazily is not
    possible under asyncio, so the orchestrator works from plain values.
    """

    id: int
    workspace: str
    slug: str

    @classmethod
    def from_model(cls, repo: Repository) -> RepoRef:
        return cls(id=repo.id, workspace=repo.workspace, slug=repo.slug)

    @property
    def full_name(self) -> str:
        return f"{self.workspace}/{self.slug}"


@dataclass
class _Cursor:
    """Full-mode progress of one repository within a run."""

    end: datetime
    failures: int = 0


class SyncOrchestrator:
    """Runs full or delta sync over every eligible repository.

    Usage:
        async with BitbucketClient() as client, get_session() as session:
            orchestrator = SyncOrchestrator.create(client, session, cancel=token)
            result = await orchestrator.run()

    Or with explicit collaborators (tests pass fakes):
        orchestrator = SyncOrchestrator(
            session,
            ingestors=[FakeIngestor(EntityType.COMMITS)],
            config=SyncConfig(batch_days=10),
            clock=virtual_clock,
        )
    """

    def __init__(
        self,
        session: AsyncSession,
        ingestors: Sequence[Ingestor],
        *,
        config: SyncConfig | None = None,
        repository_directory: RepositoryDirectory | None = None,
        user_directory: UserDirectory | None = None,
        clock: Clock | None = None,
        cancel: CancellationToken | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            session: Session shared by the ledger and the ingestors
            ingestors: Windowed ingestors; those whose entity type is
                disabled in ``config.targets`` are not called
            config: Sync settings (defaults to ``Settings.sync``)
            repository_directory: Pre-pass for the ``repositories`` target
            user_directory: Pre-pass for the ``users`` target
            clock: Source of "now" for window anchoring
            cancel: Cooperative cancellation token
        """
        self._session = session
        self._config = config or get_settings().sync
        self._repository_directory = repository_directory
        self._user_directory = user_directory
        self._clock: Clock = clock or SystemClock()
        self._cancel = cancel or CancellationToken()
        self._repos = RepositoryRepository(session)
        self._log = SyncLogRepository(session)
        self._ingestors = [i for i in ingestors if self._target_enabled(i.entity_type)]
        self._last_result: SyncRunResult | None = None

    @classmethod
    def create(
        cls,
        client: BitbucketClient,
        session: AsyncSession,
        *,
        config: SyncConfig | None = None,
        cancel: CancellationToken | None = None,
    ) -> SyncOrchestrator:
        """Build an orchestrator wired to the real ingestors.

        The gate's clock is reused so window anchoring and rate-limit waits
        share one notion of time.
        """
        return cls(
            session,
            ingestors=[CommitIngestor(client, session), PullRequestIngestor(client, session)],
            config=config,
            repository_directory=RepositoryDirectory(client, session),
            user_directory=UserDirectory(client, session),
            clock=client.gate.clock,
            cancel=cancel,
        )

    @property
    def cancel_token(self) -> CancellationToken:
        return self._cancel

    @property
    def last_result(self) -> SyncRunResult | None:
        """Result of the latest run, including one that ended on cancellation."""
        return self._last_result

    def _target_enabled(self, entity_type: EntityType) -> bool:
        targets = self._config.targets
        if entity_type is EntityType.COMMITS:
            return targets.commits
        return targets.pull_requests

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------
    async def run(self, mode: SyncMode | None = None) -> SyncRunResult:
        """Run one sync pass.

        Args:
            mode: Overrides ``config.mode`` for this run

        Returns:
            SyncRunResult with per-window outcomes

        Raises:
            CancellationRequested: If cancellation was requested; the window
                in progress is recorded as cancelled first
        """
        mode = mode or SyncMode(self._config.mode)
        result = SyncRunResult(mode=mode)
        self._last_result = result
        started = time.monotonic()

        logger.info(
            "Starting {} sync (batch_days={}, delta_days={}, overwrite={}, entities={})",
            mode.value,
            self._config.batch_days,
            self._config.delta_sync_days,
            self._config.overwrite,
            [i.entity_type.value for i in self._ingestors] or "none",
        )

        try:
            with LogContext(run_mode=mode.value):
                repos = await self._directory_pass(result)
                if mode is SyncMode.FULL:
                    await self._run_full(repos, result)
                else:
                    await self._run_delta(repos, result)
        except (CancellationRequested, asyncio.CancelledError):
            result.cancelled = True
            logger.warning("Sync cancelled after {} windows", len(result.outcomes))
            raise
        finally:
            result.duration_seconds = time.monotonic() - started

        logger.info(
            "{} sync complete: windows completed={}, skipped={}, failed={}, items={}, "
            "repos completed={}, abandoned={} ({:.1f}s)",
            mode.value.capitalize(),
            result.windows_completed,
            result.windows_skipped,
            result.windows_failed,
            result.items_processed,
            len(result.repositories_completed),
            len(result.repositories_abandoned),
            result.duration_seconds,
        )
        return result

    # -------------------------------------------------------------------------
    # Directory pre-pass
    # -------------------------------------------------------------------------
    async def _directory_pass(self, result: SyncRunResult) -> list[RepoRef]:
        """Sync members and repositories per workspace, then load the repo list.

        Failures here are logged and do not stop the run.
        """
        repos = [RepoRef.from_model(r) for r in await self._repos.get_eligible()]
        workspaces = sorted({r.workspace for r in repos})
        targets = self._config.targets

        for workspace in workspaces:
            if targets.users and self._user_directory is not None:
                self._cancel.raise_if_cancelled()
                try:
                    result.users_synced += await self._user_directory.sync_workspace(
                        workspace, self._cancel
                    )
                except CancellationRequested:
                    raise
                except Exception as e:
                    await self._session.rollback()
                    logger.error("User sync failed for workspace {}: {}", workspace, e)

            if targets.repositories and self._repository_directory is not None:
                self._cancel.raise_if_cancelled()
                try:
                    result.repositories_synced += await self._repository_directory.sync_workspace(
                        workspace, self._cancel
                    )
                except CancellationRequested:
                    raise
                except Exception as e:
                    await self._session.rollback()
                    logger.error("Repository sync failed for workspace {}: {}", workspace, e)

        if workspaces and targets.repositories and self._repository_directory is not None:
            repos = [RepoRef.from_model(r) for r in await self._repos.get_eligible()]
        return repos

    # -------------------------------------------------------------------------
    # Full mode
    # -------------------------------------------------------------------------
    async def _run_full(self, repos: list[RepoRef], result: SyncRunResult) -> None:
        if not self._ingestors:
            logger.warning("No windowed entity types enabled, nothing to sync")
            return

        anchor = end_of_today(self._clock.now())
        batch_days = self._config.batch_days
        cursors = {repo.id: _Cursor(end=anchor) for repo in repos}
        pending = list(repos)

        while pending:
            result.rounds += 1
            logger.debug("Round {}: {} repositories pending", result.rounds, len(pending))

            for repo in list(pending):
                self._cancel.raise_if_cancelled()
                cursor = cursors[repo.id]
                window = full_window(repo.id, cursor.end, batch_days)
                outcome = await self._process_full_window(repo, window, result)

                if outcome.action is WindowAction.SKIPPED:
                    cursor.end = window.start
                elif outcome.action is WindowAction.FAILED:
                    cursor.failures += 1
                    if cursor.failures >= self._config.max_window_attempts:
                        logger.error(
                            "Giving up on {} for this run: window {} failed {} times",
                            repo.full_name,
                            window,
                            cursor.failures,
                        )
                        result.repositories_abandoned.append(repo.full_name)
                        pending.remove(repo)
                elif outcome.has_more_history:
                    cursor.end = window.start
                    cursor.failures = 0
                else:
                    logger.info("{} fully synced back to {:%Y-%m-%d}", repo.full_name, window.start)
                    result.repositories_completed.append(repo.full_name)
                    pending.remove(repo)

    async def _process_full_window(
        self,
        repo: RepoRef,
        window: SyncWindow,
        result: SyncRunResult,
    ) -> WindowOutcome:
        log = bind_window(repo.workspace, repo.slug, window.start, window.end)

        if not self._config.overwrite:
            existing = await self._log.find_completed(repo.id, window.start, window.end)
            if existing is not None:
                log.debug("Window {} already completed (log #{}), skipping", window, existing)
                return result.record(
                    WindowOutcome(repo.full_name, window, WindowAction.SKIPPED)
                )

        log.info("Syncing window {}", window)
        log_id = await self._log.insert(window)
        items = 0
        has_more = False

        try:
            for ingestor in self._ingestors:
                self._cancel.raise_if_cancelled()
                ingested = await ingestor.sync(
                    repo.workspace, repo.slug, window.start, window.end, self._cancel
                )
                items += ingested.items_processed
                has_more = has_more or ingested.has_more_history
                if ingested.cancelled:
                    raise CancellationRequested(
                        self._cancel.reason or f"{ingestor.entity_type.value} sync cancelled"
                    )
        except (CancellationRequested, asyncio.CancelledError) as e:
            await self._finish(log_id, SyncLogStatus.CANCELLED, str(e) or "Cancelled", items)
            result.record(
                WindowOutcome(
                    repo.full_name,
                    window,
                    WindowAction.CANCELLED,
                    items_processed=items,
                    log_id=log_id,
                    error=str(e) or "Cancelled",
                )
            )
            raise
        except Exception as e:
            message = f"{type(e).__name__}: {e}"
            log.error("Window {} failed: {}", window, message)
            await self._finish(log_id, SyncLogStatus.FAILED, message, items)
            return result.record(
                WindowOutcome(
                    repo.full_name,
                    window,
                    WindowAction.FAILED,
                    items_processed=items,
                    log_id=log_id,
                    error=message,
                )
            )

        await self._log.complete(log_id, SyncLogStatus.COMPLETED, None, items)
        log.info("Window {} completed: {} items, more history: {}", window, items, has_more)
        return result.record(
            WindowOutcome(
                repo.full_name,
                window,
                WindowAction.COMPLETED,
                items_processed=items,
                has_more_history=has_more,
                log_id=log_id,
            )
        )

    # -------------------------------------------------------------------------
    # Delta mode
    # -------------------------------------------------------------------------
    async def _run_delta(self, repos: list[RepoRef], result: SyncRunResult) -> None:
        now = self._clock.now()
        result.rounds = 1

        for repo in repos:
            self._cancel.raise_if_cancelled()
            window = delta_window(repo.id, now, self._config.delta_sync_days)
            failed = False

            for ingestor in self._ingestors:
                outcome = await self._process_delta_entity(repo, window, ingestor, result)
                failed = failed or outcome.action is WindowAction.FAILED

            if self._ingestors and not failed:
                await self._repos.update_last_delta_sync(repo.id, now)
                await self._session.commit()
                result.repositories_completed.append(repo.full_name)

    async def _process_delta_entity(
        self,
        repo: RepoRef,
        window: SyncWindow,
        ingestor: Ingestor,
        result: SyncRunResult,
    ) -> WindowOutcome:
        entity = ingestor.entity_type
        log = bind_window(repo.workspace, repo.slug, window.start, window.end)
        self._cancel.raise_if_cancelled()

        log.info("Delta sync of {} for {}", entity.value, window)
        log_id = await self._log.insert(window, entity_type=entity.value)

        try:
            ingested = await ingestor.sync(
                repo.workspace, repo.slug, window.start, window.end, self._cancel
            )
            if ingested.cancelled:
                raise CancellationRequested(
                    self._cancel.reason or f"{entity.value} sync cancelled"
                )
        except (CancellationRequested, asyncio.CancelledError) as e:
            await self._finish(log_id, SyncLogStatus.CANCELLED, str(e) or "Cancelled", None)
            result.record(
                WindowOutcome(
                    repo.full_name,
                    window,
                    WindowAction.CANCELLED,
                    entity_type=entity,
                    log_id=log_id,
                    error=str(e) or "Cancelled",
                )
            )
            raise
        except Exception as e:
            message = f"{type(e).__name__}: {e}"
            log.error("Delta sync of {} failed: {}", entity.value, message)
            await self._finish(log_id, SyncLogStatus.FAILED, message, None)
            return result.record(
                WindowOutcome(
                    repo.full_name,
                    window,
                    WindowAction.FAILED,
                    entity_type=entity,
                    log_id=log_id,
                    error=message,
                )
            )

        await self._log.complete(
            log_id, SyncLogStatus.COMPLETED, None, ingested.items_processed
        )
        return result.record(
            WindowOutcome(
                repo.full_name,
                window,
                WindowAction.COMPLETED,
                entity_type=entity,
                items_processed=ingested.items_processed,
                has_more_history=ingested.has_more_history,
                log_id=log_id,
            )
        )

    async def _finish(
        self,
        log_id: int,
        status: SyncLogStatus,
        message: str,
        items: int | None,
    ) -> None:
        """Discard uncommitted ingestion writes, then close the ledger row."""
        await self._session.rollback()
        await self._log.complete(log_id, status, message, items)
