"""Periodic jobs exposed to the scheduler and the CLI.

This module defines the DataCoordinator. Each public job runs under its own
named job lock, so a job that is still running when it is invoked again is
skipped and the call returns None.
"""

from datetime import UTC, datetime
import logging
from pathlib import Path
import time

from ..backup import BackupManager
from ..db import FeedDatabase, SettingsDatabase
from ..db.types import Feed
from ..exceptions import DatabaseOperationError, FetchError, NotFoundError
from ..feed_fetcher import FeedFetcher
from ..http_client import HttpClient
from ..job_lock import JobLockManager
from .consistency import ConsistencySweeper
from .download_scheduler import DownloadScheduler
from .reconciler import EntryReconciler
from .types import (
    DownloadRunResult,
    PhaseResult,
    ReconcileResult,
    RefreshResults,
    SweepResult,
)

logger = logging.getLogger(__name__)

REFRESH_JOB_NAME = "refresh_all"
CONSISTENCY_JOB_NAME = "check_consistency"
SIZES_JOB_NAME = "backfill_sizes"
IMAGES_JOB_NAME = "backfill_images"
BACKUP_JOB_NAME = "create_backup"

REFRESH_LOCK_MINUTES = 60
SWEEP_LOCK_MINUTES = 60
BACKUP_LOCK_MINUTES = 30


class DataCoordinator:
    """Run podhoard's periodic jobs.

    Attributes:
        _feed_db: Feed persistence.
        _settings_db: Settings persistence.
        _http: Shared HTTP client; its User-Agent follows the settings.
        _fetcher: Feed document retrieval.
        _reconciler: Stores new entries.
        _downloads: Drains the pending queue.
        _sweeper: Consistency sweeps.
        _backups: Database backups.
        _locks: Job lock manager.
    """

    def __init__(
        self,
        feed_db: FeedDatabase,
        settings_db: SettingsDatabase,
        http: HttpClient,
        fetcher: FeedFetcher,
        reconciler: EntryReconciler,
        downloads: DownloadScheduler,
        sweeper: ConsistencySweeper,
        backups: BackupManager,
        locks: JobLockManager,
    ):
        self._feed_db = feed_db
        self._settings_db = settings_db
        self._http = http
        self._fetcher = fetcher
        self._reconciler = reconciler
        self._downloads = downloads
        self._sweeper = sweeper
        self._backups = backups
        self._locks = locks
        logger.debug("DataCoordinator initialized.")

    async def _apply_user_agent(self) -> None:
        settings = await self._settings_db.get_settings()
        self._http.set_user_agent(settings.user_agent)

    async def refresh_feed(self, feed: Feed) -> ReconcileResult:
        """Fetch one feed and store its new entries.

        Raises:
            FetchError: If the document cannot be fetched; no entry is
                created or changed.
            DatabaseOperationError: If storing entries fails.
        """
        fetched = await self._fetcher.fetch(feed.source_url, feed_id=feed.id)
        return await self._reconciler.reconcile(feed, fetched, first_sync=False)

    async def _execute_refresh_phase(self, results: RefreshResults) -> None:
        phase_start = time.time()
        log_params = {"phase": "refresh"}
        feeds = await self._feed_db.get_feeds()
        logger.info("Starting refresh phase.", extra={**log_params, "feeds": len(feeds)})

        errors: list[Exception] = []
        for feed in feeds:
            try:
                results.reconciled.append(await self.refresh_feed(feed))
            except (FetchError, DatabaseOperationError, NotFoundError) as e:
                errors.append(e)
                logger.error(
                    "Feed refresh failed.",
                    extra={**log_params, "feed_id": feed.id},
                    exc_info=e,
                )

        duration = time.time() - phase_start
        results.refresh_result = PhaseResult(
            success=not errors,
            count=len(results.reconciled),
            errors=errors,
            duration_seconds=duration,
        )
        logger.info(
            "Refresh phase completed.",
            extra={
                **log_params,
                "feeds_refreshed": len(results.reconciled),
                "feeds_failed": len(errors),
                "duration_seconds": duration,
            },
        )

    async def _refresh_all(self) -> RefreshResults:
        results = RefreshResults(start_time=datetime.now(UTC))
        start = time.time()
        await self._apply_user_agent()
        await self._execute_refresh_phase(results)
        results.download_result = await self._downloads.download_pending()
        results.total_duration_seconds = time.time() - start
        logger.info("Refresh run completed.", extra=results.summary_dict())
        return results

    async def refresh_all(self) -> RefreshResults | None:
        """Refresh every feed, then drain the pending queue.

        A feed whose fetch fails is logged and skipped; the others are
        still refreshed.

        Returns:
            The run's results, or None if a refresh is already running.
        """
        return await self._locks.run_locked(
            REFRESH_JOB_NAME, REFRESH_LOCK_MINUTES, self._refresh_all
        )

    async def download_pending(self) -> DownloadRunResult | None:
        """Download every pending entry.

        Returns:
            The run outcome, or None if a download run is already active.
        """
        await self._apply_user_agent()
        return await self._downloads.download_pending()

    async def check_consistency(self) -> SweepResult | None:
        """Mark entries whose file disappeared as removed.

        Returns:
            The sweep outcome, or None if the sweep is already running.
        """
        return await self._locks.run_locked(
            CONSISTENCY_JOB_NAME, SWEEP_LOCK_MINUTES, self._sweeper.check_missing_files
        )

    async def backfill_sizes(self) -> SweepResult | None:
        """Fill in unknown file sizes.

        Returns:
            The sweep outcome, or None if the sweep is already running.
        """

        async def run() -> SweepResult:
            await self._apply_user_agent()
            return await self._sweeper.backfill_sizes()

        return await self._locks.run_locked(SIZES_JOB_NAME, SWEEP_LOCK_MINUTES, run)

    async def backfill_images(self) -> SweepResult | None:
        """Cache missing feed and entry artwork.

        Returns:
            The sweep outcome, or None if the sweep is already running.
        """

        async def run() -> SweepResult:
            await self._apply_user_agent()
            return await self._sweeper.backfill_images()

        return await self._locks.run_locked(IMAGES_JOB_NAME, SWEEP_LOCK_MINUTES, run)

    async def unlock_stale_jobs(self) -> list[str]:
        """Release job locks whose holder outlived its declared duration.

        Returns:
            Names of the released locks.
        """
        released = await self._locks.unlock_stale()
        logger.info("Stale lock sweep complete.", extra={"released": released})
        return released

    async def create_backup(self) -> Path | None:
        """Write a database backup and rotate old ones.

        Returns:
            The new archive, or None if a backup is already running.

        Raises:
            BackupError: If the backup cannot be written.
        """
        return await self._locks.run_locked(
            BACKUP_JOB_NAME, BACKUP_LOCK_MINUTES, self._backups.create_backup
        )
