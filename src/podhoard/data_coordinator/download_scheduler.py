"""Drain the pending queue through a bounded worker pool.

This module defines the DownloadScheduler. A run loads every PENDING
entry, reads ``max_download_concurrency`` once, and hands the batch to a
WorkerPool. An entry whose transfer fails is logged and stays PENDING for
the next run; there is no in-run retry. The whole run holds the
``download_pending`` job lock, so overlapping ticks are skipped.
"""

import logging
from pathlib import Path
import time

from ..db import EntryDatabase, FeedDatabase, SettingsDatabase
from ..db.types import Entry, EntryStatus, Feed, Settings
from ..exceptions import FeedNotFoundError
from ..job_lock import JobLockManager
from .file_placement import FilePlacement
from .types import DownloadRunResult
from .worker_pool import WorkerPool

logger = logging.getLogger(__name__)

DOWNLOAD_JOB_NAME = "download_pending"
DOWNLOAD_LOCK_MINUTES = 120


class DownloadScheduler:
    """Materialize pending entries with bounded concurrency.

    Attributes:
        _entry_db: Entry persistence.
        _feed_db: Feed persistence.
        _settings_db: Settings persistence.
        _placement: Performs each transfer.
        _locks: Job lock manager guarding the run.
    """

    def __init__(
        self,
        entry_db: EntryDatabase,
        feed_db: FeedDatabase,
        settings_db: SettingsDatabase,
        placement: FilePlacement,
        locks: JobLockManager,
    ):
        self._entry_db = entry_db
        self._feed_db = feed_db
        self._settings_db = settings_db
        self._placement = placement
        self._locks = locks
        logger.debug("DownloadScheduler initialized.")

    async def download_entry(self, entry: Entry, feed: Feed, settings: Settings) -> Path:
        """Materialize one entry, then cache its artwork if enabled.

        Returns:
            Where the media file lives.

        Raises:
            DownloadError: If the transfer fails.
            FileOperationError: If writing the file fails.
            PathValidationError: If the destination escapes the media root.
            InvalidUrlError: If the enclosure URL is not http(s).
            DatabaseOperationError: If the status update fails.
        """
        path = await self._placement.materialize(entry, feed, settings)
        if settings.download_episode_images:
            await self._placement.cache_entry_image(entry, feed)
        return path

    async def download_pending(self) -> DownloadRunResult | None:
        """Run one pass over the pending queue under the job lock.

        Returns:
            The run outcome, or None if another run holds the lock.
        """
        return await self._locks.run_locked(
            DOWNLOAD_JOB_NAME, DOWNLOAD_LOCK_MINUTES, self._run
        )

    async def _run(self) -> DownloadRunResult:
        start = time.time()
        settings = await self._settings_db.get_settings()
        pending = await self._entry_db.get_entries_by_status(
            EntryStatus.PENDING, hard_removed=False
        )
        feeds = {feed.id: feed for feed in await self._feed_db.get_feeds()}
        result = DownloadRunResult(
            concurrency=settings.max_download_concurrency, attempted=len(pending)
        )
        log_params = {"pending": len(pending), "concurrency": result.concurrency}
        if not pending:
            logger.debug("No pending entries.", extra=log_params)
            return result

        logger.info("Processing pending entries.", extra=log_params)

        async def handle(entry: Entry) -> None:
            feed = feeds.get(entry.feed_id)
            if feed is None:
                raise FeedNotFoundError("Feed not found.", feed_id=entry.feed_id)
            await self.download_entry(entry, feed, settings)

        pool: WorkerPool[Entry] = WorkerPool(
            max(1, settings.max_download_concurrency), name="download"
        )
        outcome = await pool.start(pending, handle).wait()

        result.materialized = len(outcome.succeeded)
        result.failed = len(outcome.failed)
        for entry, error in outcome.failed:
            result.errors.append(error)
            logger.error(
                "Download failed, entry stays pending.",
                extra={"feed_id": entry.feed_id, "entry_id": entry.id},
                exc_info=error,
            )
        result.duration_seconds = time.time() - start
        logger.info("Pending entries processed.", extra=result.summary_dict())
        return result
