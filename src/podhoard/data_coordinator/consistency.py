"""Sweeps that re-derive stored metadata from disk and network.

Each sweep is idempotent and tolerates failure per record: a record that
cannot be fixed is logged and counted, and the sweep moves on.
"""

import logging

from ..db import EntryDatabase, FeedDatabase, SettingsDatabase
from ..db.types import FILE_SIZE_PROBE_FAILED, Entry, EntryStatus
from ..exceptions import (
    DatabaseOperationError,
    DownloadError,
    FileOperationError,
    InvalidUrlError,
    NotFoundError,
)
from ..file_manager import FileManager
from ..http_client import HttpClient
from .file_placement import FilePlacement
from .types import SweepResult

logger = logging.getLogger(__name__)


class ConsistencySweeper:
    """Correct drift between the database and the file system.

    Attributes:
        _entry_db: Entry persistence.
        _feed_db: Feed persistence.
        _settings_db: Settings persistence.
        _files: File system access.
        _http: HTTP client for size probes.
        _placement: Artwork downloads.
    """

    def __init__(
        self,
        entry_db: EntryDatabase,
        feed_db: FeedDatabase,
        settings_db: SettingsDatabase,
        file_manager: FileManager,
        http: HttpClient,
        placement: FilePlacement,
    ):
        self._entry_db = entry_db
        self._feed_db = feed_db
        self._settings_db = settings_db
        self._files = file_manager
        self._http = http
        self._placement = placement
        logger.debug("ConsistencySweeper initialized.")

    async def _probe_size(self, entry: Entry) -> int:
        """Size from the local file if materialized, else from a HEAD request."""
        log_params = {"feed_id": entry.feed_id, "entry_id": entry.id}
        if entry.status == EntryStatus.MATERIALIZED and entry.local_path:
            try:
                return await self._files.file_size(entry.local_path)
            except (FileNotFoundError, FileOperationError) as e:
                logger.warning(
                    "Failed to read local file size.", extra=log_params, exc_info=e
                )
                return FILE_SIZE_PROBE_FAILED
        try:
            return await self._http.head_size(entry.remote_url)
        except (DownloadError, InvalidUrlError) as e:
            logger.warning("Failed to probe remote size.", extra=log_params, exc_info=e)
            return FILE_SIZE_PROBE_FAILED

    async def backfill_sizes(self) -> SweepResult:
        """Fill in file_size for entries where it is unknown or failed.

        Failed probes store the -1 sentinel; those entries are retried by
        later sweeps.
        """
        result = SweepResult(sweep="backfill_sizes")
        for entry in await self._entry_db.get_entries_missing_size():
            result.examined += 1
            size = await self._probe_size(entry)
            if size <= 0:
                result.failed += 1
            if size == entry.file_size:
                continue
            try:
                await self._entry_db.set_file_size(entry.id, size)
            except (DatabaseOperationError, NotFoundError) as e:
                logger.error(
                    "Failed to record file size.",
                    extra={"entry_id": entry.id},
                    exc_info=e,
                )
                continue
            if size > 0:
                result.updated += 1
        logger.info("File size backfill complete.", extra=result.summary_dict())
        return result

    async def check_missing_files(self) -> SweepResult:
        """Mark MATERIALIZED entries whose file is gone as REMOVED.

        Removal is hard or soft according to
        ``Settings.hard_remove_missing_files``.
        """
        settings = await self._settings_db.get_settings()
        hard = settings.hard_remove_missing_files
        result = SweepResult(sweep="check_missing_files")
        for entry in await self._entry_db.get_entries_by_status(
            EntryStatus.MATERIALIZED
        ):
            result.examined += 1
            log_params = {
                "feed_id": entry.feed_id,
                "entry_id": entry.id,
                "local_path": entry.local_path,
            }
            try:
                if entry.local_path and await self._files.exists(entry.local_path):
                    continue
                await self._entry_db.mark_removed(entry.id, hard=hard)
            except (DatabaseOperationError, FileOperationError, NotFoundError) as e:
                result.failed += 1
                logger.error("Failed to check entry file.", extra=log_params, exc_info=e)
                continue
            result.updated += 1
            logger.info(
                "Materialized file missing, entry removed.",
                extra={**log_params, "hard": hard},
            )
        logger.info("Missing file check complete.", extra=result.summary_dict())
        return result

    async def _has_local_copy(self, path: str | None) -> bool:
        if not path:
            return False
        try:
            return await self._files.exists(path)
        except FileOperationError:
            return False

    async def backfill_images(self) -> SweepResult:
        """Cache missing artwork, best-effort.

        Feed cover art is always restored. Episode artwork is only cached
        when ``download_episode_images`` is enabled.
        """
        result = SweepResult(sweep="backfill_images")
        feeds = {feed.id: feed for feed in await self._feed_db.get_feeds()}

        for feed in feeds.values():
            if not feed.remote_image_url:
                continue
            result.examined += 1
            if await self._has_local_copy(feed.local_image_path):
                continue
            if await self._placement.cache_feed_image(feed) is None:
                result.failed += 1
            else:
                result.updated += 1

        settings = await self._settings_db.get_settings()
        if settings.download_episode_images:
            for entry in await self._entry_db.get_materialized_with_remote_image():
                feed = feeds.get(entry.feed_id)
                if feed is None:
                    continue
                result.examined += 1
                if await self._has_local_copy(entry.local_image_path):
                    continue
                if await self._placement.cache_entry_image(entry, feed) is None:
                    result.failed += 1
                else:
                    result.updated += 1

        logger.info("Image backfill complete.", extra=result.summary_dict())
        return result
