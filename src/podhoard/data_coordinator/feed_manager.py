"""User-driven operations on feeds and entries.

This module defines the FeedManager, which adds, deletes and pauses feeds
and lets the user queue, download, delete, play and bookmark individual
entries. Periodic jobs live in the DataCoordinator instead.
"""

from collections.abc import Iterable
import logging
from pathlib import Path

from ..db import EntryDatabase, FeedDatabase, SettingsDatabase
from ..db.types import EntryStatus, Feed
from ..exceptions import (
    DatabaseOperationError,
    DuplicateFeedError,
    FetchError,
    FileOperationError,
    InvalidUrlError,
    PathValidationError,
)
from ..feed_fetcher import FeedFetcher
from ..file_manager import FileManager
from ..http_client import HttpClient
from .download_scheduler import DownloadScheduler
from .file_placement import FilePlacement
from .reconciler import EntryReconciler
from .types import ReconcileResult

logger = logging.getLogger(__name__)


class FeedManager:
    """Apply user actions to feeds and entries.

    Attributes:
        _feed_db: Feed persistence.
        _entry_db: Entry persistence.
        _settings_db: Settings persistence.
        _http: Shared HTTP client.
        _fetcher: Feed document retrieval.
        _reconciler: Stores a feed's entries.
        _placement: Feed artwork downloads.
        _downloads: Single-entry downloads.
        _files: File deletion and NFO writing.
    """

    def __init__(
        self,
        feed_db: FeedDatabase,
        entry_db: EntryDatabase,
        settings_db: SettingsDatabase,
        http: HttpClient,
        fetcher: FeedFetcher,
        reconciler: EntryReconciler,
        placement: FilePlacement,
        downloads: DownloadScheduler,
        file_manager: FileManager,
    ):
        self._feed_db = feed_db
        self._entry_db = entry_db
        self._settings_db = settings_db
        self._http = http
        self._fetcher = fetcher
        self._reconciler = reconciler
        self._placement = placement
        self._downloads = downloads
        self._files = file_manager
        logger.debug("FeedManager initialized.")

    # --- Feeds ---

    async def add_feed(self, url: str) -> tuple[Feed, ReconcileResult]:
        """Subscribe to a feed and run its first sync.

        The feed row is only created once the document has been fetched
        and parsed, so a failed fetch leaves nothing behind.

        Args:
            url: The feed document URL.

        Returns:
            The stored feed and the first sync's reconcile result.

        Raises:
            InvalidUrlError: If the URL is not http(s).
            DuplicateFeedError: If the URL is already subscribed.
            FetchError: If the document cannot be fetched or parsed.
            DatabaseOperationError: If storing the feed or entries fails.
        """
        url = url.strip()
        HttpClient.validate_url(url)
        log_params = {"url": url}

        existing = await self._feed_db.get_feed_by_url(url)
        if existing is not None:
            raise DuplicateFeedError(
                "Feed is already subscribed.", feed_id=existing.id, url=url
            )

        settings = await self._settings_db.get_settings()
        self._http.set_user_agent(settings.user_agent)
        fetched = await self._fetcher.fetch(url)

        channel = fetched.channel
        feed = Feed(
            source_url=url,
            title=channel.title or url,
            summary=channel.summary or None,
            author=channel.author,
            remote_image_url=channel.image_url,
        )
        await self._feed_db.insert_feed(feed)
        log_params["feed_id"] = feed.id
        logger.info("Feed added.", extra={**log_params, "title": feed.title})

        await self._placement.cache_feed_image(feed)

        if settings.generate_nfo_file:
            try:
                await self._files.write_nfo(
                    feed.display_name, feed.title, feed.remote_image_url
                )
            except (FileOperationError, PathValidationError) as e:
                logger.warning("Failed to write NFO file.", extra=log_params, exc_info=e)

        result = await self._reconciler.reconcile(feed, fetched, first_sync=True)
        return await self._feed_db.get_feed_by_id(feed.id), result

    async def seed_feeds(self, urls: Iterable[str]) -> list[Feed]:
        """Add every URL that is not subscribed yet.

        Failures are logged per URL and do not stop the others.

        Returns:
            The feeds that were added.
        """
        added: list[Feed] = []
        for url in urls:
            log_params = {"url": url}
            if await self._feed_db.get_feed_by_url(url.strip()) is not None:
                logger.debug("Configured feed already subscribed.", extra=log_params)
                continue
            try:
                feed, _ = await self.add_feed(url)
            except (
                InvalidUrlError,
                DuplicateFeedError,
                FetchError,
                DatabaseOperationError,
            ) as e:
                logger.error("Failed to add configured feed.", extra=log_params, exc_info=e)
                continue
            added.append(feed)
        return added

    async def delete_feed(self, feed_id: str) -> int:
        """Delete a feed, all its entries and its media folder.

        Returns:
            Number of entries deleted.

        Raises:
            FeedNotFoundError: If the feed does not exist.
            FileOperationError: If the media folder cannot be removed.
        """
        feed = await self._feed_db.get_feed_by_id(feed_id)
        deleted = await self._feed_db.delete_feed(feed_id)
        await self._files.delete_feed_folder(feed.display_name)
        logger.info(
            "Feed deleted.", extra={"feed_id": feed_id, "deleted_entries": deleted}
        )
        return deleted

    async def set_paused(self, feed_id: str, paused: bool) -> None:
        """Pause or resume a feed.

        Raises:
            FeedNotFoundError: If the feed does not exist.
        """
        await self._feed_db.set_paused(feed_id, paused)
        logger.info("Feed pause flag set.", extra={"feed_id": feed_id, "paused": paused})

    async def requeue_missing(self, feed_id: str) -> int:
        """Queue every soft-removed entry of a feed for download again.

        Hard-removed entries stay removed.

        Returns:
            Number of entries queued.
        """
        await self._feed_db.get_feed_by_id(feed_id)
        count = await self._entry_db.requeue_removed(feed_id)
        logger.info("Missing entries re-queued.", extra={"feed_id": feed_id, "count": count})
        return count

    # --- Entries ---

    async def queue_entry(self, entry_id: str) -> None:
        """Queue a single entry for the next download run.

        Raises:
            EntryNotFoundError: If the entry does not exist.
            DatabaseOperationError: If the entry is already MATERIALIZED.
        """
        await self._entry_db.queue_entry(entry_id)

    async def download_entry_now(self, entry_id: str) -> Path:
        """Download one entry immediately, outside the download job.

        The transfer bypasses the worker pool and the ``download_pending``
        lock, so it does not count against ``max_download_concurrency``. While
        a scheduled run is active there can be one transfer more than the
        bound, and the run may transfer the same entry too. Each transfer is
        renamed into place whole, so the last one to finish wins.

        Returns:
            Where the media file lives.

        Raises:
            EntryNotFoundError: If the entry does not exist.
            DownloadError: If the transfer fails; the entry stays PENDING.
        """
        entry = await self._entry_db.get_entry_by_id(entry_id)
        if entry.status == EntryStatus.MATERIALIZED and entry.local_path:
            return Path(entry.local_path)

        feed = await self._feed_db.get_feed_by_id(entry.feed_id)
        settings = await self._settings_db.get_settings()
        self._http.set_user_agent(settings.user_agent)
        await self._entry_db.queue_entry(entry_id)
        return await self._downloads.download_entry(entry, feed, settings)

    async def delete_entry_file(self, entry_id: str) -> None:
        """Delete an entry's files and hard-remove it.

        A file that is already gone is not an error.

        Raises:
            EntryNotFoundError: If the entry does not exist.
            FileOperationError: If the media file exists but cannot be removed.
        """
        entry = await self._entry_db.get_entry_by_id(entry_id)
        log_params = {"feed_id": entry.feed_id, "entry_id": entry_id}
        if entry.local_path:
            await self._files.delete_file(entry.local_path)
        if entry.local_image_path:
            try:
                await self._files.delete_file(entry.local_image_path)
            except (FileOperationError, PathValidationError) as e:
                logger.warning("Failed to delete entry image.", extra=log_params, exc_info=e)
        await self._entry_db.mark_removed(entry_id, hard=True)
        logger.info("Entry file deleted.", extra=log_params)

    async def set_played(self, entry_id: str, played: bool) -> None:
        """Mark an entry as played or unplayed."""
        await self._entry_db.set_played(entry_id, played)

    async def set_bookmark(self, entry_id: str, bookmarked: bool) -> None:
        """Bookmark an entry now or clear its bookmark."""
        await self._entry_db.set_bookmark(entry_id, bookmarked)
