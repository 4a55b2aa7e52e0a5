"""Materialize entries and artwork onto disk.

FilePlacement computes destinations with the PathManager, transfers with
the FileManager, and records the result in the database. An entry only
becomes MATERIALIZED after its file has been written in full.
"""

import logging
from pathlib import Path

from ..db import EntryDatabase, FeedDatabase
from ..db.types import ZERO_DATETIME, Entry, Feed, Settings
from ..exceptions import (
    DatabaseOperationError,
    DownloadError,
    FileOperationError,
    InvalidUrlError,
    NotFoundError,
    PathValidationError,
)
from ..file_manager import FileManager
from ..path_manager import PathManager, file_name_prefix

logger = logging.getLogger(__name__)

# Failures that make an optional artwork download give up quietly.
ARTWORK_ERRORS = (
    DownloadError,
    FileOperationError,
    InvalidUrlError,
    PathValidationError,
    DatabaseOperationError,
    NotFoundError,
)


class FilePlacement:
    """Place entry media and artwork files and record where they went.

    Attributes:
        _paths: Destination computation.
        _files: Transfers and file system checks.
        _entry_db: Entry persistence.
        _feed_db: Feed persistence.
    """

    def __init__(
        self,
        paths: PathManager,
        file_manager: FileManager,
        entry_db: EntryDatabase,
        feed_db: FeedDatabase,
    ):
        self._paths = paths
        self._files = file_manager
        self._entry_db = entry_db
        self._feed_db = feed_db
        logger.debug("FilePlacement initialized.")

    async def destination_for(self, entry: Entry, feed: Feed, settings: Settings) -> Path:
        """Compute the media destination of ``entry`` under current settings.

        Raises:
            PathValidationError: If the path would escape the media root.
            EntryNotFoundError: If the episode number is needed and the entry
                no longer exists.
        """
        episode_number = None
        if settings.append_episode_number_to_file_name:
            episode_number = await self._entry_db.get_episode_number(entry.id)
        published = None
        if settings.append_date_to_file_name and entry.published != ZERO_DATETIME:
            published = entry.published
        return self._paths.media_path(
            feed.display_name,
            entry.title,
            entry.remote_url,
            file_name_prefix(episode_number, published),
        )

    async def materialize(self, entry: Entry, feed: Feed, settings: Settings) -> Path:
        """Download an entry's media and mark it MATERIALIZED.

        If the destination already exists no transfer happens and the
        existing file is adopted. On any error the entry's status is left
        as it was and the error propagates.

        Returns:
            Where the file lives.

        Raises:
            PathValidationError: If the destination escapes the media root.
            InvalidUrlError: If the enclosure URL is not http(s).
            DownloadError: If the transfer fails.
            FileOperationError: If writing the file fails.
            DatabaseOperationError: If the status update fails.
        """
        log_params = {"feed_id": feed.id, "entry_id": entry.id}
        destination = await self.destination_for(entry, feed, settings)
        path = await self._files.place_artifact(
            entry.remote_url, destination, feed_id=feed.id, entry_id=entry.id
        )
        size = await self._files.file_size(path)
        await self._entry_db.mark_materialized(entry.id, str(path), size)
        logger.info(
            "Entry materialized.",
            extra={**log_params, "local_path": str(path), "file_size": size},
        )
        return path

    async def cache_entry_image(self, entry: Entry, feed: Feed) -> Path | None:
        """Download an entry's artwork next to its media, best-effort.

        Returns:
            The cached image path, or None if there is no artwork or the
            download failed.
        """
        if not entry.remote_image_url:
            return None
        log_params = {
            "feed_id": feed.id,
            "entry_id": entry.id,
            "url": entry.remote_image_url,
        }
        try:
            destination = self._paths.entry_image_path(
                feed.display_name, entry.id, entry.remote_image_url
            )
            path = await self._files.place_artifact(
                entry.remote_image_url,
                destination,
                feed_id=feed.id,
                entry_id=entry.id,
            )
            await self._entry_db.set_local_image_path(entry.id, str(path))
        except ARTWORK_ERRORS as e:
            logger.warning("Failed to cache entry image.", extra=log_params, exc_info=e)
            return None
        logger.debug("Entry image cached.", extra=log_params)
        return path

    async def cache_feed_image(self, feed: Feed) -> Path | None:
        """Download a feed's cover art into its folder, best-effort.

        Returns:
            The cached image path, or None if there is no artwork or the
            download failed.
        """
        if not feed.remote_image_url:
            return None
        log_params = {"feed_id": feed.id, "url": feed.remote_image_url}
        try:
            destination = self._paths.feed_image_path(
                feed.display_name, feed.remote_image_url
            )
            path = await self._files.place_artifact(
                feed.remote_image_url, destination, feed_id=feed.id
            )
            await self._feed_db.update_feed_metadata(
                feed.id, local_image_path=str(path)
            )
        except ARTWORK_ERRORS as e:
            logger.warning("Failed to cache feed image.", extra=log_params, exc_info=e)
            return None
        logger.debug("Feed image cached.", extra=log_params)
        return path
