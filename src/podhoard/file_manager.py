"""File system management for podhoard artifacts.

This module provides the FileManager class, which places downloaded
artifacts under the media directory, answers existence and size questions,
and removes files and feed folders.
"""

import asyncio
import logging
from pathlib import Path
import shutil
import uuid

import aiofiles
import aiofiles.os
from lxml import etree

from .exceptions import DownloadError, FileOperationError
from .http_client import HttpClient
from .path_manager import PathManager

logger = logging.getLogger(__name__)


class FileManager:
    """Manage artifact files on the filesystem.

    Attributes:
        _paths: PathManager used to validate every destination.
        _http: HTTP client performing transfers.
    """

    def __init__(self, paths: PathManager, http: HttpClient):
        self._paths = paths
        self._http = http
        logger.debug(
            "FileManager initialized.",
            extra={"media_dir": str(self._paths.media_dir)},
        )

    async def place_artifact(
        self,
        url: str,
        destination: Path,
        feed_id: str | None = None,
        entry_id: str | None = None,
    ) -> Path:
        """Download ``url`` to ``destination`` unless it is already there.

        An existing destination counts as success and no request is made,
        so files placed by hand are adopted. Otherwise the body is streamed
        into a hidden temporary file in the same directory and renamed into
        place, so ``destination`` never holds a partial file.

        Args:
            url: Remote artifact URL.
            destination: Path from the PathManager.
            feed_id: For error context.
            entry_id: For error context.

        Returns:
            The resolved destination.

        Raises:
            PathValidationError: If ``destination`` is outside the media root.
            InvalidUrlError: If ``url`` is not http(s).
            DownloadError: If the transfer fails.
            FileOperationError: If writing or renaming fails.
        """
        destination = self._paths.ensure_under_root(destination)
        HttpClient.validate_url(url)
        log_params = {
            "feed_id": feed_id,
            "entry_id": entry_id,
            "url": url,
            "destination": str(destination),
        }

        if await aiofiles.os.path.exists(destination):
            logger.debug("Destination already exists, skipping transfer.", extra=log_params)
            return destination

        try:
            await aiofiles.os.makedirs(destination.parent, exist_ok=True)
        except OSError as e:
            raise FileOperationError(
                "Failed to create destination directory.",
                feed_id=feed_id,
                entry_id=entry_id,
                file_name=str(destination.parent),
            ) from e

        tmp_path = destination.with_name(f".{destination.name}.{uuid.uuid4().hex}.part")
        try:
            written = await self._http.stream_to_file(url, tmp_path)
            await aiofiles.os.replace(tmp_path, destination)
        except DownloadError as e:
            e.feed_id = feed_id
            e.entry_id = entry_id
            raise
        except FileOperationError as e:
            e.feed_id = feed_id
            e.entry_id = entry_id
            raise
        except OSError as e:
            raise FileOperationError(
                "Failed to move artifact into place.",
                feed_id=feed_id,
                entry_id=entry_id,
                file_name=str(destination),
            ) from e
        finally:
            await self._remove_quietly(tmp_path)

        logger.debug("Artifact placed.", extra={**log_params, "bytes": written})
        return destination

    async def _remove_quietly(self, path: Path) -> None:
        try:
            if await aiofiles.os.path.exists(path):
                await aiofiles.os.remove(path)
        except OSError:
            logger.warning(
                "Failed to remove temporary file.",
                extra={"file_name": str(path)},
                exc_info=True,
            )

    async def exists(self, path: str | Path) -> bool:
        """Return True if ``path`` is an existing regular file."""
        try:
            return await aiofiles.os.path.isfile(path)
        except OSError as e:
            raise FileOperationError(
                "Failed to check if file exists.", file_name=str(path)
            ) from e

    async def file_size(self, path: str | Path) -> int:
        """Return the size in bytes of ``path``.

        Raises:
            FileNotFoundError: If the file does not exist.
            FileOperationError: On any other OS error.
        """
        try:
            return await aiofiles.os.path.getsize(path)
        except FileNotFoundError:
            raise
        except OSError as e:
            raise FileOperationError(
                "Failed to stat file.", file_name=str(path)
            ) from e

    async def delete_file(self, path: str | Path) -> bool:
        """Delete a file under the media root.

        Returns:
            True if a file was removed, False if it was already gone.

        Raises:
            PathValidationError: If ``path`` is outside the media root.
            FileOperationError: If the file exists but cannot be removed.
        """
        resolved = self._paths.ensure_under_root(Path(path))
        log_params = {"file_name": str(resolved)}
        if not await aiofiles.os.path.isfile(resolved):
            logger.debug("File to delete is already absent.", extra=log_params)
            return False
        try:
            await aiofiles.os.remove(resolved)
        except OSError as e:
            raise FileOperationError(
                "Failed to delete file.", file_name=str(resolved)
            ) from e
        logger.debug("File deleted.", extra=log_params)
        return True

    async def delete_feed_folder(self, feed_name: str) -> None:
        """Remove a feed's folder and everything in it.

        Raises:
            FileOperationError: If the folder exists but cannot be removed.
        """
        folder = self._paths.feed_dir(feed_name)
        if not await aiofiles.os.path.isdir(folder):
            return
        try:
            await asyncio.to_thread(shutil.rmtree, folder)
        except OSError as e:
            raise FileOperationError(
                "Failed to delete feed folder.", file_name=str(folder)
            ) from e
        logger.debug("Feed folder deleted.", extra={"file_name": str(folder)})

    async def write_nfo(
        self, feed_name: str, title: str, thumb: str | None
    ) -> Path:
        """Write an album.nfo describing the feed into its folder.

        Returns:
            Path of the written file.

        Raises:
            FileOperationError: If the file cannot be written.
        """
        album = etree.Element("album")
        etree.SubElement(album, "title").text = title
        etree.SubElement(album, "type").text = "Broadcast"
        etree.SubElement(album, "thumb").text = thumb or ""
        document = etree.tostring(
            album, xml_declaration=True, encoding="UTF-8", pretty_print=True
        )

        path = self._paths.nfo_path(feed_name)
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(path, "wb") as file:
                await file.write(document)
        except OSError as e:
            raise FileOperationError(
                "Failed to write NFO file.", file_name=str(path)
            ) from e
        logger.debug("NFO file written.", extra={"file_name": str(path)})
        return path
