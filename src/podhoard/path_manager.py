"""Helpers for computing file system paths under the data directory."""

from datetime import datetime
import logging
from pathlib import Path, PurePosixPath
import re
import unicodedata
from urllib.parse import urlparse

import aiofiles.os

from .exceptions import FileOperationError, PathValidationError

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_EXTENSION = ".mp3"
DEFAULT_IMAGE_EXTENSION = ".jpg"
FEED_IMAGE_BASE_NAME = "folder"
NFO_FILE_NAME = "album.nfo"
ENTRY_IMAGES_DIR_NAME = "images"

# Leaves room for a prefix and extension under the usual 255-byte limit.
MAX_NAME_LENGTH = 180

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")
_REPEATED_DASHES = re.compile(r"-{2,}")
_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,5}$")


def sanitize_component(name: str, fallback: str = "untitled") -> str:
    """Turn arbitrary text into a single path-safe name component.

    Accents are folded to ASCII, every run of characters other than letters,
    digits, ``_`` and ``-`` becomes one ``-``. Separators and dots cannot
    survive, so the result can never traverse directories.

    Args:
        name: Feed title, entry title or similar.
        fallback: Returned when nothing usable remains.

    Returns:
        The sanitized component.
    """
    folded = (
        unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    )
    cleaned = _REPEATED_DASHES.sub("-", _UNSAFE_CHARS.sub("-", folded)).strip("-_")
    return cleaned[:MAX_NAME_LENGTH].rstrip("-_") or fallback


def kebab_case(title: str) -> str:
    """Lowercased, dash-separated form of a sanitized title."""
    return sanitize_component(title).lower()


def extension_from_url(url: str, default: str) -> str:
    """Return the lowercased extension of the URL path, or ``default``."""
    suffix = PurePosixPath(urlparse(url).path).suffix
    if _EXTENSION.match(suffix):
        return suffix.lower()
    return default


def file_name_prefix(
    episode_number: int | None = None, published: datetime | None = None
) -> str:
    """Build the optional file name prefix from episode number and date.

    Returns:
        ``"<number>-<YYYY-MM-DD>"``, either part alone, or ``""``.
    """
    parts: list[str] = []
    if episode_number is not None:
        parts.append(str(episode_number))
    if published is not None:
        parts.append(published.strftime("%Y-%m-%d"))
    return "-".join(parts)


class PathManager:
    """Single source of truth for where podhoard writes files.

    Layout under the data directory::

        media/<feed>/<prefix>-<title>.<ext>
        media/<feed>/folder.<ext>
        media/<feed>/album.nfo
        media/<feed>/images/<entry id>.<ext>
        db/podhoard.db
        backups/podhoard_backup_<timestamp>.tar.gz

    Every path handed out is resolved and checked to be under the media or
    data root.

    Attributes:
        _base_data_dir: Root directory for all application data.
    """

    def __init__(self, base_data_dir: Path):
        self._base_data_dir = Path(base_data_dir).resolve()

    @property
    def base_data_dir(self) -> Path:
        """Return the root data directory."""
        return self._base_data_dir

    @property
    def media_dir(self) -> Path:
        """Return the directory holding one folder per feed."""
        return self._base_data_dir / "media"

    @property
    def backups_dir(self) -> Path:
        """Return the directory holding database backups."""
        return self._base_data_dir / "backups"

    async def _ensure_dir(self, path: Path) -> Path:
        try:
            await aiofiles.os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise FileOperationError(
                "Failed to create directory.", file_name=str(path)
            ) from e
        return path

    async def db_dir(self) -> Path:
        """Return the directory containing the database file, creating it.

        Raises:
            FileOperationError: If the directory cannot be created.
        """
        return await self._ensure_dir(self._base_data_dir / "db")

    async def ensure_backups_dir(self) -> Path:
        """Return the backups directory, creating it.

        Raises:
            FileOperationError: If the directory cannot be created.
        """
        return await self._ensure_dir(self.backups_dir)

    def ensure_under_root(self, path: Path, root: Path | None = None) -> Path:
        """Resolve ``path`` and require it to live under ``root``.

        Args:
            path: The candidate path.
            root: Containing directory; the media directory by default.

        Returns:
            The resolved path.

        Raises:
            PathValidationError: If the resolved path escapes ``root``.
        """
        root = (root or self.media_dir).resolve()
        resolved = path.resolve()
        if resolved == root or not resolved.is_relative_to(root):
            raise PathValidationError(
                "Path resolves outside the storage root.",
                path=str(path),
                root=str(root),
            )
        return resolved

    def feed_dir(self, feed_name: str) -> Path:
        """Return the folder for a feed's files.

        Raises:
            PathValidationError: If the folder would escape the media root.
        """
        return self.ensure_under_root(
            self.media_dir / sanitize_component(feed_name, fallback="feed")
        )

    def media_path(
        self, feed_name: str, title: str, url: str, prefix: str = ""
    ) -> Path:
        """Return the destination for an entry's media artifact.

        Args:
            feed_name: The feed's display name.
            title: The entry title.
            url: The enclosure URL, used for the extension.
            prefix: Optional prefix from ``file_name_prefix``.

        Raises:
            PathValidationError: If the path would escape the media root.
        """
        base_name = kebab_case(title)
        if prefix:
            base_name = f"{prefix}-{base_name}"
        ext = extension_from_url(url, DEFAULT_MEDIA_EXTENSION)
        return self.ensure_under_root(self.feed_dir(feed_name) / f"{base_name}{ext}")

    def feed_image_path(self, feed_name: str, url: str) -> Path:
        """Return the destination for a feed's cover art."""
        ext = extension_from_url(url, DEFAULT_IMAGE_EXTENSION)
        return self.ensure_under_root(
            self.feed_dir(feed_name) / f"{FEED_IMAGE_BASE_NAME}{ext}"
        )

    def entry_image_path(self, feed_name: str, entry_id: str, url: str) -> Path:
        """Return the destination for an entry's artwork."""
        ext = extension_from_url(url, DEFAULT_IMAGE_EXTENSION)
        return self.ensure_under_root(
            self.feed_dir(feed_name)
            / ENTRY_IMAGES_DIR_NAME
            / f"{sanitize_component(entry_id)}{ext}"
        )

    def nfo_path(self, feed_name: str) -> Path:
        """Return the location of a feed's album.nfo."""
        return self.ensure_under_root(self.feed_dir(feed_name) / NFO_FILE_NAME)
