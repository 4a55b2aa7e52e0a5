"""Compressed database backups with simple rotation."""

import asyncio
from datetime import UTC, datetime
import logging
from pathlib import Path
import tarfile

import aiofiles.os

from .db import SqlalchemyCore
from .exceptions import BackupError, DatabaseOperationError, FileOperationError
from .path_manager import PathManager

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "podhoard_backup_"
BACKUP_SUFFIX = ".tar.gz"
BACKUP_TIMESTAMP_FORMAT = "%Y.%m.%d_%H%M%S"
BACKUPS_TO_KEEP = 5


def backup_file_name(now: datetime) -> str:
    """Return the archive name for a backup taken at ``now``."""
    return f"{BACKUP_PREFIX}{now.strftime(BACKUP_TIMESTAMP_FORMAT)}{BACKUP_SUFFIX}"


def _write_archive(archive: Path, source: Path, arcname: str) -> None:
    with tarfile.open(archive, "w:gz") as tar:
        tar.add(source, arcname=arcname)


class BackupManager:
    """Write ``.tar.gz`` snapshots of the database into the backups folder.

    Attributes:
        _db_core: Source of the database snapshot.
        _paths: Location of the backups folder.
        _keep: Number of archives retained after each backup.
    """

    def __init__(
        self, db_core: SqlalchemyCore, paths: PathManager, keep: int = BACKUPS_TO_KEEP
    ):
        self._db_core = db_core
        self._paths = paths
        self._keep = keep

    async def list_backups(self) -> list[Path]:
        """Return existing archives, newest first."""
        backups_dir = self._paths.backups_dir
        if not await aiofiles.os.path.isdir(backups_dir):
            return []
        names = [
            name
            for name in await aiofiles.os.listdir(backups_dir)
            if name.startswith(BACKUP_PREFIX) and name.endswith(BACKUP_SUFFIX)
        ]
        # The timestamp format sorts lexically in time order.
        return [backups_dir / name for name in sorted(names, reverse=True)]

    async def create_backup(self, now: datetime | None = None) -> Path:
        """Snapshot the database into a new archive and rotate old ones.

        Args:
            now: Timestamp for the archive name; current UTC time by default.

        Returns:
            Path of the new archive.

        Raises:
            BackupError: If the snapshot or archive cannot be written.
        """
        now = now or datetime.now(UTC)
        try:
            backups_dir = await self._paths.ensure_backups_dir()
        except FileOperationError as e:
            raise BackupError("Failed to create backups directory.") from e

        archive = backups_dir / backup_file_name(now)
        snapshot = backups_dir / f".{archive.name}.db"
        log_params = {"file_name": str(archive)}
        logger.debug("Creating database backup.", extra=log_params)
        try:
            await self._db_core.snapshot_to(snapshot)
            await asyncio.to_thread(
                _write_archive, archive, snapshot, self._db_core.db_path.name
            )
        except (DatabaseOperationError, OSError, tarfile.TarError) as e:
            # never leave a partial archive under a valid name
            if await aiofiles.os.path.exists(archive):
                await aiofiles.os.remove(archive)
            raise BackupError(
                "Failed to write backup archive.", file_name=str(archive)
            ) from e
        finally:
            if await aiofiles.os.path.exists(snapshot):
                await aiofiles.os.remove(snapshot)

        await self._rotate()
        logger.info("Database backup created.", extra=log_params)
        return archive

    async def _rotate(self) -> None:
        for old in (await self.list_backups())[self._keep :]:
            try:
                await aiofiles.os.remove(old)
            except OSError:
                logger.warning(
                    "Failed to delete old backup.",
                    extra={"file_name": str(old)},
                    exc_info=True,
                )
                continue
            logger.debug("Old backup deleted.", extra={"file_name": str(old)})
