"""Construction of podhoard's object graph.

Both the default mode and the one-shot debug modes build the same set of
components; this module is where they are wired together.
"""

from dataclasses import dataclass
import logging

from ..backup import BackupManager
from ..config import AppSettings
from ..data_coordinator import (
    ConsistencySweeper,
    DataCoordinator,
    DownloadScheduler,
    EntryReconciler,
    FeedManager,
    FilePlacement,
)
from ..db import (
    EntryDatabase,
    FeedDatabase,
    JobLockDatabase,
    SettingsDatabase,
    SqlalchemyCore,
)
from ..db.migrations import upgrade_database
from ..exceptions import DatabaseOperationError, FileOperationError
from ..feed_fetcher import FeedFetcher
from ..file_manager import FileManager
from ..http_client import HttpClient
from ..job_lock import JobLockManager
from ..path_manager import PathManager

logger = logging.getLogger(__name__)


@dataclass
class Components:
    """Everything a podhoard process needs at runtime.

    Attributes:
        db_core: Shared database engine.
        http: Shared HTTP client.
        coordinator: Periodic jobs.
        feed_manager: User actions on feeds and entries.
    """

    db_core: SqlalchemyCore
    http: HttpClient
    coordinator: DataCoordinator
    feed_manager: FeedManager

    async def close(self) -> None:
        """Close the HTTP client and database connections."""
        await self.http.aclose()
        await self.db_core.close()


async def init_components(settings: AppSettings) -> Components:
    """Migrate the database and build every component.

    Args:
        settings: Application settings.

    Returns:
        The wired components.

    Raises:
        DatabaseOperationError: If the data directory cannot be created or
            the database cannot be migrated.
    """
    paths = PathManager(base_data_dir=settings.data_dir)

    try:
        db_dir = await paths.db_dir()
    except FileOperationError as e:
        raise DatabaseOperationError(
            "Failed to create database directory.",
        ) from e

    logger.debug("Initializing database components.", extra={"db_dir": str(db_dir)})
    db_core = SqlalchemyCore(db_dir)
    await upgrade_database(settings.alembic_config, db_core.db_path)

    feed_db = FeedDatabase(db_core)
    entry_db = EntryDatabase(db_core)
    settings_db = SettingsDatabase(db_core)
    locks = JobLockManager(JobLockDatabase(db_core))

    http = HttpClient(timeout=settings.request_timeout, user_agent=settings.user_agent)
    fetcher = FeedFetcher(http)
    file_manager = FileManager(paths, http)
    placement = FilePlacement(paths, file_manager, entry_db, feed_db)
    reconciler = EntryReconciler(entry_db, feed_db, settings_db)
    downloads = DownloadScheduler(entry_db, feed_db, settings_db, placement, locks)
    sweeper = ConsistencySweeper(
        entry_db, feed_db, settings_db, file_manager, http, placement
    )
    backups = BackupManager(db_core, paths)

    coordinator = DataCoordinator(
        feed_db=feed_db,
        settings_db=settings_db,
        http=http,
        fetcher=fetcher,
        reconciler=reconciler,
        downloads=downloads,
        sweeper=sweeper,
        backups=backups,
        locks=locks,
    )
    feed_manager = FeedManager(
        feed_db=feed_db,
        entry_db=entry_db,
        settings_db=settings_db,
        http=http,
        fetcher=fetcher,
        reconciler=reconciler,
        placement=placement,
        downloads=downloads,
        file_manager=file_manager,
    )
    return Components(
        db_core=db_core,
        http=http,
        coordinator=coordinator,
        feed_manager=feed_manager,
    )
