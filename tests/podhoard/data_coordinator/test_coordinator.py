# pyright: reportPrivateUsage=false

"""Tests for DataCoordinator job orchestration."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from helpers.factories import make_feed, make_settings
import pytest

from podhoard.backup import BackupManager
from podhoard.data_coordinator import (
    ConsistencySweeper,
    DataCoordinator,
    DownloadScheduler,
    EntryReconciler,
)
from podhoard.data_coordinator.coordinator import (
    BACKUP_JOB_NAME,
    CONSISTENCY_JOB_NAME,
    REFRESH_JOB_NAME,
)
from podhoard.data_coordinator.types import (
    DownloadRunResult,
    ReconcileResult,
    SweepResult,
)
from podhoard.db import FeedDatabase, SettingsDatabase
from podhoard.exceptions import FetchError
from podhoard.feed_fetcher import FeedChannel, FeedFetcher, FetchedFeed
from podhoard.http_client import HttpClient
from podhoard.job_lock import JobLockManager

FEED_A = make_feed("feed_a")
FEED_B = make_feed("feed_b")


@pytest.fixture
def mock_feed_db() -> MagicMock:
    """Provides a mock FeedDatabase returning two feeds."""
    mock = MagicMock(spec=FeedDatabase)
    mock.get_feeds = AsyncMock(return_value=[FEED_A, FEED_B])
    return mock


@pytest.fixture
def mock_settings_db() -> MagicMock:
    """Provides a mock SettingsDatabase."""
    mock = MagicMock(spec=SettingsDatabase)
    mock.get_settings = AsyncMock(return_value=make_settings(user_agent="custom/1.0"))
    return mock


@pytest.fixture
def mock_http() -> MagicMock:
    """Provides a mock HttpClient."""
    return MagicMock(spec=HttpClient)


@pytest.fixture
def mock_fetcher() -> MagicMock:
    """Provides a mock FeedFetcher returning an empty document."""
    mock = MagicMock(spec=FeedFetcher)
    mock.fetch = AsyncMock(return_value=FetchedFeed(channel=FeedChannel(title="x")))
    return mock


@pytest.fixture
def mock_reconciler() -> MagicMock:
    """Provides a mock EntryReconciler."""
    mock = MagicMock(spec=EntryReconciler)
    mock.reconcile = AsyncMock(
        side_effect=lambda feed, _doc, first_sync: ReconcileResult(
            feed_id=feed.id, first_sync=first_sync, pending=1
        )
    )
    return mock


@pytest.fixture
def mock_downloads() -> MagicMock:
    """Provides a mock DownloadScheduler."""
    mock = MagicMock(spec=DownloadScheduler)
    mock.download_pending = AsyncMock(
        return_value=DownloadRunResult(concurrency=2, attempted=2, materialized=2)
    )
    return mock


@pytest.fixture
def mock_sweeper() -> MagicMock:
    """Provides a mock ConsistencySweeper."""
    mock = MagicMock(spec=ConsistencySweeper)
    mock.check_missing_files = AsyncMock(
        return_value=SweepResult(sweep="check_missing_files")
    )
    mock.backfill_sizes = AsyncMock(return_value=SweepResult(sweep="backfill_sizes"))
    mock.backfill_images = AsyncMock(return_value=SweepResult(sweep="backfill_images"))
    return mock


@pytest.fixture
def mock_backups() -> MagicMock:
    """Provides a mock BackupManager."""
    mock = MagicMock(spec=BackupManager)
    mock.create_backup = AsyncMock(return_value=Path("/backups/a.tar.gz"))
    return mock


@pytest.fixture
def coordinator(
    mock_feed_db: MagicMock,
    mock_settings_db: MagicMock,
    mock_http: MagicMock,
    mock_fetcher: MagicMock,
    mock_reconciler: MagicMock,
    mock_downloads: MagicMock,
    mock_sweeper: MagicMock,
    mock_backups: MagicMock,
    locks: JobLockManager,
) -> DataCoordinator:
    """Provides a DataCoordinator over mocks and real job locks."""
    return DataCoordinator(
        mock_feed_db,
        mock_settings_db,
        mock_http,
        mock_fetcher,
        mock_reconciler,
        mock_downloads,
        mock_sweeper,
        mock_backups,
        locks,
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_all_refreshes_then_downloads(
    coordinator: DataCoordinator,
    mock_fetcher: MagicMock,
    mock_downloads: MagicMock,
    mock_http: MagicMock,
) -> None:
    """Every feed is fetched, then the pending queue is drained."""
    results = await coordinator.refresh_all()

    assert results is not None
    assert results.refresh_result.success
    assert results.refresh_result.count == 2
    assert results.total_pending == 2
    assert results.download_result is not None
    assert results.download_result.materialized == 2
    assert [c.args[0] for c in mock_fetcher.fetch.await_args_list] == [
        FEED_A.source_url,
        FEED_B.source_url,
    ]
    mock_downloads.download_pending.assert_awaited_once()
    mock_http.set_user_agent.assert_called_with("custom/1.0")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_all_isolates_feed_failures(
    coordinator: DataCoordinator,
    mock_fetcher: MagicMock,
    mock_reconciler: MagicMock,
    mock_downloads: MagicMock,
) -> None:
    """One feed's fetch failure does not stop the others."""
    error = FetchError("down", url=FEED_A.source_url, feed_id=FEED_A.id)
    mock_fetcher.fetch.side_effect = [
        error,
        FetchedFeed(channel=FeedChannel(title="b")),
    ]

    results = await coordinator.refresh_all()

    assert results is not None
    assert not results.refresh_result.success
    assert results.refresh_result.errors == [error]
    assert [r.feed_id for r in results.reconciled] == [FEED_B.id]
    mock_reconciler.reconcile.assert_awaited_once()
    assert mock_reconciler.reconcile.await_args.kwargs == {"first_sync": False}
    mock_downloads.download_pending.assert_awaited_once()
    assert results.all_errors == [error]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_all_skipped_when_locked(
    coordinator: DataCoordinator, locks: JobLockManager, mock_fetcher: MagicMock
) -> None:
    """A refresh that finds its lock held returns None without fetching."""
    await locks.acquire(REFRESH_JOB_NAME, 60)

    assert await coordinator.refresh_all() is None
    mock_fetcher.fetch.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_refresh_releases_lock_after_run(
    coordinator: DataCoordinator, locks: JobLockManager
) -> None:
    """The refresh lock is free once a run finishes."""
    await coordinator.refresh_all()

    assert not await locks.is_locked(REFRESH_JOB_NAME)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_download_pending_delegates(
    coordinator: DataCoordinator, mock_downloads: MagicMock, mock_http: MagicMock
) -> None:
    """The download job applies the User-Agent and delegates."""
    result = await coordinator.download_pending()

    assert result is not None
    mock_downloads.download_pending.assert_awaited_once()
    mock_http.set_user_agent.assert_called_once_with("custom/1.0")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sweeps_delegate(
    coordinator: DataCoordinator, mock_sweeper: MagicMock
) -> None:
    """Each sweep job runs the matching sweeper method."""
    assert (await coordinator.check_consistency()) is not None
    assert (await coordinator.backfill_sizes()) is not None
    assert (await coordinator.backfill_images()) is not None

    mock_sweeper.check_missing_files.assert_awaited_once()
    mock_sweeper.backfill_sizes.assert_awaited_once()
    mock_sweeper.backfill_images.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_sweep_skipped_when_locked(
    coordinator: DataCoordinator, locks: JobLockManager, mock_sweeper: MagicMock
) -> None:
    """A held consistency lock skips the sweep."""
    await locks.acquire(CONSISTENCY_JOB_NAME, 60)

    assert await coordinator.check_consistency() is None
    mock_sweeper.check_missing_files.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_backup(
    coordinator: DataCoordinator, locks: JobLockManager, mock_backups: MagicMock
) -> None:
    """Backups run under their own lock."""
    assert await coordinator.create_backup() == Path("/backups/a.tar.gz")

    await locks.acquire(BACKUP_JOB_NAME, 30)
    assert await coordinator.create_backup() is None
    mock_backups.create_backup.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unlock_stale_jobs(
    coordinator: DataCoordinator, locks: JobLockManager
) -> None:
    """Fresh locks survive the stale sweep."""
    await locks.acquire(REFRESH_JOB_NAME, 60)

    assert await coordinator.unlock_stale_jobs() == []
    assert await locks.is_locked(REFRESH_JOB_NAME)
