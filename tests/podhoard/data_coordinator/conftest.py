"""Fixtures wiring the data coordinator stack over a real database."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from podhoard.data_coordinator import FilePlacement
from podhoard.db import EntryDatabase, FeedDatabase, JobLockDatabase
from podhoard.file_manager import FileManager
from podhoard.http_client import HttpClient
from podhoard.job_lock import JobLockManager
from podhoard.path_manager import PathManager


@pytest.fixture
def paths(tmp_path: Path) -> PathManager:
    """Provides a PathManager rooted at a temporary directory."""
    return PathManager(tmp_path / "data")


@pytest_asyncio.fixture
async def http() -> AsyncGenerator[HttpClient]:
    """Provides a real HttpClient; tests mock the network with respx."""
    client = HttpClient(timeout=5.0)
    yield client
    await client.aclose()


@pytest.fixture
def file_manager(paths: PathManager, http: HttpClient) -> FileManager:
    """Provides a FileManager."""
    return FileManager(paths, http)


@pytest.fixture
def placement(
    paths: PathManager,
    file_manager: FileManager,
    entry_db: EntryDatabase,
    feed_db: FeedDatabase,
) -> FilePlacement:
    """Provides a FilePlacement."""
    return FilePlacement(paths, file_manager, entry_db, feed_db)


@pytest.fixture
def locks(lock_db: JobLockDatabase) -> JobLockManager:
    """Provides a JobLockManager."""
    return JobLockManager(lock_db)
