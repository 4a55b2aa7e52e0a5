"""Shared fixtures for podhoard tests that need a real database."""

from collections.abc import AsyncGenerator
from pathlib import Path

from helpers.alembic import run_migrations
from helpers.factories import make_feed
import pytest
import pytest_asyncio

from podhoard.db import (
    EntryDatabase,
    FeedDatabase,
    JobLockDatabase,
    SettingsDatabase,
    SqlalchemyCore,
)
from podhoard.db.sqlalchemy_core import DB_FILE_NAME
from podhoard.db.types import Feed


@pytest_asyncio.fixture
async def db_core(tmp_path: Path) -> AsyncGenerator[SqlalchemyCore]:
    """Provides a migrated SqlalchemyCore in a temporary directory."""
    db_dir = tmp_path / "db"
    db_dir.mkdir()
    run_migrations(db_dir / DB_FILE_NAME)

    core = SqlalchemyCore(db_dir)
    yield core
    await core.close()


@pytest.fixture
def feed_db(db_core: SqlalchemyCore) -> FeedDatabase:
    """Provides a FeedDatabase."""
    return FeedDatabase(db_core)


@pytest.fixture
def entry_db(db_core: SqlalchemyCore) -> EntryDatabase:
    """Provides an EntryDatabase."""
    return EntryDatabase(db_core)


@pytest.fixture
def settings_db(db_core: SqlalchemyCore) -> SettingsDatabase:
    """Provides a SettingsDatabase."""
    return SettingsDatabase(db_core)


@pytest.fixture
def lock_db(db_core: SqlalchemyCore) -> JobLockDatabase:
    """Provides a JobLockDatabase."""
    return JobLockDatabase(db_core)


@pytest_asyncio.fixture
async def stored_feed(feed_db: FeedDatabase) -> Feed:
    """Provides a feed that already exists in the database."""
    feed = make_feed()
    await feed_db.insert_feed(feed)
    return await feed_db.get_feed_by_id(feed.id)
