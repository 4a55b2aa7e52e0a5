"""Tests for BackupManager against a real database."""

from datetime import UTC, datetime, timedelta
from pathlib import Path
import sqlite3
import tarfile
from unittest.mock import patch

from helpers.factories import make_feed
import pytest

from podhoard.backup import BackupManager, backup_file_name
from podhoard.db import FeedDatabase, SqlalchemyCore
from podhoard.exceptions import BackupError
from podhoard.path_manager import PathManager

NOW = datetime(2024, 3, 1, 8, 30, 0, tzinfo=UTC)


@pytest.fixture
def paths(tmp_path: Path) -> PathManager:
    """Provides a PathManager rooted at a temporary directory."""
    return PathManager(tmp_path / "data")


@pytest.mark.unit
def test_backup_file_name() -> None:
    """Archive names embed a sortable timestamp."""
    assert backup_file_name(NOW) == "podhoard_backup_2024.03.01_083000.tar.gz"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_backup_writes_archive(
    db_core: SqlalchemyCore,
    feed_db: FeedDatabase,
    paths: PathManager,
    tmp_path: Path,
) -> None:
    """The archive holds a readable copy of the database and nothing else."""
    await feed_db.insert_feed(make_feed())
    manager = BackupManager(db_core, paths)

    archive = await manager.create_backup(NOW)

    assert archive == paths.backups_dir / backup_file_name(NOW)
    with tarfile.open(archive, "r:gz") as tar:
        assert tar.getnames() == [db_core.db_path.name]
        tar.extractall(tmp_path / "restore", filter="data")
    with sqlite3.connect(tmp_path / "restore" / db_core.db_path.name) as conn:
        (count,) = conn.execute("SELECT COUNT(*) FROM feed").fetchone()
    assert count == 1
    assert [p.name for p in paths.backups_dir.iterdir()] == [archive.name]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_rotation_keeps_newest(db_core: SqlalchemyCore, paths: PathManager) -> None:
    """Only the configured number of archives survive, newest first."""
    manager = BackupManager(db_core, paths, keep=5)
    created = [
        await manager.create_backup(NOW + timedelta(hours=i)) for i in range(7)
    ]

    backups = await manager.list_backups()

    assert backups == list(reversed(created))[:5]
    assert not created[0].exists()
    assert not created[1].exists()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_backups_without_directory(
    db_core: SqlalchemyCore, paths: PathManager
) -> None:
    """No backups folder means no backups."""
    assert await BackupManager(db_core, paths).list_backups() == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failed_archive_is_removed_and_older_backups_survive(
    db_core: SqlalchemyCore, paths: PathManager
) -> None:
    """A half-written archive is deleted and does not push out good backups."""
    manager = BackupManager(db_core, paths, keep=2)
    good = [await manager.create_backup(NOW + timedelta(hours=i)) for i in range(2)]

    def write_partial(archive: Path, source: Path, arcname: str) -> None:
        archive.write_bytes(b"\x1f\x8b partial")
        raise tarfile.TarError("disk full")

    failed_at = NOW + timedelta(hours=5)
    with (
        patch("podhoard.backup._write_archive", side_effect=write_partial),
        pytest.raises(BackupError),
    ):
        await manager.create_backup(failed_at)

    assert not (paths.backups_dir / backup_file_name(failed_at)).exists()
    assert await manager.list_backups() == list(reversed(good))
    assert sorted(p.name for p in paths.backups_dir.iterdir()) == sorted(
        p.name for p in good
    )
