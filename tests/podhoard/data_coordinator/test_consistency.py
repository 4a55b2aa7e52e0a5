"""Tests for ConsistencySweeper against a real database and file system."""

from pathlib import Path

import httpx
from helpers.factories import make_entry
import pytest
import respx

from podhoard.data_coordinator import ConsistencySweeper, FilePlacement
from podhoard.db import EntryDatabase, FeedDatabase, SettingsDatabase
from podhoard.db.types import FILE_SIZE_PROBE_FAILED, EntryStatus, Feed
from podhoard.file_manager import FileManager
from podhoard.http_client import HttpClient
from podhoard.path_manager import PathManager


@pytest.fixture
def sweeper(
    entry_db: EntryDatabase,
    feed_db: FeedDatabase,
    settings_db: SettingsDatabase,
    file_manager: FileManager,
    http: HttpClient,
    placement: FilePlacement,
) -> ConsistencySweeper:
    """Provides a ConsistencySweeper."""
    return ConsistencySweeper(
        entry_db, feed_db, settings_db, file_manager, http, placement
    )


def _media_file(paths: PathManager, name: str, content: bytes = b"audio") -> Path:
    path = paths.feed_dir("Test Podcast") / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


# --- check_missing_files ---


@pytest.mark.unit
@pytest.mark.asyncio
@pytest.mark.parametrize("hard", [False, True])
async def test_missing_file_marks_removed(
    sweeper: ConsistencySweeper,
    entry_db: EntryDatabase,
    settings_db: SettingsDatabase,
    paths: PathManager,
    stored_feed: Feed,
    hard: bool,
) -> None:
    """Entries whose file vanished become REMOVED, hard or soft per settings."""
    await settings_db.update_settings(hard_remove_missing_files=hard)
    present = _media_file(paths, "one.mp3")
    missing = paths.feed_dir("Test Podcast") / "two.mp3"
    await entry_db.insert_entries(
        [
            make_entry(1, status=EntryStatus.MATERIALIZED, local_path=str(present)),
            make_entry(2, status=EntryStatus.MATERIALIZED, local_path=str(missing)),
        ]
    )

    result = await sweeper.check_missing_files()

    assert (result.examined, result.updated, result.failed) == (2, 1, 0)
    kept = await entry_db.get_entry_by_id("entry1")
    assert kept.status == EntryStatus.MATERIALIZED
    removed = await entry_db.get_entry_by_id("entry2")
    assert removed.status == EntryStatus.REMOVED
    assert removed.local_path is None
    assert removed.hard_removed is hard


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_file_check_is_idempotent(
    sweeper: ConsistencySweeper,
    entry_db: EntryDatabase,
    paths: PathManager,
    stored_feed: Feed,
) -> None:
    """A second sweep finds nothing more to correct."""
    missing = paths.feed_dir("Test Podcast") / "gone.mp3"
    await entry_db.insert_entries(
        [make_entry(1, status=EntryStatus.MATERIALIZED, local_path=str(missing))]
    )

    await sweeper.check_missing_files()
    result = await sweeper.check_missing_files()

    assert (result.examined, result.updated) == (0, 0)


# --- backfill_sizes ---


@pytest.mark.unit
@pytest.mark.asyncio
async def test_backfill_sizes(
    respx_mock: respx.Router,
    sweeper: ConsistencySweeper,
    entry_db: EntryDatabase,
    paths: PathManager,
    stored_feed: Feed,
) -> None:
    """Local files are measured, remote sizes probed, failures flagged."""
    local = _media_file(paths, "one.mp3", b"12345")
    respx_mock.head("https://cdn.example.com/ep2.mp3").mock(
        return_value=httpx.Response(200, headers={"Content-Length": "1234"})
    )
    respx_mock.head("https://cdn.example.com/ep3.mp3").mock(
        return_value=httpx.Response(404)
    )
    await entry_db.insert_entries(
        [
            make_entry(1, status=EntryStatus.MATERIALIZED, local_path=str(local)),
            make_entry(2),
            make_entry(3, status=EntryStatus.REMOVED),
            make_entry(4, file_size=999),
        ]
    )

    result = await sweeper.backfill_sizes()

    assert (result.examined, result.updated, result.failed) == (3, 2, 1)
    assert (await entry_db.get_entry_by_id("entry1")).file_size == 5
    assert (await entry_db.get_entry_by_id("entry2")).file_size == 1234
    assert (
        await entry_db.get_entry_by_id("entry3")
    ).file_size == FILE_SIZE_PROBE_FAILED
    assert (await entry_db.get_entry_by_id("entry4")).file_size == 999


@pytest.mark.unit
@pytest.mark.asyncio
async def test_backfill_sizes_retries_failed_probes(
    respx_mock: respx.Router,
    sweeper: ConsistencySweeper,
    entry_db: EntryDatabase,
    stored_feed: Feed,
) -> None:
    """Entries flagged as failed are probed again on the next sweep."""
    route = respx_mock.head("https://cdn.example.com/ep1.mp3")
    route.side_effect = [
        httpx.Response(503),
        httpx.Response(200, headers={"Content-Length": "42"}),
    ]
    await entry_db.insert_entries([make_entry(1)])

    await sweeper.backfill_sizes()
    result = await sweeper.backfill_sizes()

    assert result.updated == 1
    assert (await entry_db.get_entry_by_id("entry1")).file_size == 42


# --- backfill_images ---


@pytest.mark.unit
@pytest.mark.asyncio
async def test_backfill_images_restores_feed_cover(
    respx_mock: respx.Router,
    sweeper: ConsistencySweeper,
    feed_db: FeedDatabase,
    entry_db: EntryDatabase,
    stored_feed: Feed,
) -> None:
    """Missing cover art is fetched; episode art waits for its setting."""
    cover = respx_mock.get("https://example.com/cover.jpg").mock(
        return_value=httpx.Response(200, content=b"jpeg")
    )
    episode_art = respx_mock.get("https://example.com/ep1.jpg").mock(
        return_value=httpx.Response(200, content=b"jpeg")
    )
    await entry_db.insert_entries(
        [
            make_entry(
                1,
                status=EntryStatus.MATERIALIZED,
                remote_image_url="https://example.com/ep1.jpg",
            )
        ]
    )

    result = await sweeper.backfill_images()

    assert (result.examined, result.updated) == (1, 1)
    assert cover.call_count == 1
    assert episode_art.call_count == 0
    assert (await feed_db.get_feed_by_id(stored_feed.id)).local_image_path

    again = await sweeper.backfill_images()
    assert again.updated == 0
    assert cover.call_count == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_backfill_images_episode_art(
    respx_mock: respx.Router,
    sweeper: ConsistencySweeper,
    settings_db: SettingsDatabase,
    entry_db: EntryDatabase,
    stored_feed: Feed,
) -> None:
    """Episode artwork is cached when enabled; failures are counted."""
    await settings_db.update_settings(download_episode_images=True)
    respx_mock.get("https://example.com/cover.jpg").mock(
        return_value=httpx.Response(404)
    )
    respx_mock.get("https://example.com/ep1.jpg").mock(
        return_value=httpx.Response(200, content=b"jpeg")
    )
    await entry_db.insert_entries(
        [
            make_entry(
                1,
                status=EntryStatus.MATERIALIZED,
                remote_image_url="https://example.com/ep1.jpg",
            )
        ]
    )

    result = await sweeper.backfill_images()

    assert (result.examined, result.updated, result.failed) == (2, 1, 1)
    assert (await entry_db.get_entry_by_id("entry1")).local_image_path
