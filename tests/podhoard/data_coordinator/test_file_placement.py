"""Tests for FilePlacement over a real database and mocked network."""

import httpx
from helpers.factories import make_entry, make_settings
import pytest
import respx

from podhoard.data_coordinator import FilePlacement
from podhoard.db import EntryDatabase, FeedDatabase
from podhoard.db.types import ZERO_DATETIME, EntryStatus, Feed
from podhoard.exceptions import DownloadError
from podhoard.path_manager import PathManager

MEDIA_URL = "https://cdn.example.com/ep1.mp3"
BODY = b"\xff\xfb" * 1000


@pytest.mark.unit
@pytest.mark.asyncio
async def test_materialize_marks_entry(
    respx_mock: respx.Router,
    placement: FilePlacement,
    entry_db: EntryDatabase,
    paths: PathManager,
    stored_feed: Feed,
) -> None:
    """A completed transfer makes the entry MATERIALIZED with its size."""
    respx_mock.get(MEDIA_URL).mock(return_value=httpx.Response(200, content=BODY))
    entry = make_entry(1)
    await entry_db.insert_entries([entry])

    path = await placement.materialize(entry, stored_feed, make_settings())

    assert path == paths.media_dir / "Test-Podcast" / "episode-1.mp3"
    assert path.read_bytes() == BODY
    stored = await entry_db.get_entry_by_id(entry.id)
    assert stored.status == EntryStatus.MATERIALIZED
    assert stored.local_path == str(path)
    assert stored.file_size == len(BODY)
    assert stored.downloaded_at is not None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_destination_prefixes(
    placement: FilePlacement, entry_db: EntryDatabase, stored_feed: Feed
) -> None:
    """Episode number and date prefix the file name when enabled."""
    first, second = make_entry(1), make_entry(2)
    await entry_db.insert_entries([first, second])
    settings = make_settings(
        append_date_to_file_name=True, append_episode_number_to_file_name=True
    )

    destination = await placement.destination_for(second, stored_feed, settings)

    assert destination.name == "2-2024-01-03-episode-2.mp3"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_destination_skips_unknown_date(
    placement: FilePlacement, stored_feed: Feed
) -> None:
    """An unusable publish date contributes no prefix."""
    entry = make_entry(1, published=ZERO_DATETIME)
    settings = make_settings(append_date_to_file_name=True)

    destination = await placement.destination_for(entry, stored_feed, settings)

    assert destination.name == "episode-1.mp3"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_materialize_failure_keeps_pending(
    respx_mock: respx.Router,
    placement: FilePlacement,
    entry_db: EntryDatabase,
    stored_feed: Feed,
) -> None:
    """A failed transfer leaves the entry PENDING and no file behind."""
    respx_mock.get(MEDIA_URL).mock(return_value=httpx.Response(404))
    entry = make_entry(1)
    await entry_db.insert_entries([entry])

    with pytest.raises(DownloadError):
        await placement.materialize(entry, stored_feed, make_settings())

    stored = await entry_db.get_entry_by_id(entry.id)
    assert stored.status == EntryStatus.PENDING
    assert stored.local_path is None
    destination = await placement.destination_for(entry, stored_feed, make_settings())
    assert not destination.exists()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_materialize_adopts_existing_file(
    respx_mock: respx.Router,
    placement: FilePlacement,
    entry_db: EntryDatabase,
    stored_feed: Feed,
) -> None:
    """A file already at the destination is adopted without a request."""
    route = respx_mock.get(MEDIA_URL).mock(return_value=httpx.Response(200))
    entry = make_entry(1)
    await entry_db.insert_entries([entry])
    destination = await placement.destination_for(entry, stored_feed, make_settings())
    destination.parent.mkdir(parents=True)
    destination.write_bytes(b"placed by hand")

    await placement.materialize(entry, stored_feed, make_settings())

    assert route.call_count == 0
    stored = await entry_db.get_entry_by_id(entry.id)
    assert stored.status == EntryStatus.MATERIALIZED
    assert stored.file_size == len(b"placed by hand")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cache_feed_image(
    respx_mock: respx.Router,
    placement: FilePlacement,
    feed_db: FeedDatabase,
    paths: PathManager,
    stored_feed: Feed,
) -> None:
    """Cover art lands in the feed folder and is recorded."""
    respx_mock.get("https://example.com/cover.jpg").mock(
        return_value=httpx.Response(200, content=b"jpeg")
    )

    path = await placement.cache_feed_image(stored_feed)

    assert path == paths.media_dir / "Test-Podcast" / "folder.jpg"
    feed = await feed_db.get_feed_by_id(stored_feed.id)
    assert feed.local_image_path == str(path)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cache_feed_image_failure_is_quiet(
    respx_mock: respx.Router,
    placement: FilePlacement,
    feed_db: FeedDatabase,
    stored_feed: Feed,
) -> None:
    """Artwork failures return None instead of raising."""
    respx_mock.get("https://example.com/cover.jpg").mock(
        return_value=httpx.Response(500)
    )

    assert await placement.cache_feed_image(stored_feed) is None
    feed = await feed_db.get_feed_by_id(stored_feed.id)
    assert feed.local_image_path is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cache_entry_image(
    respx_mock: respx.Router,
    placement: FilePlacement,
    entry_db: EntryDatabase,
    paths: PathManager,
    stored_feed: Feed,
) -> None:
    """Episode art is cached under the feed's images folder."""
    respx_mock.get("https://example.com/ep1.png").mock(
        return_value=httpx.Response(200, content=b"png")
    )
    entry = make_entry(1, remote_image_url="https://example.com/ep1.png")
    await entry_db.insert_entries([entry])

    path = await placement.cache_entry_image(entry, stored_feed)

    assert path == paths.media_dir / "Test-Podcast" / "images" / "entry1.png"
    stored = await entry_db.get_entry_by_id(entry.id)
    assert stored.local_image_path == str(path)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cache_entry_image_without_artwork(
    placement: FilePlacement, stored_feed: Feed
) -> None:
    """Entries without artwork are a no-op."""
    assert await placement.cache_entry_image(make_entry(1), stored_feed) is None
