"""Unit tests for FileManager."""

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
from lxml import etree
import pytest
import pytest_asyncio
import respx

from podhoard.exceptions import DownloadError, PathValidationError
from podhoard.file_manager import FileManager
from podhoard.http_client import HttpClient
from podhoard.path_manager import PathManager

URL = "https://cdn.example.com/ep1.mp3"
BODY = b"ID3" + b"\x00" * 2048


@pytest.fixture
def paths(tmp_path: Path) -> PathManager:
    """Provides a PathManager rooted at a temporary directory."""
    return PathManager(tmp_path)


@pytest_asyncio.fixture
async def file_manager(paths: PathManager) -> AsyncGenerator[FileManager]:
    """Provides a FileManager over a real HttpClient."""
    http = HttpClient(timeout=5.0)
    yield FileManager(paths, http)
    await http.aclose()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_place_artifact_downloads_once(
    respx_mock: respx.Router, file_manager: FileManager, paths: PathManager
) -> None:
    """A second placement of the same destination makes no request."""
    route = respx_mock.get(URL).mock(return_value=httpx.Response(200, content=BODY))
    destination = paths.media_path("Show", "Episode 1", URL)

    first = await file_manager.place_artifact(URL, destination, "feed1", "entry1")
    second = await file_manager.place_artifact(URL, destination, "feed1", "entry1")

    assert first == second == destination
    assert destination.read_bytes() == BODY
    assert route.call_count == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_place_artifact_failure_leaves_nothing(
    respx_mock: respx.Router, file_manager: FileManager, paths: PathManager
) -> None:
    """A failed transfer leaves neither the file nor a temporary part."""
    respx_mock.get(URL).mock(return_value=httpx.Response(500))
    destination = paths.media_path("Show", "Episode 1", URL)

    with pytest.raises(DownloadError) as exc_info:
        await file_manager.place_artifact(URL, destination, "feed1", "entry1")

    assert exc_info.value.feed_id == "feed1"
    assert exc_info.value.entry_id == "entry1"
    assert exc_info.value.status_code == 500
    assert not destination.exists()
    assert list(destination.parent.iterdir()) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_place_artifact_rejects_escape(
    file_manager: FileManager, tmp_path: Path
) -> None:
    """Destinations outside the media root are refused before any transfer."""
    with pytest.raises(PathValidationError):
        await file_manager.place_artifact(URL, tmp_path / "elsewhere.mp3")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_exists_and_file_size(
    file_manager: FileManager, paths: PathManager
) -> None:
    """Existence and size reflect the file on disk."""
    path = paths.media_path("Show", "Episode 1", URL)
    assert not await file_manager.exists(path)

    path.parent.mkdir(parents=True)
    path.write_bytes(b"12345")

    assert await file_manager.exists(path)
    assert await file_manager.file_size(path) == 5


@pytest.mark.unit
@pytest.mark.asyncio
async def test_file_size_missing(file_manager: FileManager, paths: PathManager) -> None:
    """A missing file raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        await file_manager.file_size(paths.media_dir / "nope.mp3")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_file(file_manager: FileManager, paths: PathManager) -> None:
    """Deleting reports whether a file was actually removed."""
    path = paths.media_path("Show", "Episode 1", URL)
    path.parent.mkdir(parents=True)
    path.write_bytes(b"x")

    assert await file_manager.delete_file(path) is True
    assert not path.exists()
    assert await file_manager.delete_file(path) is False


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_file_outside_root(
    file_manager: FileManager, tmp_path: Path
) -> None:
    """Files outside the media root are never deleted."""
    outside = tmp_path / "keep.txt"
    outside.write_text("keep")

    with pytest.raises(PathValidationError):
        await file_manager.delete_file(outside)
    assert outside.exists()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_feed_folder(file_manager: FileManager, paths: PathManager) -> None:
    """The whole feed folder is removed; a missing folder is fine."""
    folder = paths.feed_dir("Show")
    (folder / "images").mkdir(parents=True)
    (folder / "a.mp3").write_bytes(b"x")
    (folder / "images" / "a.jpg").write_bytes(b"x")

    await file_manager.delete_feed_folder("Show")
    assert not folder.exists()

    await file_manager.delete_feed_folder("Show")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_write_nfo(file_manager: FileManager, paths: PathManager) -> None:
    """The NFO describes the feed as a broadcast album."""
    path = await file_manager.write_nfo("Show", "My Show", "https://x.com/c.jpg")

    assert path == paths.nfo_path("Show")
    root = etree.fromstring(path.read_bytes())
    assert root.tag == "album"
    assert root.findtext("title") == "My Show"
    assert root.findtext("type") == "Broadcast"
    assert root.findtext("thumb") == "https://x.com/c.jpg"
