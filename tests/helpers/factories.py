"""Builders for model instances used across tests."""

from datetime import UTC, datetime, timedelta

from podhoard.db.types import Entry, EntryStatus, Feed, Settings

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


def make_feed(feed_id: str = "feed1", **overrides: object) -> Feed:
    """Build a Feed with sensible defaults."""
    values: dict[str, object] = {
        "id": feed_id,
        "source_url": f"https://example.com/{feed_id}.xml",
        "title": "Test Podcast",
        "remote_image_url": "https://example.com/cover.jpg",
    }
    values.update(overrides)
    return Feed(**values)  # type: ignore[arg-type]


def make_entry(
    index: int,
    feed_id: str = "feed1",
    status: EntryStatus = EntryStatus.PENDING,
    **overrides: object,
) -> Entry:
    """Build an Entry whose fields derive from ``index``."""
    values: dict[str, object] = {
        "id": f"entry{index}",
        "feed_id": feed_id,
        "guid": f"guid-{index}",
        "title": f"Episode {index}",
        "published": BASE_TIME + timedelta(days=index),
        "remote_url": f"https://cdn.example.com/ep{index}.mp3",
        "status": status,
    }
    values.update(overrides)
    return Entry(**values)  # type: ignore[arg-type]


def make_settings(**overrides: object) -> Settings:
    """Build a Settings row with defaults overridden."""
    return Settings(**overrides)  # type: ignore[arg-type]
