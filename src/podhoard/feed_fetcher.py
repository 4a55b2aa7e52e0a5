"""Fetch and parse podcast feed documents.

The body is parsed with feedparser. The raw bytes are kept alongside the
parse result because some channel metadata, such as ``itunes:image`` on
feeds that also carry a plain ``<image>`` block, is only reliably recovered
with a direct XPath query.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
import logging
import re
from typing import Any

import feedparser
from lxml import etree, html

from .db.types import ZERO_DATETIME
from .exceptions import DownloadError, FetchError, InvalidUrlError
from .http_client import HttpClient

logger = logging.getLogger(__name__)

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"

# Tried in order; the first format that parses wins.
PUBLISHED_FORMATS = (
    "%a, %d %b %Y %H:%M:%S %z",  # RFC 1123, numeric zone
    "%a, %d %b %Y %H:%M:%S %Z",  # RFC 1123, named zone
    "%a, %d %b %Y %H:%M %z",
    "%d %b %Y %H:%M:%S %z",
    "%a, %d %B %Y %H:%M:%S %z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)

_NAMED_ZONES = {
    "UT": "+0000",
    "UTC": "+0000",
    "GMT": "+0000",
    "Z": "+0000",
    "EST": "-0500",
    "EDT": "-0400",
    "CST": "-0600",
    "CDT": "-0500",
    "MST": "-0700",
    "MDT": "-0600",
    "PST": "-0800",
    "PDT": "-0700",
}
_TRAILING_ZONE = re.compile(r"\s([A-Z]{1,3})$")


@dataclass
class FeedChannel:
    """Channel-level metadata of a feed document."""

    title: str = ""
    summary: str = ""
    author: str | None = None
    image_url: str | None = None
    link: str | None = None


@dataclass
class FeedItem:
    """One ``<item>`` of a feed document, with values left as published.

    Dates and durations stay raw strings here; the reconciler parses them so
    that a single malformed value never fails the whole document.
    """

    guid: str | None
    title: str
    summary: str = ""
    description: str = ""
    published: str | None = None
    duration: str | None = None
    enclosure_url: str | None = None
    enclosure_length: int | None = None
    link: str | None = None
    image_url: str | None = None
    episode_type: str | None = None


@dataclass
class FetchedFeed:
    """A parsed feed document plus the bytes it was parsed from."""

    channel: FeedChannel
    entries: list[FeedItem] = field(default_factory=list)
    raw: bytes = b""


# --- Parsing helpers ---------------------------------------------------------


def _normalize_zone(value: str) -> str:
    match = _TRAILING_ZONE.search(value)
    if match and match.group(1) in _NAMED_ZONES:
        return value[: match.start(1)] + _NAMED_ZONES[match.group(1)]
    return value


def parse_published(value: str | None) -> datetime:
    """Parse a publish date with an ordered ladder of formats.

    Named zones (``GMT``, ``EST``...) are rewritten to numeric offsets before
    the ladder runs. Values without zone information are taken as UTC.

    Args:
        value: The date string as it appears in the feed.

    Returns:
        An aware UTC datetime, or ZERO_DATETIME if no format matched.
    """
    if not value or not value.strip():
        return ZERO_DATETIME

    candidates = [value.strip()]
    normalized = _normalize_zone(candidates[0])
    if normalized != candidates[0]:
        candidates.insert(0, normalized)

    for candidate in candidates:
        for fmt in PUBLISHED_FORMATS:
            try:
                parsed = datetime.strptime(candidate, fmt)
            except ValueError:
                continue
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed.astimezone(UTC)

    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        logger.warning(
            "Unparseable publish date, using zero timestamp.",
            extra={"published": value},
        )
        return ZERO_DATETIME
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def parse_duration(value: str | int | None) -> int:
    """Parse an ``itunes:duration`` value into whole seconds.

    Accepts plain seconds and ``MM:SS`` / ``HH:MM:SS``. Anything malformed
    yields 0.
    """
    if value is None:
        return 0
    if isinstance(value, int):
        return max(value, 0)

    text = value.strip()
    if not text:
        return 0
    parts = text.split(":")
    if len(parts) > 3:
        return 0
    try:
        numbers = [float(part) for part in parts]
    except ValueError:
        return 0
    if any(n < 0 for n in numbers):
        return 0

    seconds = 0.0
    for n in numbers:
        seconds = seconds * 60 + n
    return int(seconds)


def strip_markup(value: str | None) -> str:
    """Return the text content of an HTML fragment with whitespace collapsed."""
    if not value or not value.strip():
        return ""
    try:
        text = html.fragment_fromstring(value, create_parent="div").text_content()
    except (etree.ParserError, ValueError):
        text = value
    return " ".join(text.split())


def extract_summary(item: FeedItem) -> str:
    """Return the stripped summary, or the stripped description if empty."""
    return strip_markup(item.summary) or strip_markup(item.description)


def _itunes_image_from_raw(raw: bytes) -> str | None:
    """Recover ``itunes:image/@href`` of the channel with XPath."""
    parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(raw, parser=parser)
    except etree.XMLSyntaxError:
        return None
    if root is None:
        return None
    hrefs = root.xpath(
        "/rss/channel/itunes:image/@href", namespaces={"itunes": ITUNES_NS}
    )
    if isinstance(hrefs, list) and hrefs:
        return str(hrefs[0]).strip() or None
    return None


def _first_enclosure(entry: Any) -> tuple[str | None, int | None]:
    for enclosure in entry.get("enclosures", []):
        href = enclosure.get("href")
        if not href:
            continue
        try:
            length = int(enclosure.get("length") or 0) or None
        except (TypeError, ValueError):
            length = None
        return href.strip(), length
    return None, None


def _description(entry: Any) -> str:
    content = entry.get("content") or []
    if content:
        return content[0].get("value", "")
    return entry.get("description", "")


def _to_item(entry: Any) -> FeedItem:
    enclosure_url, enclosure_length = _first_enclosure(entry)
    image = entry.get("image")
    return FeedItem(
        guid=(entry.get("id") or "").strip() or None,
        title=(entry.get("title") or "").strip(),
        summary=entry.get("itunes_summary") or entry.get("summary", ""),
        description=_description(entry),
        published=entry.get("published") or entry.get("updated"),
        duration=entry.get("itunes_duration"),
        enclosure_url=enclosure_url,
        enclosure_length=enclosure_length,
        link=entry.get("link"),
        image_url=image.get("href") if isinstance(image, dict) else None,
        episode_type=entry.get("itunes_episodetype"),
    )


def parse_feed_document(raw: bytes) -> FetchedFeed:
    """Parse feed bytes into a FetchedFeed.

    Raises:
        FetchError: If the document has neither a channel title nor entries.
    """
    parsed = feedparser.parse(raw)
    channel_data = parsed.get("feed", {})
    if not parsed.entries and not channel_data.get("title"):
        raise FetchError(
            "Document is not a usable feed.",
            url=None,
        ) from parsed.get("bozo_exception")

    image = channel_data.get("image")
    image_url = image.get("href") if isinstance(image, dict) else None
    channel = FeedChannel(
        title=(channel_data.get("title") or "").strip(),
        summary=strip_markup(
            channel_data.get("summary") or channel_data.get("subtitle")
        ),
        author=channel_data.get("author") or channel_data.get("itunes_author"),
        image_url=_itunes_image_from_raw(raw) or image_url,
        link=channel_data.get("link"),
    )
    return FetchedFeed(
        channel=channel,
        entries=[_to_item(entry) for entry in parsed.entries],
        raw=raw,
    )


class FeedFetcher:
    """Retrieve a feed document over HTTP and parse it.

    Attributes:
        _http: Shared HTTP client.
    """

    def __init__(self, http: HttpClient):
        self._http = http

    async def fetch(self, url: str, feed_id: str | None = None) -> FetchedFeed:
        """Fetch and parse the feed at ``url``.

        Args:
            url: The feed document URL.
            feed_id: The stored feed, when one exists, for error context.

        Returns:
            The parsed channel, its items in document order, and the raw
            bytes.

        Raises:
            FetchError: On an invalid URL, transport error, non-2xx status or
                a document that is not a feed.
        """
        log_params = {"feed_id": feed_id, "url": url}
        logger.debug("Fetching feed document.", extra=log_params)
        try:
            raw = await self._http.get_bytes(url)
        except InvalidUrlError as e:
            raise FetchError("Invalid feed URL.", url=url, feed_id=feed_id) from e
        except DownloadError as e:
            raise FetchError(
                "Failed to fetch feed document.",
                url=url,
                feed_id=feed_id,
                status_code=e.status_code,
            ) from e

        try:
            fetched = await asyncio.to_thread(parse_feed_document, raw)
        except FetchError as e:
            e.url = url
            e.feed_id = feed_id
            raise
        logger.debug(
            "Feed document parsed.",
            extra={**log_params, "entries": len(fetched.entries)},
        )
        return fetched
