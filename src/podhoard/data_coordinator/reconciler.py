"""Turn a fetched feed document into new Entry rows.

This module defines the EntryReconciler, which compares the items of a
freshly fetched document against the GUIDs already stored for the feed,
inserts only the new ones, and decides for each whether it should be
downloaded (PENDING) or not (REMOVED).
"""

import logging

from ..db import EntryDatabase, FeedDatabase, SettingsDatabase
from ..db.types import Entry, EntryStatus, Feed, Settings
from ..feed_fetcher import (
    FeedItem,
    FetchedFeed,
    extract_summary,
    parse_duration,
    parse_published,
)
from .types import ReconcileResult

logger = logging.getLogger(__name__)


def decide_status(
    *,
    feed: Feed,
    settings: Settings,
    first_sync: bool,
    position: int,
) -> EntryStatus:
    """Pick the initial status of a newly discovered entry.

    Rules are applied in order:

    1. paused feed: REMOVED
    2. first sync with download_on_add off: REMOVED
    3. auto_download off: REMOVED
    4. refresh of a known feed: PENDING
    5. first sync: PENDING for the first ``initial_download_count`` items in
       document order, REMOVED after that

    Args:
        feed: The owning feed.
        settings: Current settings.
        first_sync: Whether the entry comes from the sync that added the feed.
        position: 0-based position of the item in the document.

    Returns:
        The status to store.
    """
    if feed.is_paused:
        return EntryStatus.REMOVED
    if first_sync and not settings.download_on_add:
        return EntryStatus.REMOVED
    if not settings.auto_download:
        return EntryStatus.REMOVED
    if not first_sync:
        return EntryStatus.PENDING
    if position < settings.initial_download_count:
        return EntryStatus.PENDING
    return EntryStatus.REMOVED


def entry_guid(item: FeedItem) -> str | None:
    """Return the item's native GUID, falling back to its enclosure URL."""
    return item.guid or item.enclosure_url


class EntryReconciler:
    """Store new entries of a feed with policy-driven statuses.

    Attributes:
        _entry_db: Entry persistence.
        _feed_db: Feed persistence.
        _settings_db: Settings persistence.
    """

    def __init__(
        self,
        entry_db: EntryDatabase,
        feed_db: FeedDatabase,
        settings_db: SettingsDatabase,
    ):
        self._entry_db = entry_db
        self._feed_db = feed_db
        self._settings_db = settings_db
        logger.debug("EntryReconciler initialized.")

    def _build_entry(
        self, feed: Feed, guid: str, item: FeedItem, status: EntryStatus
    ) -> Entry:
        return Entry(
            feed_id=feed.id,
            guid=guid,
            title=item.title or guid,
            summary=extract_summary(item) or None,
            published=parse_published(item.published),
            duration=parse_duration(item.duration),
            remote_url=item.enclosure_url or "",
            remote_image_url=item.image_url,
            episode_type=item.episode_type,
            status=status,
        )

    async def reconcile(
        self, feed: Feed, fetched: FetchedFeed, *, first_sync: bool
    ) -> ReconcileResult:
        """Insert the document's new entries for ``feed``.

        Existing GUIDs are found with one batch lookup. Items without an
        enclosure are skipped, as are repeats of a GUID earlier in the same
        document. When at least one entry is inserted, the feed's
        latest_entry_at moves forward to the newest publish date among them
        and never backwards.

        Args:
            feed: The feed as currently stored.
            fetched: Its freshly fetched document.
            first_sync: True only for the sync run when the feed is added;
                later refreshes pass False even if nothing was stored yet.

        Returns:
            Counts of what happened.

        Raises:
            DatabaseOperationError: If a lookup or insert fails.
        """
        result = ReconcileResult(
            feed_id=feed.id,
            first_sync=first_sync,
            seen=len(fetched.entries),
            latest_entry_at=feed.latest_entry_at,
        )
        log_params = {"feed_id": feed.id, "first_sync": first_sync}

        candidates: list[tuple[int, str, FeedItem]] = []
        seen_guids: set[str] = set()
        for position, item in enumerate(fetched.entries):
            if not item.enclosure_url:
                result.skipped += 1
                logger.warning(
                    "Skipping item without an enclosure.",
                    extra={**log_params, "guid": item.guid, "title": item.title},
                )
                continue
            guid = entry_guid(item)
            if guid is None or guid in seen_guids:
                result.skipped += 1
                continue
            seen_guids.add(guid)
            candidates.append((position, guid, item))

        existing = await self._entry_db.get_existing_guids(
            feed.id, [guid for _, guid, _ in candidates]
        )
        result.existing = len(existing)

        settings = await self._settings_db.get_settings()
        new_entries: list[Entry] = []
        for position, guid, item in candidates:
            if guid in existing:
                continue
            status = decide_status(
                feed=feed, settings=settings, first_sync=first_sync, position=position
            )
            new_entries.append(self._build_entry(feed, guid, item, status))

        if not new_entries:
            logger.debug("No new entries.", extra=log_params)
            return result

        await self._entry_db.insert_entries(new_entries)
        for entry in new_entries:
            if entry.status == EntryStatus.PENDING:
                result.pending += 1
            else:
                result.removed += 1

        newest = max(entry.published for entry in new_entries)
        if await self._feed_db.advance_latest_entry_at(feed.id, newest):
            result.latest_entry_at = newest

        logger.info("Feed reconciled.", extra=result.summary_dict())
        return result
