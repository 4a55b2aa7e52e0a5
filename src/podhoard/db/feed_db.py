"""Database operations for podhoard feeds."""

from datetime import datetime
import logging
from typing import Any

from sqlalchemy import delete, update
from sqlalchemy.dialects.sqlite import insert
from sqlmodel import col, select

from ..exceptions import FeedNotFoundError, NotFoundError
from .decorators import handle_db_errors, handle_feed_db_errors
from .sqlalchemy_core import SqlalchemyCore
from .types import Entry, Feed

logger = logging.getLogger(__name__)


class FeedDatabase:
    """Manage all database operations for feeds.

    Attributes:
        _db: Core SQLAlchemy database manager.
    """

    def __init__(self, db_core: SqlalchemyCore):
        self._db = db_core

    # --- CRUD Operations ---

    @handle_feed_db_errors("insert feed", feed_id_from="feed.id")
    async def insert_feed(self, feed: Feed) -> None:
        """Insert a new feed row.

        Args:
            feed: The Feed to insert.

        Raises:
            DatabaseOperationError: If the insert fails, including when the
                source URL is already present.
        """
        log_params = {"feed_id": feed.id, "source_url": feed.source_url}
        logger.debug("Attempting to insert feed record.", extra=log_params)
        async with self._db.session() as session:
            await session.execute(insert(Feed).values(**feed.model_dump_for_insert()))
            await session.commit()
        logger.debug("Feed record inserted.", extra=log_params)

    @handle_feed_db_errors("get feed by ID")
    async def get_feed_by_id(self, feed_id: str) -> Feed:
        """Retrieve a specific feed by ID.

        Args:
            feed_id: The feed identifier.

        Returns:
            The Feed.

        Raises:
            FeedNotFoundError: If the feed is not found.
            DatabaseOperationError: If the database operation fails.
        """
        log_params = {"feed_id": feed_id}
        logger.debug("Attempting to get feed by ID.", extra=log_params)
        async with self._db.session() as session:
            feed = await session.get(Feed, feed_id)
            if not feed:
                raise FeedNotFoundError("Feed not found.", feed_id=feed_id)
            return feed

    @handle_db_errors("get feed by source URL")
    async def get_feed_by_url(self, source_url: str) -> Feed | None:
        """Look up a feed by its source URL.

        Args:
            source_url: The feed document URL.

        Returns:
            The Feed, or None if no feed uses that URL.
        """
        async with self._db.session() as session:
            result = await session.execute(
                select(Feed).where(col(Feed.source_url) == source_url)
            )
            return result.scalars().first()

    @handle_db_errors("get feeds")
    async def get_feeds(self, paused: bool | None = None) -> list[Feed]:
        """Get all feeds, optionally filtered by paused flag.

        Args:
            paused: If given, only return feeds with this paused flag.

        Returns:
            Feeds ordered by title.
        """
        log_params = {"paused_filter": "no_filter" if paused is None else paused}
        logger.debug("Attempting to get feeds.", extra=log_params)
        async with self._db.session() as session:
            stmt = select(Feed)
            if paused is not None:
                stmt = stmt.where(col(Feed.is_paused) == paused)
            stmt = stmt.order_by(col(Feed.title), col(Feed.id))
            result = await session.execute(stmt)
            return list(result.scalars().all())

    @handle_feed_db_errors("set feed paused")
    async def set_paused(self, feed_id: str, paused: bool) -> None:
        """Set is_paused to the provided value.

        Raises:
            FeedNotFoundError: If the feed is not found.
            DatabaseOperationError: If the database operation fails.
        """
        log_params = {"feed_id": feed_id, "paused": paused}
        logger.debug("Attempting to set feed paused flag.", extra=log_params)
        async with self._db.session() as session:
            stmt = update(Feed).where(col(Feed.id) == feed_id).values(is_paused=paused)
            try:
                self._db.assert_exactly_one_row_affected(
                    await session.execute(stmt), feed_id=feed_id
                )
            except NotFoundError as e:
                raise FeedNotFoundError("Feed not found.", feed_id=feed_id) from e
            await session.commit()
        logger.debug("Feed paused flag updated.", extra=log_params)

    @handle_feed_db_errors("update feed metadata")
    async def update_feed_metadata(
        self,
        feed_id: str,
        *,
        title: str | None = None,
        summary: str | None = None,
        author: str | None = None,
        remote_image_url: str | None = None,
        local_image_path: str | None = None,
    ) -> None:
        """Update feed metadata fields; no-op if every field is None.

        Raises:
            FeedNotFoundError: If the feed is not found.
            DatabaseOperationError: If the database operation fails.
        """
        candidates: dict[str, Any] = {
            "title": title,
            "summary": summary,
            "author": author,
            "remote_image_url": remote_image_url,
            "local_image_path": local_image_path,
        }
        updates = {k: v for k, v in candidates.items() if v is not None}
        if not updates:
            logger.debug(
                "No metadata fields provided for update, skipping.",
                extra={"feed_id": feed_id},
            )
            return

        log_params = {"feed_id": feed_id, "updated_fields": list(updates.keys())}
        logger.debug("Attempting to update feed metadata.", extra=log_params)
        async with self._db.session() as session:
            stmt = update(Feed).where(col(Feed.id) == feed_id).values(**updates)
            try:
                self._db.assert_exactly_one_row_affected(
                    await session.execute(stmt), feed_id=feed_id
                )
            except NotFoundError as e:
                raise FeedNotFoundError("Feed not found.", feed_id=feed_id) from e
            await session.commit()
        logger.debug("Feed metadata updated.", extra=log_params)

    @handle_feed_db_errors("advance latest entry date")
    async def advance_latest_entry_at(self, feed_id: str, observed: datetime) -> bool:
        """Move latest_entry_at forward to ``observed`` if it is newer.

        The stored value never moves backwards.

        Args:
            feed_id: The feed identifier.
            observed: Newest publish date seen in the latest sync.

        Returns:
            True if the stored value changed.

        Raises:
            FeedNotFoundError: If the feed is not found.
            DatabaseOperationError: If the database operation fails.
        """
        log_params = {"feed_id": feed_id, "observed": observed.isoformat()}
        async with self._db.session() as session:
            feed = await session.get(Feed, feed_id)
            if feed is None:
                raise FeedNotFoundError("Feed not found.", feed_id=feed_id)
            current = feed.latest_entry_at
            if current is not None and observed <= current:
                logger.debug("Latest entry date already current.", extra=log_params)
                return False
            await session.execute(
                update(Feed)
                .where(col(Feed.id) == feed_id)
                .values(latest_entry_at=observed)
            )
            await session.commit()
        logger.debug("Latest entry date advanced.", extra=log_params)
        return True

    @handle_feed_db_errors("delete feed")
    async def delete_feed(self, feed_id: str) -> int:
        """Delete a feed and all of its entries.

        Args:
            feed_id: The feed identifier.

        Returns:
            Number of entries deleted alongside the feed.

        Raises:
            FeedNotFoundError: If the feed is not found.
            DatabaseOperationError: If the database operation fails.
        """
        log_params = {"feed_id": feed_id}
        logger.debug("Attempting to delete feed.", extra=log_params)
        async with self._db.session() as session:
            entries_result = await session.execute(
                delete(Entry).where(col(Entry.feed_id) == feed_id)
            )
            try:
                self._db.assert_exactly_one_row_affected(
                    await session.execute(delete(Feed).where(col(Feed.id) == feed_id)),
                    feed_id=feed_id,
                )
            except NotFoundError as e:
                await session.rollback()
                raise FeedNotFoundError("Feed not found.", feed_id=feed_id) from e
            await session.commit()
        deleted_entries = self._db.as_cursor_result(entries_result).rowcount
        logger.debug(
            "Feed deleted.", extra={**log_params, "deleted_entries": deleted_entries}
        )
        return deleted_entries
