"""Database operations for podhoard entries.

Covers batch insertion with duplicate skipping, the bulk GUID existence
check used by the reconciler, and the status transitions driven by the
download scheduler, the consistency sweeps and user actions.
"""

from collections.abc import Sequence
from datetime import UTC, datetime
import logging
from typing import Any

from sqlalchemy import and_, func, update
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import col, select

from ..exceptions import DatabaseOperationError, EntryNotFoundError, NotFoundError
from .decorators import handle_db_errors, handle_entry_db_errors, handle_feed_db_errors
from .sqlalchemy_core import SqlalchemyCore
from .types import Entry, EntryStatus

logger = logging.getLogger(__name__)

# Keeps the IN (...) list of the GUID lookup under SQLite's variable limit.
GUID_LOOKUP_CHUNK_SIZE = 500


class EntryDatabase:
    """Manage all database operations for entries.

    Attributes:
        _db: Core SQLAlchemy database manager.
    """

    def __init__(self, db_core: SqlalchemyCore):
        """Create a new EntryDatabase instance.

        Args:
            db_core: The core SQLAlchemy database manager.
        """
        self._db = db_core

    # --- Insertion and lookup ---

    @handle_db_errors("insert entries")
    async def insert_entries(self, entries: Sequence[Entry]) -> int:
        """Insert entries, silently skipping any (feed_id, guid) already stored.

        Args:
            entries: Entries to insert.

        Returns:
            Number of rows actually inserted.

        Raises:
            DatabaseOperationError: If the database operation fails.
        """
        if not entries:
            return 0

        inserted = 0
        async with self._db.session() as session:
            for entry in entries:
                stmt = (
                    insert(Entry)
                    .values(**entry.model_dump_for_insert())
                    .on_conflict_do_nothing(index_elements=["feed_id", "guid"])
                )
                result = await session.execute(stmt)
                inserted += self._db.as_cursor_result(result).rowcount
            await session.commit()

        skipped = len(entries) - inserted
        logger.debug(
            "Entries inserted.",
            extra={"inserted": inserted, "skipped_duplicates": skipped},
        )
        return inserted

    @handle_feed_db_errors("look up existing GUIDs")
    async def get_existing_guids(self, feed_id: str, guids: Sequence[str]) -> set[str]:
        """Return which of ``guids`` are already stored for a feed.

        Args:
            feed_id: The feed to check within.
            guids: Candidate native GUIDs.

        Returns:
            The subset of ``guids`` that already exist for ``feed_id``.
        """
        unique_guids = list(dict.fromkeys(guids))
        if not unique_guids:
            return set()

        existing: set[str] = set()
        async with self._db.session() as session:
            for start in range(0, len(unique_guids), GUID_LOOKUP_CHUNK_SIZE):
                chunk = unique_guids[start : start + GUID_LOOKUP_CHUNK_SIZE]
                result = await session.execute(
                    select(Entry.guid).where(
                        col(Entry.feed_id) == feed_id, col(Entry.guid).in_(chunk)
                    )
                )
                existing.update(result.scalars().all())
        logger.debug(
            "Existing GUID lookup complete.",
            extra={
                "feed_id": feed_id,
                "candidates": len(unique_guids),
                "existing": len(existing),
            },
        )
        return existing

    @handle_entry_db_errors("get entry by ID")
    async def get_entry_by_id(self, entry_id: str) -> Entry:
        """Retrieve a specific entry.

        Raises:
            EntryNotFoundError: If the entry is not found.
            DatabaseOperationError: If the database operation fails.
        """
        async with self._db.session() as session:
            entry = await session.get(Entry, entry_id)
            if entry is None:
                raise EntryNotFoundError("Entry not found.", entry_id=entry_id)
            return entry

    @handle_db_errors("get entries by status")
    async def get_entries_by_status(
        self,
        status: EntryStatus,
        feed_id: str | None = None,
        hard_removed: bool | None = None,
    ) -> list[Entry]:
        """Get entries in a given status, oldest publish date first.

        Args:
            status: The status to filter by.
            feed_id: Restrict to one feed when given.
            hard_removed: Restrict by hard_removed flag when given.

        Returns:
            Matching entries.
        """
        log_params = {"status": status.value, "feed_id": feed_id}
        logger.debug("Attempting to get entries by status.", extra=log_params)
        async with self._db.session() as session:
            stmt = select(Entry).where(col(Entry.status) == status)
            if feed_id is not None:
                stmt = stmt.where(col(Entry.feed_id) == feed_id)
            if hard_removed is not None:
                stmt = stmt.where(col(Entry.hard_removed) == hard_removed)
            stmt = stmt.order_by(col(Entry.published), col(Entry.id))
            result = await session.execute(stmt)
            return list(result.scalars().all())

    @handle_feed_db_errors("get entries for feed")
    async def get_entries_for_feed(self, feed_id: str) -> list[Entry]:
        """Get every entry of a feed, newest first."""
        async with self._db.session() as session:
            result = await session.execute(
                select(Entry)
                .where(col(Entry.feed_id) == feed_id)
                .order_by(col(Entry.published).desc(), col(Entry.id))
            )
            return list(result.scalars().all())

    @handle_db_errors("get entries without a known size")
    async def get_entries_missing_size(self) -> list[Entry]:
        """Get entries whose file_size is unknown or failed to probe."""
        async with self._db.session() as session:
            result = await session.execute(
                select(Entry).where(col(Entry.file_size) <= 0).order_by(col(Entry.id))
            )
            return list(result.scalars().all())

    @handle_db_errors("get entries with remote artwork")
    async def get_materialized_with_remote_image(self) -> list[Entry]:
        """Get materialized entries that declare episode artwork."""
        async with self._db.session() as session:
            result = await session.execute(
                select(Entry)
                .where(
                    col(Entry.status) == EntryStatus.MATERIALIZED,
                    col(Entry.remote_image_url).is_not(None),
                )
                .order_by(col(Entry.id))
            )
            return list(result.scalars().all())

    @handle_entry_db_errors("get episode number")
    async def get_episode_number(self, entry_id: str) -> int:
        """Return the entry's 1-based position in its feed by publish date.

        Raises:
            EntryNotFoundError: If the entry is not found.
        """
        async with self._db.session() as session:
            entry = await session.get(Entry, entry_id)
            if entry is None:
                raise EntryNotFoundError("Entry not found.", entry_id=entry_id)
            result = await session.execute(
                select(func.count())
                .select_from(Entry)
                .where(
                    col(Entry.feed_id) == entry.feed_id,
                    col(Entry.published) < entry.published,
                )
            )
            return int(result.scalar_one()) + 1

    # --- Status Transition Methods ---

    async def _update_one(
        self,
        entry_id: str,
        values: dict[str, Any],
        *conditions: ColumnElement[bool],
    ) -> None:
        """Apply ``values`` to exactly one entry, optionally guarded by conditions.

        Raises:
            EntryNotFoundError: If the entry does not exist.
            DatabaseOperationError: If the entry exists but a guard failed.
        """
        async with self._db.session() as session:
            stmt = (
                update(Entry)
                .where(and_(col(Entry.id) == entry_id, *conditions))
                .values(**values)
            )
            try:
                self._db.assert_exactly_one_row_affected(
                    await session.execute(stmt), entry_id=entry_id
                )
            except NotFoundError as e:
                await session.rollback()
                if await session.get(Entry, entry_id) is None:
                    raise EntryNotFoundError(
                        "Entry not found.", entry_id=entry_id
                    ) from e
                raise DatabaseOperationError(
                    "Entry is not in a state that allows this update.",
                    entry_id=entry_id,
                ) from e
            await session.commit()

    @handle_entry_db_errors("mark entry as MATERIALIZED")
    async def mark_materialized(
        self, entry_id: str, local_path: str, file_size: int
    ) -> None:
        """Transition a PENDING entry to MATERIALIZED.

        Args:
            entry_id: The entry identifier.
            local_path: Where the artifact was written.
            file_size: Size of the written artifact in bytes.

        Raises:
            EntryNotFoundError: If the entry is not found.
            DatabaseOperationError: If the entry is not PENDING or the
                database operation fails.
        """
        log_params = {"entry_id": entry_id, "local_path": local_path}
        logger.debug("Attempting to mark entry as MATERIALIZED.", extra=log_params)
        await self._update_one(
            entry_id,
            {
                "status": EntryStatus.MATERIALIZED,
                "local_path": local_path,
                "file_size": file_size,
                "hard_removed": False,
                "downloaded_at": datetime.now(UTC),
            },
            col(Entry.status) == EntryStatus.PENDING,
        )
        logger.debug("Entry marked as MATERIALIZED.", extra=log_params)

    @handle_entry_db_errors("mark entry as REMOVED")
    async def mark_removed(self, entry_id: str, hard: bool) -> None:
        """Transition an entry to REMOVED and forget its local path.

        Args:
            entry_id: The entry identifier.
            hard: Exclude the entry from bulk re-queue and automatic download.

        Raises:
            EntryNotFoundError: If the entry is not found.
            DatabaseOperationError: If the database operation fails.
        """
        log_params = {"entry_id": entry_id, "hard": hard}
        logger.debug("Attempting to mark entry as REMOVED.", extra=log_params)
        await self._update_one(
            entry_id,
            {"status": EntryStatus.REMOVED, "local_path": None, "hard_removed": hard},
        )
        logger.debug("Entry marked as REMOVED.", extra=log_params)

    @handle_entry_db_errors("queue entry")
    async def queue_entry(self, entry_id: str) -> None:
        """Move a non-materialized entry back to PENDING.

        Raises:
            EntryNotFoundError: If the entry is not found.
            DatabaseOperationError: If the entry is MATERIALIZED.
        """
        await self._update_one(
            entry_id,
            {"status": EntryStatus.PENDING, "hard_removed": False},
            col(Entry.status) != EntryStatus.MATERIALIZED,
        )
        logger.debug("Entry queued.", extra={"entry_id": entry_id})

    @handle_feed_db_errors("requeue removed entries")
    async def requeue_removed(self, feed_id: str, include_hard: bool = False) -> int:
        """Move a feed's REMOVED entries back to PENDING.

        Args:
            feed_id: The feed identifier.
            include_hard: Also re-queue hard-removed entries.

        Returns:
            Number of entries re-queued.
        """
        conditions: list[ColumnElement[bool]] = [
            col(Entry.feed_id) == feed_id,
            col(Entry.status) == EntryStatus.REMOVED,
        ]
        if not include_hard:
            conditions.append(col(Entry.hard_removed) == False)  # noqa: E712

        async with self._db.session() as session:
            result = await session.execute(
                update(Entry)
                .where(and_(*conditions))
                .values(status=EntryStatus.PENDING, hard_removed=False)
            )
            await session.commit()
        count = self._db.as_cursor_result(result).rowcount
        logger.debug(
            "Removed entries re-queued.",
            extra={"feed_id": feed_id, "include_hard": include_hard, "count": count},
        )
        return count

    # --- Metadata updates ---

    @handle_entry_db_errors("set entry file size")
    async def set_file_size(self, entry_id: str, file_size: int) -> None:
        """Record the artifact size (or a size sentinel).

        Raises:
            EntryNotFoundError: If the entry is not found.
        """
        await self._update_one(entry_id, {"file_size": file_size})

    @handle_entry_db_errors("set entry image path")
    async def set_local_image_path(self, entry_id: str, local_image_path: str) -> None:
        """Record where the entry's artwork was cached.

        Raises:
            EntryNotFoundError: If the entry is not found.
        """
        await self._update_one(entry_id, {"local_image_path": local_image_path})

    @handle_entry_db_errors("set entry played flag")
    async def set_played(self, entry_id: str, is_played: bool) -> None:
        """Set or clear the played flag.

        Raises:
            EntryNotFoundError: If the entry is not found.
        """
        await self._update_one(entry_id, {"is_played": is_played})

    @handle_entry_db_errors("set entry bookmark")
    async def set_bookmark(self, entry_id: str, bookmarked: bool) -> None:
        """Bookmark the entry now, or clear its bookmark.

        Raises:
            EntryNotFoundError: If the entry is not found.
        """
        await self._update_one(
            entry_id, {"bookmarked_at": datetime.now(UTC) if bookmarked else None}
        )
