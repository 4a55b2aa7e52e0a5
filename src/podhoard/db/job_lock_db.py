"""Database access layer for job lock rows."""

from datetime import datetime
import logging

from sqlalchemy import update
from sqlalchemy.dialects.sqlite import insert
from sqlmodel import col, select

from .decorators import handle_db_errors
from .sqlalchemy_core import SqlalchemyCore
from .types import JobLock

logger = logging.getLogger(__name__)


class JobLockDatabase:
    """Read and write JobLock rows.

    Acquisition is a plain upsert with no compare-and-swap, so mutual
    exclusion is only guaranteed within one process (see ``JobLockManager``).
    Release can be made conditional on the acquisition timestamp.
    """

    def __init__(self, db_core: SqlalchemyCore):
        self._db = db_core

    @handle_db_errors("get job lock")
    async def get_lock(self, name: str) -> JobLock:
        """Return the lock row, or an unheld lock if the row does not exist."""
        async with self._db.session() as session:
            lock = await session.get(JobLock, name)
            return lock if lock is not None else JobLock(name=name)

    @handle_db_errors("get job locks")
    async def get_locks(self) -> list[JobLock]:
        """Return every lock row."""
        async with self._db.session() as session:
            result = await session.execute(select(JobLock).order_by(col(JobLock.name)))
            return list(result.scalars().all())

    @handle_db_errors("write job lock")
    async def set_lock(self, name: str, locked_at: datetime, duration_minutes: int) -> None:
        """Record the lock as held from ``locked_at`` for ``duration_minutes``."""
        async with self._db.session() as session:
            stmt = insert(JobLock).values(
                name=name, locked_at=locked_at, duration_minutes=duration_minutes
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["name"],
                set_={"locked_at": locked_at, "duration_minutes": duration_minutes},
            )
            await session.execute(stmt)
            await session.commit()

    @handle_db_errors("clear job lock")
    async def clear_lock(self, name: str, locked_at: datetime | None = None) -> bool:
        """Mark the lock as not held.

        Args:
            name: Lock name.
            locked_at: When given, only clear the lock if it is still held
                from exactly this timestamp.

        Returns:
            True if a row was cleared. Clearing a missing lock, or one
            re-acquired since ``locked_at``, returns False.
        """
        stmt = update(JobLock).where(col(JobLock.name) == name)
        if locked_at is not None:
            stmt = stmt.where(col(JobLock.locked_at) == locked_at)
        async with self._db.session() as session:
            result = await session.execute(
                stmt.values(locked_at=None, duration_minutes=0)
            )
            await session.commit()
            return self._db.as_cursor_result(result).rowcount > 0
