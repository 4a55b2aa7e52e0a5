"""Named, time-limited advisory locks for periodic jobs.

A lock is held while its row carries an acquisition timestamp. Locks are
advisory and not compare-and-swap at the database level, which is only
safe because podhoard runs as a single process; within that process the
check-then-acquire step is serialized by an ``asyncio.Lock``.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
import logging

from .db import JobLockDatabase

logger = logging.getLogger(__name__)


class JobLockManager:
    """Acquire, release and sweep job locks.

    Attributes:
        _lock_db: Persistence for lock rows.
        _guard: Serializes check-then-acquire inside this process.
    """

    def __init__(self, lock_db: JobLockDatabase):
        self._lock_db = lock_db
        self._guard = asyncio.Lock()

    async def acquire(self, name: str, duration_minutes: int) -> datetime:
        """Unconditionally mark ``name`` as held from now.

        Callers must check ``is_locked`` first; ``run_locked`` does both.

        Returns:
            The acquisition timestamp, which identifies this holder.
        """
        locked_at = datetime.now(UTC)
        await self._lock_db.set_lock(name, locked_at, duration_minutes)
        logger.debug(
            "Job lock acquired.",
            extra={"job_name": name, "duration_minutes": duration_minutes},
        )
        return locked_at

    async def is_locked(self, name: str) -> bool:
        """Return True if ``name`` currently has an acquisition timestamp."""
        return (await self._lock_db.get_lock(name)).is_locked

    async def release(self, name: str, locked_at: datetime | None = None) -> None:
        """Clear the timestamp and duration of ``name``.

        Args:
            name: Lock name.
            locked_at: The holder's acquisition timestamp. When given, a lock
                reclaimed by the stale sweep since then is left alone.
        """
        if await self._lock_db.clear_lock(name, locked_at):
            logger.debug("Job lock released.", extra={"job_name": name})
        elif locked_at is not None:
            logger.warning(
                "Job lock no longer held by this run, leaving it as is.",
                extra={"job_name": name, "locked_at": locked_at.isoformat()},
            )

    async def unlock_stale(self, now: datetime | None = None) -> list[str]:
        """Force-release every lock whose declared duration has elapsed.

        Args:
            now: Reference time; the current UTC time by default.

        Returns:
            Names of the locks that were released.
        """
        now = now or datetime.now(UTC)
        released: list[str] = []
        for lock in await self._lock_db.get_locks():
            if not lock.is_stale(now):
                continue
            await self._lock_db.clear_lock(lock.name)
            released.append(lock.name)
            logger.warning(
                "Released stale job lock.",
                extra={
                    "job_name": lock.name,
                    "locked_at": lock.locked_at.isoformat() if lock.locked_at else None,
                    "duration_minutes": lock.duration_minutes,
                },
            )
        return released

    async def run_locked[T](
        self,
        name: str,
        duration_minutes: int,
        job: Callable[[], Awaitable[T]],
    ) -> T | None:
        """Run ``job`` while holding the lock ``name``.

        If the lock is already held the job is skipped: nothing runs and
        None is returned. The lock is released once the job finishes, including
        when it raises, unless the stale sweep reclaimed it and another run
        holds it by then.

        Args:
            name: Lock name, usually the job name.
            duration_minutes: How long the lock may be held before the stale
                sweep may reclaim it.
            job: Coroutine factory to run under the lock.

        Returns:
            The job's result, or None if the job was skipped.
        """
        async with self._guard:
            if await self.is_locked(name):
                logger.info(
                    "Job already running, skipping.", extra={"job_name": name}
                )
                return None
            locked_at = await self.acquire(name, duration_minutes)

        try:
            return await job()
        finally:
            await self.release(name, locked_at)
