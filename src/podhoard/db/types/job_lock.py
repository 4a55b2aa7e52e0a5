# pyright: reportUnknownVariableType=false, reportUnknownMemberType=false

"""Named advisory locks for periodic jobs."""

from datetime import datetime, timedelta

from sqlalchemy import Column, Integer
from sqlmodel import Field, SQLModel

from .timezone_aware_datetime import TimezoneAwareDatetime


class JobLock(SQLModel, table=True):
    """ORM model for one job's lock row.

    Attributes:
        name: The job name. Primary key.
        locked_at: When the lock was acquired (UTC). None means not held.
        duration_minutes: How long the holder declared it would need.
    """

    name: str = Field(primary_key=True)
    locked_at: datetime | None = Field(
        default=None, sa_column=Column(TimezoneAwareDatetime)
    )
    duration_minutes: int = Field(
        default=0, sa_column=Column(Integer, nullable=False, server_default="0")
    )

    @property
    def is_locked(self) -> bool:
        """True iff the lock carries an acquisition time."""
        return self.locked_at is not None

    def is_stale(self, now: datetime) -> bool:
        """True if the lock is held and its declared duration has elapsed.

        Args:
            now: The current time (UTC).
        """
        if self.locked_at is None:
            return False
        return now > self.locked_at + timedelta(minutes=self.duration_minutes)
