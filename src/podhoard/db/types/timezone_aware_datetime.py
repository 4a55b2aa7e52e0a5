"""UTC-enforcing datetime column type for SQLite."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, TypeDecorator

SQLITE_DATETIME_NOW = "datetime('now', 'utc')"

# Stand-in for "no usable date" (unparseable publish dates).
ZERO_DATETIME = datetime.min.replace(tzinfo=UTC)


class TimezoneAwareDatetime(TypeDecorator[datetime]):
    """Datetime column that only accepts aware values and always returns UTC.

    SQLite has no timezone support, so values are normalized to naive UTC on
    the way in and re-tagged as UTC on the way out.
    """

    impl = DateTime
    cache_ok = True

    def process_bind_param(
        self, value: datetime | None, dialect: Any
    ) -> datetime | None:
        """Normalize an aware datetime to naive UTC for storage.

        Raises:
            TypeError: If the datetime is naive.
        """
        if value is None:
            return None
        if not value.tzinfo or value.tzinfo.utcoffset(value) is None:
            raise TypeError("tzinfo is required")
        # datetime.min cannot be shifted, and is already UTC by convention
        if value == ZERO_DATETIME:
            return value.replace(tzinfo=None)
        return value.astimezone(UTC).replace(tzinfo=None)

    def process_result_value(
        self, value: datetime | None, dialect: Any
    ) -> datetime | None:
        """Tag a stored naive datetime as UTC."""
        if value is None:
            return None
        return value.replace(tzinfo=UTC)
