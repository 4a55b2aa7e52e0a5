"""Database model and enum types."""

from .entry import FILE_SIZE_PROBE_FAILED, FILE_SIZE_UNKNOWN, Entry
from .entry_status import EntryStatus
from .feed import Feed
from .job_lock import JobLock
from .settings import SETTINGS_ROW_ID, Settings
from .timezone_aware_datetime import ZERO_DATETIME

__all__ = [
    "FILE_SIZE_PROBE_FAILED",
    "FILE_SIZE_UNKNOWN",
    "SETTINGS_ROW_ID",
    "ZERO_DATETIME",
    "Entry",
    "EntryStatus",
    "Feed",
    "JobLock",
    "Settings",
]
