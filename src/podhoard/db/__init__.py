from .entry_db import EntryDatabase
from .feed_db import FeedDatabase
from .job_lock_db import JobLockDatabase
from .settings_db import SettingsDatabase
from .sqlalchemy_core import SqlalchemyCore

__all__ = [
    "EntryDatabase",
    "FeedDatabase",
    "JobLockDatabase",
    "SettingsDatabase",
    "SqlalchemyCore",
]
