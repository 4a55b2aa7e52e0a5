"""Entry materialization status values."""

from enum import Enum


class EntryStatus(str, Enum):
    """Where an entry stands in the materialization lifecycle.

    ``PENDING`` entries are waiting for the download scheduler.
    ``IN_PROGRESS`` exists for completeness and is never stored as a resting
    state. ``MATERIALIZED`` entries have their artifact on disk at
    ``local_path``. ``REMOVED`` entries were skipped by policy or had their
    artifact deleted.
    """

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    MATERIALIZED = "MATERIALIZED"
    REMOVED = "REMOVED"
