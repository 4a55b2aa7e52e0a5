"""Outcome of reconciling one fetched feed document."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass
class ReconcileResult:
    """Counts produced by EntryReconciler.reconcile.

    Attributes:
        feed_id: The reconciled feed.
        first_sync: Whether this was the feed's first sync.
        seen: Items in the document.
        skipped: Items without an enclosure, or repeating a GUID already
            seen in the same document.
        existing: Items whose GUID was already stored.
        pending: New entries stored as PENDING.
        removed: New entries stored as REMOVED by policy.
        latest_entry_at: The feed's latest entry date after the run.
    """

    feed_id: str
    first_sync: bool
    seen: int = 0
    skipped: int = 0
    existing: int = 0
    pending: int = 0
    removed: int = 0
    latest_entry_at: datetime | None = None

    @property
    def new_entries(self) -> int:
        """Entries inserted by this run."""
        return self.pending + self.removed

    def summary_dict(self) -> dict[str, Any]:
        """Return a dictionary summary suitable for logging."""
        return {
            "feed_id": self.feed_id,
            "first_sync": self.first_sync,
            "seen": self.seen,
            "skipped": self.skipped,
            "existing": self.existing,
            "pending": self.pending,
            "removed": self.removed,
            "latest_entry_at": (
                self.latest_entry_at.isoformat() if self.latest_entry_at else None
            ),
        }
