"""Outcome of one DownloadScheduler run."""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class DownloadRunResult:
    """Results from draining the pending queue once.

    Attributes:
        concurrency: Worker count used for this run.
        attempted: Entries handed to the worker pool.
        materialized: Entries that ended MATERIALIZED.
        failed: Entries left PENDING because their transfer failed.
        errors: The per-entry errors.
        duration_seconds: Wall-clock time of the run.
    """

    concurrency: int
    attempted: int = 0
    materialized: int = 0
    failed: int = 0
    errors: list[Exception] = field(default_factory=list[Exception])
    duration_seconds: float = 0.0

    def summary_dict(self) -> dict[str, Any]:
        """Return a dictionary summary suitable for logging."""
        return {
            "concurrency": self.concurrency,
            "attempted": self.attempted,
            "materialized": self.materialized,
            "failed": self.failed,
            "duration_seconds": self.duration_seconds,
        }
