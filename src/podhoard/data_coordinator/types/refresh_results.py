"""Results of a DataCoordinator.refresh_all() run."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .download_run_result import DownloadRunResult
from .phase_result import PhaseResult
from .reconcile_result import ReconcileResult


@dataclass
class RefreshResults:
    """Comprehensive results from refreshing every feed.

    Attributes:
        start_time: When the run began.
        total_duration_seconds: Total time for all phases.
        refresh_result: Feed refresh phase; ``count`` is feeds refreshed.
        reconciled: Per-feed reconcile outcomes, for feeds that succeeded.
        download_result: The download run triggered afterwards. None if the
            download job was already running.
    """

    start_time: datetime
    total_duration_seconds: float = 0.0
    refresh_result: PhaseResult = field(
        default_factory=lambda: PhaseResult(success=False, count=0)
    )
    reconciled: list[ReconcileResult] = field(default_factory=list[ReconcileResult])
    download_result: DownloadRunResult | None = None

    @property
    def total_new_entries(self) -> int:
        """New entries stored across all feeds."""
        return sum(r.new_entries for r in self.reconciled)

    @property
    def total_pending(self) -> int:
        """New entries queued for download across all feeds."""
        return sum(r.pending for r in self.reconciled)

    @property
    def all_errors(self) -> list[Exception]:
        """Errors from both phases."""
        errors = list(self.refresh_result.errors)
        if self.download_result is not None:
            errors.extend(self.download_result.errors)
        return errors

    def summary_dict(self) -> dict[str, Any]:
        """Return a dictionary summary suitable for logging."""
        return {
            "total_duration_seconds": self.total_duration_seconds,
            "feeds_refreshed": self.refresh_result.count,
            "new_entries": self.total_new_entries,
            "pending": self.total_pending,
            "downloaded": (
                self.download_result.materialized if self.download_result else None
            ),
            "download_skipped": self.download_result is None,
            "error_count": len(self.all_errors),
        }
