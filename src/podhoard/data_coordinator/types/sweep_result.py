"""Outcome of a consistency sweep."""

from dataclasses import dataclass
from typing import Any


@dataclass
class SweepResult:
    """Counts produced by one ConsistencySweeper pass.

    Attributes:
        sweep: Name of the sweep.
        examined: Records inspected.
        updated: Records whose stored state was corrected.
        failed: Records that could not be corrected this time.
    """

    sweep: str
    examined: int = 0
    updated: int = 0
    failed: int = 0

    def summary_dict(self) -> dict[str, Any]:
        """Return a dictionary summary suitable for logging."""
        return {
            "sweep": self.sweep,
            "examined": self.examined,
            "updated": self.updated,
            "failed": self.failed,
        }
