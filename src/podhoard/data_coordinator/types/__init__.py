from .download_run_result import DownloadRunResult
from .phase_result import PhaseResult
from .reconcile_result import ReconcileResult
from .refresh_results import RefreshResults
from .sweep_result import SweepResult

__all__ = [
    "DownloadRunResult",
    "PhaseResult",
    "ReconcileResult",
    "RefreshResults",
    "SweepResult",
]
