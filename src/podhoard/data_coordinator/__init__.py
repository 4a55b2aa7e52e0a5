# This file makes src/podhoard/data_coordinator a Python package.

from .consistency import ConsistencySweeper
from .coordinator import DataCoordinator
from .download_scheduler import DownloadScheduler
from .feed_manager import FeedManager
from .file_placement import FilePlacement
from .reconciler import EntryReconciler
from .worker_pool import WorkerPool

__all__ = [
    "ConsistencySweeper",
    "DataCoordinator",
    "DownloadScheduler",
    "EntryReconciler",
    "FeedManager",
    "FilePlacement",
    "WorkerPool",
]
