"""Scheduler for podhoard's periodic jobs.

This module provides the JobScheduler class, which registers every
DataCoordinator job with APScheduler at a cadence derived from the check
frequency and logs each job's outcome.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
import logging
from pathlib import Path

from ..data_coordinator import DataCoordinator
from ..data_coordinator.types import RefreshResults, SweepResult
from ..logging_config import job_context
from .apscheduler_core import APSchedulerCore

logger = logging.getLogger(__name__)

REFRESH_JOB_ID = "refresh_all"
CONSISTENCY_JOB_ID = "check_consistency"
IMAGES_JOB_ID = "backfill_images"
UNLOCK_JOB_ID = "unlock_stale_jobs"
SIZES_JOB_ID = "backfill_sizes"
BACKUP_JOB_ID = "create_backup"

BACKUP_INTERVAL = timedelta(days=2)


def job_intervals(check_frequency_minutes: int) -> dict[str, timedelta]:
    """Return each job's run interval for a given check frequency.

    Args:
        check_frequency_minutes: Minutes between refresh ticks.

    Returns:
        Mapping of job id to interval.
    """
    tick = timedelta(minutes=check_frequency_minutes)
    return {
        REFRESH_JOB_ID: tick,
        CONSISTENCY_JOB_ID: tick,
        IMAGES_JOB_ID: tick,
        UNLOCK_JOB_ID: tick * 2,
        SIZES_JOB_ID: tick * 3,
        BACKUP_JOB_ID: BACKUP_INTERVAL,
    }


class JobScheduler:
    """Run DataCoordinator jobs on a fixed cadence using APScheduler.

    Attributes:
        _scheduler: APSchedulerCore instance.
    """

    def __init__(self, check_frequency_minutes: int, data_coordinator: DataCoordinator):
        self._scheduler = APSchedulerCore()

        jobs: dict[str, Callable[[], Awaitable[object]]] = {
            REFRESH_JOB_ID: data_coordinator.refresh_all,
            CONSISTENCY_JOB_ID: data_coordinator.check_consistency,
            IMAGES_JOB_ID: data_coordinator.backfill_images,
            UNLOCK_JOB_ID: data_coordinator.unlock_stale_jobs,
            SIZES_JOB_ID: data_coordinator.backfill_sizes,
            BACKUP_JOB_ID: data_coordinator.create_backup,
        }
        for job_id, interval in job_intervals(check_frequency_minutes).items():
            self._scheduler.schedule_job(
                job_id,
                interval,
                job_id == REFRESH_JOB_ID,
                JobScheduler._run_with_context,
                job_id,
                jobs[job_id],
            )

        # Register event listeners
        self._scheduler.add_job_completed_listener(
            RefreshResults, self._refresh_completed_callback
        )
        self._scheduler.add_job_completed_listener(
            SweepResult, self._sweep_completed_callback
        )
        self._scheduler.add_job_completed_listener(
            Path, self._backup_completed_callback
        )
        self._scheduler.add_job_completed_listener(
            list, self._unlock_completed_callback
        )
        self._scheduler.add_job_completed_listener(
            type(None), self._job_skipped_callback
        )
        self._scheduler.add_job_failed_listener(self._job_failed_callback)
        self._scheduler.add_job_missed_listener(self._job_missed_callback)

        logger.debug(
            "JobScheduler initialized.",
            extra={"check_frequency_minutes": check_frequency_minutes},
        )

    async def start(self) -> None:
        """Start the scheduler. The refresh job fires immediately."""
        self._scheduler.start()
        logger.info("Job scheduler started successfully.")

    async def stop(self, wait_for_jobs: bool = True) -> None:
        """Stop the scheduler gracefully.

        Args:
            wait_for_jobs: Whether to wait for running jobs to complete.
        """
        if not self._scheduler.running:
            logger.debug("Scheduler is not running, nothing to stop.")
            return

        logger.info("Stopping job scheduler.", extra={"wait_for_jobs": wait_for_jobs})
        self._scheduler.shutdown(wait=wait_for_jobs)
        logger.info("Job scheduler stopped successfully.")

    @property
    def running(self) -> bool:
        """Check if the scheduler is currently running."""
        return self._scheduler.running

    def get_scheduled_job_ids(self) -> list[str]:
        """Get list of currently scheduled job IDs."""
        return self._scheduler.get_job_ids()

    def get_interval(self, job_id: str) -> timedelta | None:
        """Get the run interval of a scheduled job."""
        return self._scheduler.get_interval(job_id)

    @staticmethod
    async def _run_with_context[T](
        job_id: str, job: Callable[[], Awaitable[T]]
    ) -> T:
        """Run a job with a context ID set for logging.

        Args:
            job_id: The job identifier.
            job: The coroutine function to run.

        Returns:
            Whatever the job returns.
        """
        with job_context(job_id):
            logger.info("Starting scheduled job.", extra={"job_id": job_id})
            return await job()

    @staticmethod
    def _refresh_completed_callback(
        job_id: str, scheduled_run_time: datetime, retval: RefreshResults
    ) -> None:
        log_params = {
            "job_id": job_id,
            "scheduled_run_time": scheduled_run_time.isoformat(),
            **retval.summary_dict(),
        }
        if retval.all_errors:
            logger.warning("Scheduled refresh completed with errors.", extra=log_params)
        else:
            logger.info("Scheduled refresh completed successfully.", extra=log_params)

    @staticmethod
    def _sweep_completed_callback(
        job_id: str, scheduled_run_time: datetime, retval: SweepResult
    ) -> None:
        log_params = {
            "job_id": job_id,
            "scheduled_run_time": scheduled_run_time.isoformat(),
            **retval.summary_dict(),
        }
        if retval.failed:
            logger.warning("Scheduled sweep completed with failures.", extra=log_params)
        else:
            logger.info("Scheduled sweep completed successfully.", extra=log_params)

    @staticmethod
    def _backup_completed_callback(
        job_id: str, scheduled_run_time: datetime, retval: Path
    ) -> None:
        logger.info(
            "Scheduled backup completed.",
            extra={
                "job_id": job_id,
                "scheduled_run_time": scheduled_run_time.isoformat(),
                "file_name": str(retval),
            },
        )

    @staticmethod
    def _unlock_completed_callback(
        job_id: str, scheduled_run_time: datetime, retval: list[str]
    ) -> None:
        logger.info(
            "Scheduled stale lock sweep completed.",
            extra={
                "job_id": job_id,
                "scheduled_run_time": scheduled_run_time.isoformat(),
                "released": retval,
            },
        )

    @staticmethod
    def _job_skipped_callback(
        job_id: str, scheduled_run_time: datetime, _retval: None
    ) -> None:
        logger.info(
            "Scheduled job skipped, previous run still active.",
            extra={"job_id": job_id, "scheduled_run_time": scheduled_run_time.isoformat()},
        )

    @staticmethod
    def _job_failed_callback(
        job_id: str, scheduled_run_time: datetime, exception: Exception
    ) -> None:
        """Handle job failure events.

        Args:
            job_id: The job identifier.
            scheduled_run_time: The scheduled run time of the job.
            exception: The exception that caused the failure.
        """
        logger.error(
            "Scheduled job failed with error.",
            extra={
                "job_id": job_id,
                "scheduled_run_time": scheduled_run_time.isoformat(),
                "exception_type": type(exception).__name__,
            },
            exc_info=exception,
        )

    @staticmethod
    def _job_missed_callback(job_id: str, scheduled_run_time: datetime) -> None:
        """Handle missed job execution.

        Args:
            job_id: The job identifier.
            scheduled_run_time: The scheduled run time that was missed.
        """
        logger.warning(
            "Scheduled job missed execution window.",
            extra={
                "job_id": job_id,
                "scheduled_run_time": scheduled_run_time.isoformat(),
            },
        )
