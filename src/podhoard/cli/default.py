"""Default mode implementation for podhoard.

This module provides the default execution mode that initializes all
components, subscribes configured feeds, starts the scheduler, and manages
the application lifecycle.
"""

import asyncio
import logging
import signal

from ..config import AppSettings
from ..schedule import JobScheduler
from .components import Components, init_components

logger = logging.getLogger(__name__)


async def graceful_shutdown(
    scheduler: JobScheduler | None,
    components: Components | None,
) -> None:
    """Perform graceful shutdown of all components in correct order.

    Args:
        scheduler: The job scheduler instance to shutdown.
        components: The components whose connections to close.
    """
    logger.info("Shutdown signal received.")

    # Step 1: Stop scheduler (finish current jobs, no new ones)
    if scheduler:
        try:
            await scheduler.stop(wait_for_jobs=True)
            logger.info("Scheduler shutdown completed.")
        except Exception as e:
            logger.error("Error shutting down scheduler.", exc_info=e)

    # Step 2: Close HTTP and database connections
    if components:
        try:
            await components.close()
            logger.info("Connections closed.")
        except Exception as e:
            logger.error("Error closing connections.", exc_info=e)

    logger.info("podhoard shutdown completed.")


async def _wait_for_shutdown_signal() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)
    try:
        await stop.wait()
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


async def default(settings: AppSettings) -> None:
    """Main async entry point for default mode.

    Migrates the database, releases locks left by a previous process,
    subscribes the configured feeds, then runs the scheduler until SIGINT
    or SIGTERM.

    Args:
        settings: Application settings object containing configuration.
    """
    logger.debug(
        "Starting podhoard in default mode.",
        extra={"config_file": str(settings.config_file)},
    )

    components: Components | None = None
    scheduler: JobScheduler | None = None
    try:
        components = await init_components(settings)
        await components.coordinator.unlock_stale_jobs()
        added = await components.feed_manager.seed_feeds(settings.feeds)
        logger.info(
            "Configured feeds processed.",
            extra={"configured_feeds": len(settings.feeds), "added": len(added)},
        )

        scheduler = JobScheduler(settings.check_frequency, components.coordinator)
        logger.info(
            "Starting scheduler...",
            extra={
                "scheduled_jobs": scheduler.get_scheduled_job_ids(),
                "check_frequency_minutes": settings.check_frequency,
            },
        )
        await scheduler.start()
        await _wait_for_shutdown_signal()
    except Exception as e:
        logger.error("Unexpected error during execution.", exc_info=e)
    finally:
        await graceful_shutdown(scheduler, components)
