"""Debug mode that runs a single job once and exits.

Useful for exercising the refresh, download or consistency jobs against a
real data directory without starting the scheduler.
"""

import logging

from ..config import AppSettings, DebugMode
from ..exceptions import PodhoardError
from .components import Components, init_components

logger = logging.getLogger(__name__)


async def _run(components: Components, mode: DebugMode) -> None:
    coordinator = components.coordinator
    match mode:
        case DebugMode.REFRESH:
            refresh = await coordinator.refresh_all()
            if refresh is None:
                logger.warning("Refresh already running, nothing done.")
                return
            logger.info("Debug refresh finished.", extra=refresh.summary_dict())
            for error in refresh.all_errors:
                logger.warning("Refresh error.", exc_info=error)
        case DebugMode.DOWNLOAD:
            download = await coordinator.download_pending()
            if download is None:
                logger.warning("Download run already active, nothing done.")
                return
            logger.info("Debug download finished.", extra=download.summary_dict())
        case DebugMode.CONSISTENCY:
            released = await coordinator.unlock_stale_jobs()
            logger.info("Stale locks released.", extra={"released": released})
            for sweep in (
                coordinator.check_consistency,
                coordinator.backfill_sizes,
                coordinator.backfill_images,
            ):
                result = await sweep()
                if result is not None:
                    logger.info("Debug sweep finished.", extra=result.summary_dict())


async def run_debug_job_mode(settings: AppSettings, mode: DebugMode) -> None:
    """Build components, run one job, and close everything.

    Args:
        settings: Application settings.
        mode: Which job to run.
    """
    logger.info(
        "Initializing podhoard in debug mode.",
        extra={"debug_mode": mode.value, "data_dir": str(settings.data_dir)},
    )
    try:
        components = await init_components(settings)
    except PodhoardError as e:
        logger.critical("Failed to initialize components for debug mode.", exc_info=e)
        return

    try:
        await _run(components, mode)
    except PodhoardError as e:
        logger.error("Debug job failed.", extra={"debug_mode": mode.value}, exc_info=e)
    finally:
        await components.close()
        logger.info("Debug mode finished.", extra={"debug_mode": mode.value})
