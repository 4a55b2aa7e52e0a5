"""Command-line interface entry points for podhoard.

This module provides the main CLI function that handles application
initialization, logging setup, and routing to different execution modes
based on configuration settings.
"""

import logging

from ..config import AppSettings
from ..logging_config import setup_logging
from .debug_jobs import run_debug_job_mode
from .default import default


async def main_cli():
    """Initialize and run podhoard based on configuration.

    Sets up logging, loads application settings, and routes execution to
    the default scheduler mode or a one-shot debug job, based on the
    DEBUG_MODE setting.
    """
    settings = AppSettings()  # type: ignore

    setup_logging(
        log_format_type=settings.log_format,
        app_log_level_name=settings.log_level,
        include_stacktrace=settings.log_include_stacktrace,
    )

    logger = logging.getLogger(__name__)

    logger.debug(
        "Application logging configured.",
        extra={
            "log_format": settings.log_format,
            "log_level": settings.log_level,
            "include_stacktrace": settings.log_include_stacktrace,
        },
    )
    logger.debug(
        "Application settings loaded.",
        extra={
            "config_file": str(settings.config_file),
            "active_debug_mode": settings.debug_mode,
        },
    )

    match settings.debug_mode:
        case None:
            logger.debug("Initializing podhoard in default mode.")
            await default(settings)
        case mode:
            await run_debug_job_mode(settings, mode)

    logger.debug("main_cli execution finished.")
