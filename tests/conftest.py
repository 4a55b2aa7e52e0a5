"""Global pytest configuration for the test suite."""

from podhoard.logging_config import setup_logging


def pytest_configure() -> None:
    """Configure logging once for the whole test session."""
    setup_logging(
        log_format_type="human", app_log_level_name="INFO", include_stacktrace=False
    )
