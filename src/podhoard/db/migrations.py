"""Upgrade the database schema to the latest Alembic revision."""

import asyncio
import logging
from pathlib import Path

from alembic.config import Config
from alembic.util.exc import CommandError
from sqlalchemy.exc import SQLAlchemyError

from alembic import command

from ..exceptions import DatabaseOperationError

logger = logging.getLogger(__name__)


def run_migrations(alembic_ini: Path, db_path: Path) -> None:
    """Run Alembic migrations up to ``head`` against ``db_path``.

    Uses the synchronous SQLite driver. Logging is left as the caller
    configured it.

    Raises:
        DatabaseOperationError: If ``alembic.ini`` is missing or an upgrade
            step fails.
    """
    if not alembic_ini.is_file():
        raise DatabaseOperationError(f"alembic.ini not found at {alembic_ini}.")

    config = Config(str(alembic_ini))
    config.attributes["configure_logger"] = False
    config.set_main_option("sqlalchemy.url", f"sqlite:///{db_path}")
    try:
        command.upgrade(config, "head")
    except (CommandError, SQLAlchemyError) as e:
        raise DatabaseOperationError("Failed to migrate database.") from e


async def upgrade_database(alembic_ini: Path, db_path: Path) -> None:
    """Run ``run_migrations`` off the event loop."""
    logger.debug(
        "Running database migrations.",
        extra={"alembic_ini": str(alembic_ini), "db_path": str(db_path)},
    )
    await asyncio.to_thread(run_migrations, alembic_ini, db_path)
    logger.info("Database schema is up to date.", extra={"db_path": str(db_path)})
