"""Database access layer for the runtime Settings singleton."""

import logging
from typing import Any

from sqlalchemy import update
from sqlalchemy.dialects.sqlite import insert
from sqlmodel import col

from .decorators import handle_db_errors
from .sqlalchemy_core import SqlalchemyCore
from .types import SETTINGS_ROW_ID, Settings

logger = logging.getLogger(__name__)


class SettingsDatabase:
    """Read and update the single "global" Settings row.

    The row is created with defaults the first time it is read.
    """

    def __init__(self, db_core: SqlalchemyCore):
        self._db = db_core

    @handle_db_errors("get settings")
    async def get_settings(self) -> Settings:
        """Return the settings row, creating it with defaults if missing."""
        async with self._db.session() as session:
            settings = await session.get(Settings, SETTINGS_ROW_ID)
            if settings is not None:
                return settings

            logger.info("Settings row missing, creating it with defaults.")
            await session.execute(
                insert(Settings)
                .values(**Settings().model_dump())
                .on_conflict_do_nothing(index_elements=["id"])
            )
            await session.commit()
            settings = await session.get(Settings, SETTINGS_ROW_ID)
            if settings is None:  # pragma: no cover
                raise RuntimeError("Settings row vanished right after creation.")
            return settings

    @handle_db_errors("update settings")
    async def update_settings(self, **fields: Any) -> Settings:
        """Change one or more settings.

        Args:
            **fields: Settings column names and their new values.

        Returns:
            The updated settings.

        Raises:
            ValueError: If a field name is not a settings column.
            DatabaseOperationError: If the database operation fails.
        """
        unknown = set(fields) - (set(Settings.model_fields) - {"id"})
        if unknown:
            raise ValueError(f"Unknown settings fields: {sorted(unknown)}")

        await self.get_settings()
        if fields:
            async with self._db.session() as session:
                await session.execute(
                    update(Settings)
                    .where(col(Settings.id) == SETTINGS_ROW_ID)
                    .values(**fields)
                )
                await session.commit()
            logger.info("Settings updated.", extra={"updated_fields": sorted(fields)})
        return await self.get_settings()
