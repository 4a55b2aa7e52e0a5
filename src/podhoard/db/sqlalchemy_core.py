"""Async SQLAlchemy engine and session management for the SQLite store."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import logging
from pathlib import Path
import sqlite3
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.engine import CursorResult, Engine, Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import ConnectionPoolEntry

from ..exceptions import DatabaseOperationError, NotFoundError

logger = logging.getLogger(__name__)

DB_FILE_NAME = "podhoard.db"


class SqlalchemyCore:
    """Own the async engine and hand out sessions.

    Every database class receives the same instance, so the whole process
    shares one engine.

    Attributes:
        db_path: Location of the SQLite file.
        engine: The async engine.
    """

    def __init__(self, db_dir: Path) -> None:
        self.db_path = (db_dir / DB_FILE_NAME).resolve()
        self.engine: AsyncEngine = create_async_engine(
            f"sqlite+aiosqlite:///{self.db_path}",
            echo=logger.isEnabledFor(logging.DEBUG),
            pool_size=1,  # single writer
            connect_args={
                "check_same_thread": False,
                "timeout": 60.0,
            },
        )
        self.async_session_maker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Provide a session that is closed when the block exits.

        Yields:
            An active AsyncSession.
        """
        async with self.async_session_maker() as session:
            yield session

    async def snapshot_to(self, destination: Path) -> None:
        """Write a consistent copy of the database to ``destination``.

        Uses ``VACUUM INTO``, which must run outside a transaction.

        Raises:
            DatabaseOperationError: If the snapshot cannot be written.
        """
        try:
            async with self.engine.connect() as conn:
                conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
                await conn.execute(
                    text("VACUUM INTO :path"), {"path": str(destination)}
                )
        except SQLAlchemyError as e:
            raise DatabaseOperationError("Failed to snapshot database.") from e

    async def close(self) -> None:
        """Dispose of the engine and all pooled connections."""
        await self.engine.dispose()

    @staticmethod
    def as_cursor_result(result: Result[Any]) -> CursorResult[Any]:
        """Narrow an execute() result to a CursorResult.

        Raises:
            DatabaseOperationError: If the result is not cursor-backed.
        """
        if isinstance(result, CursorResult):
            return result
        raise DatabaseOperationError(
            f"Expected cursor-backed SQLAlchemy result, got {type(result).__name__}.",
        )

    @staticmethod
    def assert_exactly_one_row_affected(
        result: Result[Any], **identifiers: str | None
    ) -> None:
        """Check that an UPDATE/DELETE touched exactly one row.

        Args:
            result: The result of the statement.
            **identifiers: Identifiers attached to the error, e.g. feed_id.

        Raises:
            NotFoundError: If no rows were affected.
            DatabaseOperationError: If more than one row was affected.
        """
        match SqlalchemyCore.as_cursor_result(result).rowcount:
            case 0:
                raise NotFoundError("Record not found.")
            case 1:
                pass
            case rowcount:
                raise DatabaseOperationError(
                    f"Update affected {rowcount} rows, expected 1.", **identifiers
                )


@event.listens_for(Engine, "connect")
def _(
    dbapi_connection: sqlite3.Connection, _connection_record: ConnectionPoolEntry
) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode = WAL;")
    cursor.execute("PRAGMA synchronous = NORMAL;")
    cursor.execute("PRAGMA foreign_keys = ON;")
    cursor.close()
