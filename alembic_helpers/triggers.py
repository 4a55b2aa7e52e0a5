"""SQLite triggers shared by migrations.

SQLite has no ``ON UPDATE`` column clause, so ``updated_at`` is maintained by
``AFTER UPDATE`` triggers. Each trigger lists the columns it watches; a
migration that adds a column to one of these tables must drop and recreate
the trigger with the new column list.
"""

from alembic import op

TRIGGER_FEED_UPDATE_UPDATED_AT = "feed_update_updated_at"
TRIGGER_ENTRY_UPDATE_UPDATED_AT = "entry_update_updated_at"

FEED_WATCHED_COLUMNS = (
    "source_url",
    "is_paused",
    "latest_entry_at",
    "title",
    "summary",
    "author",
    "remote_image_url",
    "local_image_path",
)

ENTRY_WATCHED_COLUMNS = (
    "title",
    "summary",
    "published",
    "duration",
    "remote_url",
    "remote_image_url",
    "episode_type",
    "status",
    "local_path",
    "file_size",
    "local_image_path",
    "hard_removed",
    "downloaded_at",
    "is_played",
    "bookmarked_at",
)


def _updated_at_trigger(name: str, table: str, columns: tuple[str, ...]) -> str:
    return f"""
        CREATE TRIGGER IF NOT EXISTS {name}
        AFTER UPDATE OF {", ".join(columns)} ON {table}
        FOR EACH ROW
        BEGIN
            UPDATE {table} SET updated_at = (datetime('now', 'utc')) WHERE id = NEW.id;
        END;
    """


def create_updated_at_triggers() -> None:
    """Create the updated_at triggers for the feed and entry tables."""
    op.execute(
        _updated_at_trigger(TRIGGER_FEED_UPDATE_UPDATED_AT, "feed", FEED_WATCHED_COLUMNS)
    )
    op.execute(
        _updated_at_trigger(
            TRIGGER_ENTRY_UPDATE_UPDATED_AT, "entry", ENTRY_WATCHED_COLUMNS
        )
    )


def drop_updated_at_triggers() -> None:
    """Drop the updated_at triggers for the feed and entry tables."""
    op.execute(f"DROP TRIGGER IF EXISTS {TRIGGER_ENTRY_UPDATE_UPDATED_AT};")
    op.execute(f"DROP TRIGGER IF EXISTS {TRIGGER_FEED_UPDATE_UPDATED_AT};")
