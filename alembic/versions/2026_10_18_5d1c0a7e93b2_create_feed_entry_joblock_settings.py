"""create feed, entry, joblock and settings tables.

Revision ID: 5d1c0a7e93b2
Revises:
Create Date: 2026-10-18 09:12:44.502113

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op
from alembic_helpers.triggers import (  # pyright: ignore[reportMissingImports]
    create_updated_at_triggers,  # pyright: ignore[reportUnknownVariableType]
    drop_updated_at_triggers,  # pyright: ignore[reportUnknownVariableType]
)
from podhoard.db.types.timezone_aware_datetime import TimezoneAwareDatetime

# revision identifiers, used by Alembic.
revision: str = "5d1c0a7e93b2"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

ENTRY_STATUS = sa.Enum(
    "PENDING", "IN_PROGRESS", "MATERIALIZED", "REMOVED", name="entrystatus"
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "feed",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column("source_url", sa.String(), nullable=False),
        sa.Column("is_paused", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("latest_entry_at", TimezoneAwareDatetime(), nullable=True),
        sa.Column(
            "created_at",
            TimezoneAwareDatetime(),
            nullable=False,
            server_default=sa.text("(datetime('now', 'utc'))"),
        ),
        sa.Column(
            "updated_at",
            TimezoneAwareDatetime(),
            nullable=False,
            server_default=sa.text("(datetime('now', 'utc'))"),
        ),
        sa.Column("title", sa.String(), nullable=False, server_default=""),
        sa.Column("summary", sa.String(), nullable=True),
        sa.Column("author", sa.String(), nullable=True),
        sa.Column("remote_image_url", sa.String(), nullable=True),
        sa.Column("local_image_path", sa.String(), nullable=True),
    )
    op.create_index("ix_feed_source_url", "feed", ["source_url"], unique=True)

    op.create_table(
        "entry",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column(
            "feed_id",
            sa.String(),
            sa.ForeignKey("feed.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("guid", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("summary", sa.String(), nullable=True),
        sa.Column("published", TimezoneAwareDatetime(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("remote_url", sa.String(), nullable=False),
        sa.Column("remote_image_url", sa.String(), nullable=True),
        sa.Column("episode_type", sa.String(), nullable=True),
        sa.Column("status", ENTRY_STATUS, nullable=False),
        sa.Column("local_path", sa.String(), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("local_image_path", sa.String(), nullable=True),
        sa.Column("hard_removed", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("downloaded_at", TimezoneAwareDatetime(), nullable=True),
        sa.Column("is_played", sa.Boolean(), nullable=False, server_default="0"),
        sa.Column("bookmarked_at", TimezoneAwareDatetime(), nullable=True),
        sa.Column(
            "discovered_at",
            TimezoneAwareDatetime(),
            nullable=False,
            server_default=sa.text("(datetime('now', 'utc'))"),
        ),
        sa.Column(
            "updated_at",
            TimezoneAwareDatetime(),
            nullable=False,
            server_default=sa.text("(datetime('now', 'utc'))"),
        ),
        sa.UniqueConstraint("feed_id", "guid", name="uq_entry_feed_guid"),
    )
    op.create_index("idx_entry_status", "entry", ["status"])
    op.create_index("idx_entry_feed_published", "entry", ["feed_id", "published"])

    op.create_table(
        "joblock",
        sa.Column("name", sa.String(), primary_key=True, nullable=False),
        sa.Column("locked_at", TimezoneAwareDatetime(), nullable=True),
        sa.Column(
            "duration_minutes", sa.Integer(), nullable=False, server_default="0"
        ),
    )

    op.create_table(
        "settings",
        sa.Column("id", sa.String(), primary_key=True, nullable=False),
        sa.Column(
            "max_download_concurrency",
            sa.Integer(),
            nullable=False,
            server_default="5",
        ),
        sa.Column("auto_download", sa.Boolean(), nullable=False, server_default="1"),
        sa.Column(
            "download_on_add", sa.Boolean(), nullable=False, server_default="1"
        ),
        sa.Column(
            "initial_download_count", sa.Integer(), nullable=False, server_default="5"
        ),
        sa.Column(
            "hard_remove_missing_files",
            sa.Boolean(),
            nullable=False,
            server_default="0",
        ),
        sa.Column(
            "append_date_to_file_name",
            sa.Boolean(),
            nullable=False,
            server_default="0",
        ),
        sa.Column(
            "append_episode_number_to_file_name",
            sa.Boolean(),
            nullable=False,
            server_default="0",
        ),
        sa.Column(
            "download_episode_images",
            sa.Boolean(),
            nullable=False,
            server_default="0",
        ),
        sa.Column(
            "generate_nfo_file", sa.Boolean(), nullable=False, server_default="0"
        ),
        sa.Column("user_agent", sa.String(), nullable=True),
    )

    create_updated_at_triggers()


def downgrade() -> None:
    """Downgrade schema."""
    drop_updated_at_triggers()
    op.drop_table("settings")
    op.drop_table("joblock")
    op.drop_index("idx_entry_feed_published", table_name="entry")
    op.drop_index("idx_entry_status", table_name="entry")
    op.drop_table("entry")
    op.drop_index("ix_feed_source_url", table_name="feed")
    op.drop_table("feed")
