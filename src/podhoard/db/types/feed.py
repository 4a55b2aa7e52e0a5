"""Feed table mapped with SQLModel."""

from datetime import datetime
from typing import TYPE_CHECKING, Any
import uuid

from sqlalchemy import Boolean, Column, text
from sqlalchemy.sql.schema import FetchedValue
from sqlmodel import Field, Relationship, SQLModel

from .timezone_aware_datetime import SQLITE_DATETIME_NOW, TimezoneAwareDatetime

if TYPE_CHECKING:
    from .entry import Entry


def new_id() -> str:
    """Return a fresh identifier for a feed or entry row."""
    return uuid.uuid4().hex


class Feed(SQLModel, table=True):
    """ORM model representing one subscribed podcast feed.

    Attributes:
        id: The feed identifier.
        source_url: The URL the feed document is fetched from. Unique.
        is_paused: When set, newly discovered entries are not downloaded.

        Time Keeping:
            latest_entry_at: Publish time of the newest entry seen (UTC). None
                until a sync stores at least one entry.
            created_at: When the feed was added (UTC).
            updated_at: When the feed row last changed (UTC).

        Feed Metadata:
            title: Channel title.
            summary: Channel description with markup removed.
            author: Channel author.
            remote_image_url: URL of the channel artwork.
            local_image_path: Where the artwork was cached, if it was.

    Relationships:
        entries: Entries belonging to this feed.
    """

    id: str = Field(default_factory=new_id, primary_key=True)
    source_url: str = Field(unique=True, index=True)
    is_paused: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default="0"),
    )

    # ----------------------------------------------------- time keeping ----
    latest_entry_at: datetime | None = Field(
        default=None, sa_column=Column(TimezoneAwareDatetime)
    )
    created_at: datetime | None = Field(
        default=None,
        sa_column=Column(
            TimezoneAwareDatetime,
            nullable=False,
            server_default=text(SQLITE_DATETIME_NOW),
        ),
    )
    updated_at: datetime | None = Field(
        default=None,
        sa_column=Column(
            TimezoneAwareDatetime,
            nullable=False,
            server_default=text(SQLITE_DATETIME_NOW),
            server_onupdate=FetchedValue(),
        ),
    )

    # ------------------------------------------------ feed metadata
    title: str = ""
    summary: str | None = None
    author: str | None = None
    remote_image_url: str | None = None
    local_image_path: str | None = None

    # ---------------------------------------------------- relationships
    entries: list["Entry"] = Relationship(
        back_populates="feed",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )

    # --- Class Helpers -----------------------------------------------------

    @property
    def display_name(self) -> str:
        """Name used for the feed's media folder."""
        return self.title or self.source_url

    def model_dump_for_insert(self) -> dict[str, Any]:
        """Use in place of Pydantic's model_dump() for insert operations.

        Drops the timestamps the database fills in itself.
        """
        dump = self.model_dump()
        if dump.get("created_at") is None:
            dump.pop("created_at", None)
        if dump.get("updated_at") is None:
            dump.pop("updated_at", None)
        return dump
