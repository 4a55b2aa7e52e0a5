"""Entry table mapped with SQLModel."""

from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    Boolean,
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.sql.schema import FetchedValue
from sqlmodel import Field, Relationship, SQLModel

from .entry_status import EntryStatus
from .feed import new_id
from .timezone_aware_datetime import SQLITE_DATETIME_NOW, TimezoneAwareDatetime

if TYPE_CHECKING:
    from .feed import Feed

# file_size sentinels
FILE_SIZE_UNKNOWN = 0
FILE_SIZE_PROBE_FAILED = -1


class Entry(SQLModel, table=True):
    """Represent one episode of a feed.

    Attributes:
        id: The entry identifier.
        feed_id: The owning feed.
        guid: The entry's native GUID, unique only within its feed.
        title: The entry title.
        summary: Description with markup removed.
        published: Publication datetime (UTC).
        duration: Duration in seconds, 0 when unknown.
        remote_url: URL of the enclosure.
        status: Current materialization status.

        Local Artifact:
            local_path: Where the artifact was written, once materialized.
            file_size: Size in bytes. 0 when unknown, -1 when probing failed.
            downloaded_at: When the artifact was written (UTC).
            hard_removed: A removed entry that must not be re-queued in bulk
                or downloaded automatically.

        Optional Media Metadata:
            remote_image_url: Episode artwork URL.
            local_image_path: Where the artwork was cached.
            episode_type: itunes:episodeType value, if any.

        User State:
            is_played: Whether the user marked the episode as played.
            bookmarked_at: When the user bookmarked the episode (UTC).

        Time Keeping:
            discovered_at: When the entry was first stored (UTC).
            updated_at: When the entry row last changed (UTC).

    Relationships:
        feed: The feed this entry belongs to.
    """

    id: str = Field(default_factory=new_id, primary_key=True)
    feed_id: str = Field(
        sa_column=Column(
            String, ForeignKey("feed.id", ondelete="CASCADE"), nullable=False
        )
    )
    guid: str

    # Source + metadata
    title: str
    summary: str | None = None
    published: datetime = Field(sa_column=Column(TimezoneAwareDatetime, nullable=False))
    duration: int = Field(
        default=0, sa_column=Column(Integer, nullable=False, server_default="0")
    )
    remote_url: str
    remote_image_url: str | None = None
    episode_type: str | None = None

    # Processing state
    status: EntryStatus = Field(sa_column=Column(Enum(EntryStatus), nullable=False))
    local_path: str | None = None
    file_size: int = Field(
        default=FILE_SIZE_UNKNOWN,
        sa_column=Column(Integer, nullable=False, server_default="0"),
    )
    local_image_path: str | None = None
    hard_removed: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default="0"),
    )
    downloaded_at: datetime | None = Field(
        default=None, sa_column=Column(TimezoneAwareDatetime)
    )

    # User state
    is_played: bool = Field(
        default=False,
        sa_column=Column(Boolean, nullable=False, server_default="0"),
    )
    bookmarked_at: datetime | None = Field(
        default=None, sa_column=Column(TimezoneAwareDatetime)
    )

    discovered_at: datetime | None = Field(
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

    # --- Relationships ----------------------------------------------------

    feed: "Feed" = Relationship(back_populates="entries")

    __table_args__ = (
        UniqueConstraint("feed_id", "guid", name="uq_entry_feed_guid"),
        Index("idx_entry_status", "status"),
        Index("idx_entry_feed_published", "feed_id", "published"),
    )

    # --- Class Helpers -----------------------------------------------------

    def __hash__(self) -> int:
        return hash(self.id)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Entry):
            return False
        return self.id == other.id

    def model_dump_for_insert(self) -> dict[str, Any]:
        """Use in place of Pydantic's model_dump() for insert operations.

        Returns:
            The entry's columns, without the timestamps the database fills in.
        """
        dump = self.model_dump()
        for db_managed in ("discovered_at", "updated_at"):
            if dump.get(db_managed) is None:
                dump.pop(db_managed, None)
        return dump
