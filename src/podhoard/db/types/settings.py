# pyright: reportUnknownVariableType=false, reportUnknownMemberType=false

"""Runtime download policy, stored as a single row."""

from sqlalchemy import Boolean, Column, Integer
from sqlmodel import Field, SQLModel

SETTINGS_ROW_ID = "global"


class Settings(SQLModel, table=True):
    """ORM model for the process-wide settings singleton.

    Attributes:
        id: Primary key for the single row. Always "global".
        max_download_concurrency: Upper bound on simultaneous transfers.
        auto_download: Whether newly discovered entries are queued at all.
        download_on_add: Whether a feed's first sync queues anything.
        initial_download_count: How many entries a first sync queues.
        hard_remove_missing_files: When a materialized file disappears, mark
            the entry hard removed instead of soft removed.
        append_date_to_file_name: Prefix file names with the publish date.
        append_episode_number_to_file_name: Prefix file names with the
            entry's position in its feed.
        download_episode_images: Cache episode artwork next to the media.
        generate_nfo_file: Write an album.nfo into each feed folder.
        user_agent: User-Agent override for outgoing requests.
    """

    id: str = Field(primary_key=True, default=SETTINGS_ROW_ID)
    max_download_concurrency: int = Field(
        default=5, sa_column=Column(Integer, nullable=False, server_default="5")
    )
    auto_download: bool = Field(
        default=True, sa_column=Column(Boolean, nullable=False, server_default="1")
    )
    download_on_add: bool = Field(
        default=True, sa_column=Column(Boolean, nullable=False, server_default="1")
    )
    initial_download_count: int = Field(
        default=5, sa_column=Column(Integer, nullable=False, server_default="5")
    )
    hard_remove_missing_files: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default="0")
    )
    append_date_to_file_name: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default="0")
    )
    append_episode_number_to_file_name: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default="0")
    )
    download_episode_images: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default="0")
    )
    generate_nfo_file: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False, server_default="0")
    )
    user_agent: str | None = None
