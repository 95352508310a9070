"""SQLAlchemy ORM models for podcasts, episodes, job locks and settings."""

import enum
import uuid
from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the storage convention for all columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class DownloadStatus(str, enum.Enum):
    """Download state of a podcast item.

    NOT_DOWNLOADED items are queued for the next download run, DOWNLOADED
    items have a file on disk at `download_path`, and DELETED items are
    excluded until explicitly re-queued.
    """

    NOT_DOWNLOADED = "not_downloaded"
    DOWNLOADED = "downloaded"
    DELETED = "deleted"


class Podcast(Base):
    """Podcast subscription model.

    Stores podcast-level metadata from the RSS feed and subscription state.
    """

    __tablename__ = "podcasts"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )

    # Core identifiers
    feed_url: Mapped[str] = mapped_column(String(2048), unique=True, nullable=False)

    # Metadata from RSS feed
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    author: Mapped[Optional[str]] = mapped_column(String(512))
    image_url: Mapped[Optional[str]] = mapped_column(String(2048))

    # Subscription management
    is_paused: Mapped[bool] = mapped_column(Boolean, default=False)
    last_episode: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    # Relationships
    episodes: Mapped[List["PodcastItem"]] = relationship(
        "PodcastItem", back_populates="podcast", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("ix_podcasts_feed_url", "feed_url"),)

    def __repr__(self) -> str:
        return f"<Podcast(id={self.id}, title={self.title!r})>"


class PodcastItem(Base):
    """Episode of a podcast.

    The GUID is only unique within its podcast; the (podcast_id, guid)
    constraint is what keeps repeated refreshes from inserting duplicates.
    """

    __tablename__ = "podcast_items"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    podcast_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("podcasts.id", ondelete="CASCADE"), nullable=False
    )

    # Core identifiers - GUID is unique per podcast
    guid: Mapped[str] = mapped_column(String(2048), nullable=False)

    # Metadata from RSS feed
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text)
    published_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer)
    episode_type: Mapped[Optional[str]] = mapped_column(String(32))  # full, trailer, bonus
    enclosure_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(String(2048))

    # Download state
    download_status: Mapped[DownloadStatus] = mapped_column(
        Enum(
            DownloadStatus,
            native_enum=False,
            length=32,
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=DownloadStatus.NOT_DOWNLOADED,
        nullable=False,
    )
    download_path: Mapped[Optional[str]] = mapped_column(String(1024))
    downloaded_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    download_error: Mapped[Optional[str]] = mapped_column(Text)
    file_size_bytes: Mapped[Optional[int]] = mapped_column(Integer)
    local_image_path: Mapped[Optional[str]] = mapped_column(String(1024))

    # Listener state
    bookmarked_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    is_played: Mapped[bool] = mapped_column(Boolean, default=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    # Relationships
    podcast: Mapped["Podcast"] = relationship("Podcast", back_populates="episodes")

    __table_args__ = (
        UniqueConstraint("podcast_id", "guid", name="uq_podcast_item_podcast_guid"),
        Index("ix_podcast_items_podcast_id", "podcast_id"),
        Index("ix_podcast_items_download_status", "download_status"),
        Index("ix_podcast_items_published_date", "published_date"),
    )

    def __repr__(self) -> str:
        return f"<PodcastItem(id={self.id}, title={self.title!r})>"


class JobLock(Base):
    """Named advisory lock for scheduled jobs.

    A lock is held while `is_locked` is set and `expires_at` is in the
    future. Rows are created on first use and never deleted.
    """

    __tablename__ = "job_locks"

    name: Mapped[str] = mapped_column(String(128), primary_key=True)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<JobLock(name={self.name!r}, is_locked={self.is_locked})>"


class Setting(Base):
    """Singleton row holding download policy settings."""

    __tablename__ = "settings"

    SINGLETON_ID = 1

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SINGLETON_ID)

    # Episode eligibility
    auto_download: Mapped[bool] = mapped_column(Boolean, default=True)
    download_on_add: Mapped[bool] = mapped_column(Boolean, default=True)
    initial_download_count: Mapped[int] = mapped_column(Integer, default=5)

    # Downloading
    max_download_concurrency: Mapped[int] = mapped_column(Integer, default=5)
    append_date_to_filename: Mapped[bool] = mapped_column(Boolean, default=False)
    append_episode_number_to_filename: Mapped[bool] = mapped_column(
        Boolean, default=False
    )
    download_episode_images: Mapped[bool] = mapped_column(Boolean, default=False)
    user_agent: Mapped[Optional[str]] = mapped_column(String(512))

    # Reconciliation
    dont_download_deleted_from_disk: Mapped[bool] = mapped_column(
        Boolean, default=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Setting(auto_download={self.auto_download}, initial_download_count={self.initial_download_count})>"
