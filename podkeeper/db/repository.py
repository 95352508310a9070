"""Repository pattern implementation for podcast data persistence.

Provides an abstract interface and SQLAlchemy implementation for database operations.
Supports both SQLite (local development) and PostgreSQL (production).
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import create_engine, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, sessionmaker

from .models import Base, DownloadStatus, JobLock, Podcast, PodcastItem, Setting, utcnow

logger = logging.getLogger(__name__)


class PodcastRepositoryInterface(ABC):
    """Abstract interface for podcast data persistence.

    Implementations must support both SQLite and PostgreSQL backends.
    """

    # --- Podcast Operations ---

    @abstractmethod
    def create_podcast(self, feed_url: str, title: str, **kwargs) -> Podcast:
        """
        Create and persist a new podcast subscription for the given feed URL and title.

        Parameters:
            feed_url (str): RSS feed URL of the podcast.
            title (str): Display title for the podcast subscription.
            **kwargs: Additional Podcast attributes to set (e.g., summary, author, image_url).

        Returns:
            Podcast: The persisted Podcast instance.

        Raises:
            IntegrityError: If a podcast with the same feed URL already exists.
        """
        pass

    @abstractmethod
    def get_podcast(self, podcast_id: str) -> Optional[Podcast]:
        """
        Retrieve a podcast by its identifier.

        Returns:
            Podcast if a podcast with the given ID exists, `None` otherwise.
        """
        pass

    @abstractmethod
    def get_podcast_by_feed_url(self, feed_url: str) -> Optional[Podcast]:
        """
        Retrieve a podcast matching the given feed URL.

        Returns:
            The matching `Podcast` if found, `None` otherwise.
        """
        pass

    @abstractmethod
    def list_podcasts(self, limit: Optional[int] = None) -> List[Podcast]:
        """
        Return podcasts ordered by title, capped at `limit` when provided.
        """
        pass

    @abstractmethod
    def update_podcast(self, podcast_id: str, **kwargs) -> Optional[Podcast]:
        """
        Update attributes of an existing podcast.

        Parameters:
            podcast_id (str): The podcast's primary key.
            **kwargs: Podcast fields to update (for example `title`, `is_paused`).

        Returns:
            Optional[Podcast]: The updated Podcast, or `None` if no podcast with `podcast_id` exists.
        """
        pass

    @abstractmethod
    def advance_last_episode(self, podcast_id: str, published: datetime) -> bool:
        """
        Move the podcast's last-episode timestamp forward to `published`.

        The update only applies when the stored value is missing or older, so
        the timestamp never decreases.

        Returns:
            bool: `True` if the stored timestamp changed.
        """
        pass

    @abstractmethod
    def delete_podcast(self, podcast_id: str) -> bool:
        """
        Remove a podcast and, through the cascade, all of its items.

        Returns:
            bool: `True` if a podcast was found and deleted, `False` otherwise.
        """
        pass

    # --- Episode Operations ---

    @abstractmethod
    def create_episode_if_absent(
        self,
        podcast_id: str,
        guid: str,
        title: str,
        enclosure_url: str,
        **kwargs,
    ) -> Optional[PodcastItem]:
        """
        Insert a new item unless one with the same GUID already exists for the podcast.

        Conflicts are detected at insert time by the (podcast_id, guid) unique
        constraint, so two concurrent refreshes of the same podcast cannot
        create duplicates.

        Returns:
            Optional[PodcastItem]: The created item, or `None` when the GUID was already recorded.
        """
        pass

    @abstractmethod
    def get_episode(self, episode_id: str) -> Optional[PodcastItem]:
        """
        Retrieve an item by its primary key, with its podcast loaded.
        """
        pass

    @abstractmethod
    def list_episodes(
        self,
        podcast_id: Optional[str] = None,
        podcast_ids: Optional[Iterable[str]] = None,
        download_status: Optional[DownloadStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[PodcastItem]:
        """
        List items, optionally filtered and paginated.

        Parameters:
            podcast_id (Optional[str]): Only items belonging to this podcast.
            podcast_ids (Optional[Iterable[str]]): Only items belonging to any of these podcasts.
            download_status (Optional[DownloadStatus]): Only items in this status.
            limit (Optional[int]): Maximum number of items to return.
            offset (int): Number of items to skip.

        Returns:
            List[PodcastItem]: Matching items ordered by published date, newest first.
        """
        pass

    @abstractmethod
    def update_episode(self, episode_id: str, **kwargs) -> Optional[PodcastItem]:
        """
        Update attributes of an item.

        Returns:
            Optional[PodcastItem]: The updated item, or `None` if it does not exist.
        """
        pass

    @abstractmethod
    def get_existing_guids(self, podcast_id: str, guids: Iterable[str]) -> Set[str]:
        """
        Return the subset of `guids` already recorded for the podcast, in a single query.
        """
        pass

    @abstractmethod
    def get_episodes_pending_download(self, limit: Optional[int] = None) -> List[PodcastItem]:
        """
        Retrieve items whose status is NOT_DOWNLOADED, with their podcast loaded.
        """
        pass

    @abstractmethod
    def get_downloaded_episodes(self) -> List[PodcastItem]:
        """
        Retrieve every item whose status is DOWNLOADED.
        """
        pass

    @abstractmethod
    def get_episodes_missing_size(self) -> List[PodcastItem]:
        """
        Retrieve items with no recorded file size.
        """
        pass

    @abstractmethod
    def get_episodes_missing_image(self) -> List[PodcastItem]:
        """
        Retrieve items that have an image URL but no locally cached image, with their podcast loaded.
        """
        pass

    @abstractmethod
    def is_download_path_taken(
        self, download_path: str, exclude_episode_id: Optional[str] = None
    ) -> bool:
        """
        Return `True` if an item other than `exclude_episode_id` records `download_path`.
        """
        pass

    @abstractmethod
    def get_episode_number(self, episode_id: str) -> Optional[int]:
        """
        Return the 1-based position of the item within its podcast, ordered by publish date.

        Returns:
            Optional[int]: The sequence number, or `None` if the item does not exist.
        """
        pass

    @abstractmethod
    def set_download_status_for_podcast(
        self, podcast_id: str, status: DownloadStatus
    ) -> int:
        """
        Set the download status of every item of a podcast that is not already downloaded.

        Returns:
            int: Number of items updated.
        """
        pass

    # --- Status Update Helpers ---

    @abstractmethod
    def mark_download_complete(
        self, episode_id: str, local_path: str, file_size: int
    ) -> None:
        """
        Record a finished download: path, size, timestamp and DOWNLOADED status.
        """
        pass

    @abstractmethod
    def mark_download_failed(self, episode_id: str, error: str) -> None:
        """
        Record a failed download attempt; the item stays NOT_DOWNLOADED.
        """
        pass

    @abstractmethod
    def mark_not_downloaded(self, episode_id: str, status: DownloadStatus) -> None:
        """
        Clear the recorded download path and date and set `status`.
        """
        pass

    # --- Stats ---

    @abstractmethod
    def get_podcast_stats(self, podcast_id: str) -> Optional[Dict[str, Any]]:
        """
        Return item counts and sizes per download status for a podcast, or `None` if it does not exist.
        """
        pass

    @abstractmethod
    def get_overall_stats(self) -> Dict[str, Any]:
        """
        Return podcast count and item counts per download status.
        """
        pass

    # --- Settings ---

    @abstractmethod
    def get_or_create_setting(self) -> Setting:
        """
        Return the singleton Setting row, creating it with defaults on first use.
        """
        pass

    @abstractmethod
    def update_setting(self, **kwargs) -> Setting:
        """
        Apply `kwargs` to the singleton Setting row and return it.
        """
        pass

    # --- Job Locks ---

    @abstractmethod
    def acquire_lock(self, name: str, ttl_seconds: int, now: Optional[datetime] = None) -> bool:
        """
        Atomically take the named lock if it is free, released, or expired.

        On success the lock is marked held until `now + ttl_seconds`.

        Returns:
            bool: `True` if this call obtained the lock.
        """
        pass

    @abstractmethod
    def renew_lock(self, name: str, ttl_seconds: int, now: Optional[datetime] = None) -> bool:
        """
        Push a held lock's expiry out to `now + ttl_seconds`.

        Returns:
            bool: `False` if the lock is not currently held.
        """
        pass

    @abstractmethod
    def is_lock_held(self, name: str, now: Optional[datetime] = None) -> bool:
        """
        Return `True` if the named lock is held and not yet expired.
        """
        pass

    @abstractmethod
    def release_lock(self, name: str) -> None:
        """
        Clear the named lock unconditionally.
        """
        pass

    @abstractmethod
    def reclaim_stale_locks(self, now: Optional[datetime] = None) -> int:
        """
        Clear every held lock whose expiry has passed.

        Returns:
            int: Number of locks released.
        """
        pass

    # --- Connection Management ---

    @abstractmethod
    def close(self) -> None:
        """
        Release database connections and resources held by the repository.
        """
        pass


class SQLAlchemyPodcastRepository(PodcastRepositoryInterface):
    """SQLAlchemy-based implementation of the podcast repository.

    Supports SQLite for local development and PostgreSQL for production.
    """

    def __init__(
        self,
        database_url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
        create_tables: bool = False,
    ):
        """
        Initialize the repository and configure its SQLAlchemy engine and session factory.

        Parameters:
            database_url (str): SQLAlchemy-compatible database URL.
            pool_size (int): Connection pool size for non-SQLite databases.
            max_overflow (int): Maximum overflow connections for non-SQLite databases.
            echo (bool): If true, enable SQLAlchemy SQL statement logging.
            create_tables (bool): If true, create missing tables from the ORM metadata
                instead of relying on Alembic migrations.
        """
        self.database_url = database_url

        # SQLite doesn't support connection pooling
        if database_url.startswith("sqlite"):
            self.engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False, "timeout": 30},
            )
        else:
            self.engine = create_engine(
                database_url,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_pre_ping=True,
                echo=echo,
            )

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        if create_tables:
            Base.metadata.create_all(self.engine)

        logger.info(f"Database initialized: {database_url.split('@')[-1] if '@' in database_url else database_url}")

    def _get_session(self) -> Session:
        """Obtain a new SQLAlchemy session from the repository's session factory."""
        return self.SessionLocal()

    # --- Podcast Operations ---

    def create_podcast(self, feed_url: str, title: str, **kwargs) -> Podcast:
        with self._get_session() as session:
            podcast = Podcast(feed_url=feed_url, title=title, **kwargs)
            session.add(podcast)
            session.commit()
            session.refresh(podcast)
            logger.info(f"Created podcast: {title} ({podcast.id})")
            return podcast

    def get_podcast(self, podcast_id: str) -> Optional[Podcast]:
        with self._get_session() as session:
            return session.get(Podcast, podcast_id)

    def get_podcast_by_feed_url(self, feed_url: str) -> Optional[Podcast]:
        with self._get_session() as session:
            stmt = select(Podcast).where(Podcast.feed_url == feed_url)
            return session.scalar(stmt)

    def list_podcasts(self, limit: Optional[int] = None) -> List[Podcast]:
        with self._get_session() as session:
            stmt = select(Podcast).order_by(Podcast.title)
            if limit:
                stmt = stmt.limit(limit)
            return list(session.scalars(stmt).all())

    def update_podcast(self, podcast_id: str, **kwargs) -> Optional[Podcast]:
        """
        Update attributes of an existing podcast.

        Only attributes that exist on the Podcast model are set from `kwargs`; unknown keys are ignored.
        """
        with self._get_session() as session:
            podcast = session.get(Podcast, podcast_id)
            if podcast:
                for key, value in kwargs.items():
                    if hasattr(podcast, key):
                        setattr(podcast, key, value)
                podcast.updated_at = utcnow()
                session.commit()
                session.refresh(podcast)
                logger.debug(f"Updated podcast {podcast_id}: {kwargs.keys()}")
            return podcast

    def advance_last_episode(self, podcast_id: str, published: datetime) -> bool:
        with self._get_session() as session:
            stmt = (
                update(Podcast)
                .where(Podcast.id == podcast_id)
                .where(
                    or_(
                        Podcast.last_episode.is_(None),
                        Podcast.last_episode < published,
                    )
                )
                .values(last_episode=published, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount == 1

    def delete_podcast(self, podcast_id: str) -> bool:
        with self._get_session() as session:
            podcast = session.get(Podcast, podcast_id)
            if not podcast:
                return False

            session.delete(podcast)
            session.commit()
            logger.info(f"Deleted podcast: {podcast.title} ({podcast_id})")
            return True

    # --- Episode Operations ---

    def create_episode_if_absent(
        self,
        podcast_id: str,
        guid: str,
        title: str,
        enclosure_url: str,
        **kwargs,
    ) -> Optional[PodcastItem]:
        with self._get_session() as session:
            episode = PodcastItem(
                podcast_id=podcast_id,
                guid=guid,
                title=title,
                enclosure_url=enclosure_url,
                **kwargs,
            )
            session.add(episode)
            try:
                session.commit()
            except IntegrityError:
                # Another refresh recorded this GUID after our existence check
                session.rollback()
                logger.debug(f"Episode already recorded, skipping: {guid}")
                return None
            session.refresh(episode)
            logger.debug(f"Created episode: {title} ({episode.id})")
            return episode

    def get_episode(self, episode_id: str) -> Optional[PodcastItem]:
        with self._get_session() as session:
            stmt = (
                select(PodcastItem)
                .options(joinedload(PodcastItem.podcast))
                .where(PodcastItem.id == episode_id)
            )
            return session.scalars(stmt).unique().first()

    def list_episodes(
        self,
        podcast_id: Optional[str] = None,
        podcast_ids: Optional[Iterable[str]] = None,
        download_status: Optional[DownloadStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[PodcastItem]:
        with self._get_session() as session:
            stmt = select(PodcastItem)

            if podcast_id:
                stmt = stmt.where(PodcastItem.podcast_id == podcast_id)
            if podcast_ids is not None:
                stmt = stmt.where(PodcastItem.podcast_id.in_(list(podcast_ids)))
            if download_status:
                stmt = stmt.where(PodcastItem.download_status == download_status)

            stmt = stmt.order_by(PodcastItem.published_date.desc())
            stmt = stmt.offset(offset)
            if limit:
                stmt = stmt.limit(limit)

            return list(session.scalars(stmt).all())

    def update_episode(self, episode_id: str, **kwargs) -> Optional[PodcastItem]:
        """
        Update attributes of an existing item.

        Only attributes that exist on the PodcastItem model are applied; `updated_at` is refreshed.
        """
        with self._get_session() as session:
            episode = session.get(PodcastItem, episode_id)
            if episode:
                for key, value in kwargs.items():
                    if hasattr(episode, key):
                        setattr(episode, key, value)
                episode.updated_at = utcnow()
                session.commit()
                session.refresh(episode)
                logger.debug(f"Updated episode {episode_id}: {kwargs.keys()}")
            return episode

    def get_existing_guids(self, podcast_id: str, guids: Iterable[str]) -> Set[str]:
        guid_list = list(guids)
        if not guid_list:
            return set()

        with self._get_session() as session:
            stmt = select(PodcastItem.guid).where(
                PodcastItem.podcast_id == podcast_id,
                PodcastItem.guid.in_(guid_list),
            )
            return set(session.scalars(stmt).all())

    def get_episodes_pending_download(self, limit: Optional[int] = None) -> List[PodcastItem]:
        with self._get_session() as session:
            stmt = (
                select(PodcastItem)
                .options(joinedload(PodcastItem.podcast))
                .where(PodcastItem.download_status == DownloadStatus.NOT_DOWNLOADED)
                .order_by(PodcastItem.published_date.desc())
            )
            if limit:
                stmt = stmt.limit(limit)
            return list(session.scalars(stmt).unique().all())

    def get_downloaded_episodes(self) -> List[PodcastItem]:
        with self._get_session() as session:
            stmt = select(PodcastItem).where(
                PodcastItem.download_status == DownloadStatus.DOWNLOADED
            )
            return list(session.scalars(stmt).all())

    def get_episodes_missing_size(self) -> List[PodcastItem]:
        with self._get_session() as session:
            stmt = select(PodcastItem).where(
                or_(
                    PodcastItem.file_size_bytes.is_(None),
                    PodcastItem.file_size_bytes <= 0,
                )
            )
            return list(session.scalars(stmt).all())

    def get_episodes_missing_image(self) -> List[PodcastItem]:
        with self._get_session() as session:
            stmt = (
                select(PodcastItem)
                .options(joinedload(PodcastItem.podcast))
                .where(
                    PodcastItem.image_url.isnot(None),
                    PodcastItem.image_url != "",
                    or_(
                        PodcastItem.local_image_path.is_(None),
                        PodcastItem.local_image_path == "",
                    ),
                )
            )
            return list(session.scalars(stmt).unique().all())

    def is_download_path_taken(
        self, download_path: str, exclude_episode_id: Optional[str] = None
    ) -> bool:
        with self._get_session() as session:
            stmt = select(PodcastItem.id).where(PodcastItem.download_path == download_path)
            if exclude_episode_id:
                stmt = stmt.where(PodcastItem.id != exclude_episode_id)
            return session.scalars(stmt.limit(1)).first() is not None

    def get_episode_number(self, episode_id: str) -> Optional[int]:
        with self._get_session() as session:
            episode = session.get(PodcastItem, episode_id)
            if episode is None:
                return None

            stmt = (
                select(PodcastItem.id)
                .where(PodcastItem.podcast_id == episode.podcast_id)
                .order_by(PodcastItem.published_date.asc(), PodcastItem.created_at.asc())
            )
            ids = list(session.scalars(stmt).all())
            return ids.index(episode_id) + 1

    def set_download_status_for_podcast(
        self, podcast_id: str, status: DownloadStatus
    ) -> int:
        with self._get_session() as session:
            stmt = (
                update(PodcastItem)
                .where(PodcastItem.podcast_id == podcast_id)
                .where(PodcastItem.download_status != DownloadStatus.DOWNLOADED)
                .values(download_status=status, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount

    # --- Status Update Helpers ---

    def mark_download_complete(
        self, episode_id: str, local_path: str, file_size: int
    ) -> None:
        if not local_path:
            raise ValueError("A downloaded episode must have a non-empty path")

        self.update_episode(
            episode_id,
            download_status=DownloadStatus.DOWNLOADED,
            download_path=local_path,
            file_size_bytes=file_size,
            downloaded_at=utcnow(),
            download_error=None,
        )

    def mark_download_failed(self, episode_id: str, error: str) -> None:
        self.update_episode(
            episode_id,
            download_status=DownloadStatus.NOT_DOWNLOADED,
            download_error=error,
        )

    def mark_not_downloaded(self, episode_id: str, status: DownloadStatus) -> None:
        if status == DownloadStatus.DOWNLOADED:
            raise ValueError("Use mark_download_complete to mark an episode downloaded")

        self.update_episode(
            episode_id,
            download_status=status,
            download_path=None,
            downloaded_at=None,
        )

    # --- Stats ---

    def _status_breakdown(self, session: Session, podcast_id: Optional[str] = None) -> Dict[str, Any]:
        stmt = select(
            PodcastItem.download_status,
            func.count(PodcastItem.id),
            func.coalesce(func.sum(PodcastItem.file_size_bytes), 0),
        ).group_by(PodcastItem.download_status)
        if podcast_id:
            stmt = stmt.where(PodcastItem.podcast_id == podcast_id)

        stats: Dict[str, Any] = {"total_episodes": 0, "total_size": 0}
        for status in DownloadStatus:
            stats[status.value] = 0
            stats[f"{status.value}_size"] = 0

        for status, count, size in session.execute(stmt).all():
            stats[status.value] = count
            stats[f"{status.value}_size"] = size
            stats["total_episodes"] += count
            stats["total_size"] += size
        return stats

    def get_podcast_stats(self, podcast_id: str) -> Optional[Dict[str, Any]]:
        with self._get_session() as session:
            podcast = session.get(Podcast, podcast_id)
            if not podcast:
                return None

            stats = self._status_breakdown(session, podcast_id)
            stats["title"] = podcast.title
            stats["is_paused"] = podcast.is_paused
            stats["last_episode"] = podcast.last_episode
            return stats

    def get_overall_stats(self) -> Dict[str, Any]:
        with self._get_session() as session:
            stats = self._status_breakdown(session)
            stats["total_podcasts"] = session.scalar(select(func.count(Podcast.id))) or 0
            stats["paused_podcasts"] = session.scalar(
                select(func.count(Podcast.id)).where(Podcast.is_paused.is_(True))
            ) or 0
            return stats

    # --- Settings ---

    def get_or_create_setting(self) -> Setting:
        with self._get_session() as session:
            setting = session.get(Setting, Setting.SINGLETON_ID)
            if setting:
                return setting

            setting = Setting(id=Setting.SINGLETON_ID)
            session.add(setting)
            try:
                session.commit()
            except IntegrityError:
                # Created concurrently by another process
                session.rollback()
                return session.get(Setting, Setting.SINGLETON_ID)
            session.refresh(setting)
            logger.info("Created default settings")
            return setting

    def update_setting(self, **kwargs) -> Setting:
        self.get_or_create_setting()
        with self._get_session() as session:
            setting = session.get(Setting, Setting.SINGLETON_ID)
            for key, value in kwargs.items():
                if hasattr(setting, key) and key != "id":
                    setattr(setting, key, value)
            setting.updated_at = utcnow()
            session.commit()
            session.refresh(setting)
            logger.info(f"Updated settings: {list(kwargs.keys())}")
            return setting

    # --- Job Locks ---

    def _ensure_lock_row(self, name: str) -> None:
        with self._get_session() as session:
            if session.get(JobLock, name) is not None:
                return
            session.add(JobLock(name=name, is_locked=False))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()

    def acquire_lock(self, name: str, ttl_seconds: int, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        self._ensure_lock_row(name)

        with self._get_session() as session:
            # Single conditional UPDATE: the row count tells us who won
            stmt = (
                update(JobLock)
                .where(JobLock.name == name)
                .where(
                    or_(
                        JobLock.is_locked.is_(False),
                        JobLock.expires_at.is_(None),
                        JobLock.expires_at <= now,
                    )
                )
                .values(
                    is_locked=True,
                    expires_at=now + timedelta(seconds=ttl_seconds),
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount == 1

    def renew_lock(self, name: str, ttl_seconds: int, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        with self._get_session() as session:
            stmt = (
                update(JobLock)
                .where(JobLock.name == name)
                .where(JobLock.is_locked.is_(True))
                .values(expires_at=now + timedelta(seconds=ttl_seconds), updated_at=now)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount == 1

    def is_lock_held(self, name: str, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        with self._get_session() as session:
            lock = session.get(JobLock, name)
            if lock is None or not lock.is_locked:
                return False
            return lock.expires_at is not None and lock.expires_at > now

    def release_lock(self, name: str) -> None:
        with self._get_session() as session:
            stmt = (
                update(JobLock)
                .where(JobLock.name == name)
                .values(is_locked=False, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            session.execute(stmt)
            session.commit()

    def reclaim_stale_locks(self, now: Optional[datetime] = None) -> int:
        now = now or utcnow()
        with self._get_session() as session:
            stmt = (
                update(JobLock)
                .where(JobLock.is_locked.is_(True))
                .where(or_(JobLock.expires_at.is_(None), JobLock.expires_at <= now))
                .values(is_locked=False, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(stmt)
            session.commit()
            return result.rowcount

    # --- Connection Management ---

    def close(self) -> None:
        """
        Dispose the SQLAlchemy engine and release database connections and resources.
        """
        self.engine.dispose()
        logger.info("Database connection closed")
