"""Explicit episode and podcast state operations.

These are the user-initiated transitions: deleting a downloaded file,
re-queueing, downloading on demand, pausing, unsubscribing, and editing
the download settings.
"""

import logging
import os
import shutil
from dataclasses import fields
from typing import Optional

from ..db.models import DownloadStatus, Podcast, PodcastItem, utcnow
from ..db.repository import PodcastRepositoryInterface
from ..exceptions import NotFoundError
from .downloader import DownloadResult, EpisodeDownloader
from .settings import SyncSettings

logger = logging.getLogger(__name__)


class EpisodeService:
    """Service for explicit per-episode and per-podcast operations.

    Example:
        service = EpisodeService(repository, downloader)
        service.delete_episode_file(episode_id)
        service.queue_episode(episode_id)
    """

    def __init__(
        self,
        repository: PodcastRepositoryInterface,
        downloader: Optional[EpisodeDownloader] = None,
    ):
        """
        Parameters:
            repository (PodcastRepositoryInterface): Persistence for podcasts, items and settings.
            downloader (Optional[EpisodeDownloader]): Needed for on-demand downloads and folder cleanup.
        """
        self.repository = repository
        self.downloader = downloader

    def _get_episode(self, episode_id: str) -> PodcastItem:
        episode = self.repository.get_episode(episode_id)
        if not episode:
            raise NotFoundError(f"Episode not found: {episode_id}")
        return episode

    def _get_podcast(self, podcast_id: str) -> Podcast:
        podcast = self.repository.get_podcast(podcast_id)
        if not podcast:
            raise NotFoundError(f"Podcast not found: {podcast_id}")
        return podcast

    def _remove_file(self, path: Optional[str]) -> bool:
        """Delete a file if it exists. Failures are logged, not raised."""
        if not path:
            return False
        try:
            os.remove(path)
            logger.debug(f"Deleted file: {path}")
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Failed to delete {path}: {e}")
            return False

    def _remove_episode_files(self, episode: PodcastItem) -> None:
        self._remove_file(episode.download_path)
        self._remove_file(episode.local_image_path)

    # --- Episodes ---

    def delete_episode_file(self, episode_id: str) -> PodcastItem:
        """
        Delete an episode's downloaded file and cached image, and mark it DELETED.

        A DELETED episode is not downloaded again until it is explicitly re-queued.

        Raises:
            NotFoundError: If the episode does not exist.
        """
        episode = self._get_episode(episode_id)
        self._remove_episode_files(episode)

        self.repository.mark_not_downloaded(episode_id, DownloadStatus.DELETED)
        updated = self.repository.update_episode(episode_id, local_image_path=None)
        logger.info(f"Deleted episode file: {episode.title}")
        return updated

    def queue_episode(self, episode_id: str) -> PodcastItem:
        """
        Queue an episode for the next download run.

        Episodes that are already downloaded are left as they are.

        Raises:
            NotFoundError: If the episode does not exist.
        """
        episode = self._get_episode(episode_id)
        if episode.download_status == DownloadStatus.DOWNLOADED:
            logger.info(f"Episode already downloaded, not queueing: {episode.title}")
            return episode

        updated = self.repository.update_episode(
            episode_id,
            download_status=DownloadStatus.NOT_DOWNLOADED,
            download_error=None,
        )
        logger.info(f"Queued episode for download: {episode.title}")
        return updated

    def download_episode_now(
        self, episode_id: str, settings: Optional[SyncSettings] = None
    ) -> DownloadResult:
        """
        Download a single episode immediately, outside the scheduled run.

        The episode is queued first, so a failed attempt leaves it for the
        next scheduled run.

        Raises:
            NotFoundError: If the episode does not exist.
        """
        if self.downloader is None:
            raise RuntimeError("EpisodeService was created without a downloader")

        episode = self._get_episode(episode_id)
        settings = settings or SyncSettings.load(self.repository)

        if episode.download_status != DownloadStatus.DOWNLOADED:
            episode = self.repository.update_episode(
                episode_id, download_status=DownloadStatus.NOT_DOWNLOADED
            )

        return self.downloader.download_episode(episode, settings)

    def set_bookmark(self, episode_id: str, bookmarked: bool = True) -> PodcastItem:
        self._get_episode(episode_id)
        return self.repository.update_episode(
            episode_id, bookmarked_at=utcnow() if bookmarked else None
        )

    def set_played(self, episode_id: str, played: bool = True) -> PodcastItem:
        self._get_episode(episode_id)
        return self.repository.update_episode(episode_id, is_played=played)

    # --- Podcasts ---

    def set_paused(self, podcast_id: str, paused: bool) -> Podcast:
        """
        Pause or resume a podcast. New episodes of a paused podcast are recorded as DELETED.

        Raises:
            NotFoundError: If the podcast does not exist.
        """
        self._get_podcast(podcast_id)
        podcast = self.repository.update_podcast(podcast_id, is_paused=paused)
        logger.info(f"{'Paused' if paused else 'Resumed'} podcast: {podcast.title}")
        return podcast

    def queue_all_episodes(self, podcast_id: str) -> int:
        """
        Queue every episode of a podcast that is not already downloaded.

        Returns:
            int: Number of episodes queued.
        """
        podcast = self._get_podcast(podcast_id)
        count = self.repository.set_download_status_for_podcast(
            podcast_id, DownloadStatus.NOT_DOWNLOADED
        )
        logger.info(f"Queued {count} episodes of {podcast.title}")
        return count

    def delete_podcast_episodes(self, podcast_id: str) -> int:
        """
        Delete every downloaded file of a podcast and mark all its episodes DELETED.

        Returns:
            int: Number of episodes marked DELETED.
        """
        podcast = self._get_podcast(podcast_id)
        episodes = self.repository.list_episodes(podcast_id=podcast_id)

        for episode in episodes:
            self._remove_episode_files(episode)
            self.repository.mark_not_downloaded(episode.id, DownloadStatus.DELETED)
            if episode.local_image_path:
                self.repository.update_episode(episode.id, local_image_path=None)

        logger.info(f"Deleted episodes of {podcast.title}: {len(episodes)}")
        return len(episodes)

    def delete_podcast(self, podcast_id: str, delete_files: bool = True) -> bool:
        """
        Unsubscribe from a podcast, removing it and all of its episodes.

        Parameters:
            podcast_id (str): The podcast to remove.
            delete_files (bool): Also delete downloaded files, cached images and the
                podcast's download folder (best effort).

        Raises:
            NotFoundError: If the podcast does not exist.
        """
        podcast = self._get_podcast(podcast_id)

        if delete_files:
            for episode in self.repository.list_episodes(podcast_id=podcast_id):
                self._remove_episode_files(episode)

            if self.downloader is not None:
                folder = self.downloader.podcast_directory(podcast)
                if os.path.isdir(folder):
                    try:
                        shutil.rmtree(folder)
                        logger.info(f"Deleted podcast folder: {folder}")
                    except OSError as e:
                        logger.warning(f"Failed to delete podcast folder {folder}: {e}")

        return self.repository.delete_podcast(podcast_id)

    # --- Settings ---

    def get_settings(self) -> SyncSettings:
        return SyncSettings.load(self.repository)

    def update_settings(self, **kwargs) -> SyncSettings:
        """
        Change download settings.

        Values are validated together before anything is written. Runs already
        in progress keep the snapshot they started with.

        Raises:
            ValueError: On an unknown setting name or an invalid value.
        """
        known = {f.name for f in fields(SyncSettings)}
        unknown = set(kwargs) - known
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

        current = self.get_settings()
        merged = {f.name: getattr(current, f.name) for f in fields(SyncSettings)}
        merged.update(kwargs)
        # Raises on invalid combinations before anything is persisted
        SyncSettings(**merged)

        setting = self.repository.update_setting(**kwargs)
        return SyncSettings.from_model(setting)
