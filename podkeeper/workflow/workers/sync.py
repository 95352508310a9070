"""Sync worker for RSS feed refreshes.

Refreshes every subscribed podcast to record new episodes.
"""

import logging
from typing import Optional

from podkeeper.config import Config
from podkeeper.db.repository import PodcastRepositoryInterface
from podkeeper.podcast.feed_parser import FeedParser
from podkeeper.podcast.feed_sync import FeedSyncService
from podkeeper.podcast.settings import SyncSettings
from podkeeper.workflow.workers.base import WorkerInterface, WorkerResult

logger = logging.getLogger(__name__)


class SyncWorker(WorkerInterface):
    """Worker wrapping FeedSyncService for the refresh loop."""

    def __init__(
        self,
        config: Config,
        repository: PodcastRepositoryInterface,
    ):
        """Initialize the sync worker.

        Args:
            config: Application configuration.
            repository: Database repository for podcast operations.
        """
        self.config = config
        self.repository = repository
        self._feed_sync_service: Optional[FeedSyncService] = None

    @property
    def name(self) -> str:
        return "Sync"

    @property
    def feed_sync_service(self) -> FeedSyncService:
        """Lazily initialize the feed sync service."""
        if self._feed_sync_service is None:
            self._feed_sync_service = FeedSyncService(
                repository=self.repository,
                feed_parser=FeedParser.from_config(self.config),
            )
        return self._feed_sync_service

    def get_pending_count(self) -> int:
        """Number of podcasts a refresh would fetch."""
        return len(self.repository.list_podcasts())

    def run(self, settings: SyncSettings) -> WorkerResult:
        result = WorkerResult()

        try:
            sync_result = self.feed_sync_service.sync_all_podcasts(settings=settings)

            result.processed = sync_result.get("synced", 0)
            result.failed = sync_result.get("failed", 0)

            new_episodes = sync_result.get("new_episodes", 0)
            if new_episodes > 0:
                logger.info(f"Discovered {new_episodes} new episodes")

            for podcast_result in sync_result.get("results", []):
                if podcast_result.get("error"):
                    result.errors.append(
                        f"Podcast {podcast_result.get('podcast_id')}: "
                        f"{podcast_result.get('error')}"
                    )

        except Exception as e:
            logger.exception(f"Feed sync failed: {e}")
            result.failed += 1
            result.errors.append(str(e))

        return result
