"""Maintenance worker for housekeeping tasks.

Reclaims job locks abandoned by crashed runs, fills in missing file sizes
and caches episode images when enabled.
"""

import logging
from typing import Optional

from podkeeper.config import Config
from podkeeper.db.repository import PodcastRepositoryInterface
from podkeeper.podcast.downloader import EpisodeDownloader
from podkeeper.podcast.job_lock import JobLock
from podkeeper.podcast.settings import SyncSettings
from podkeeper.workflow.workers.base import WorkerInterface, WorkerResult

logger = logging.getLogger(__name__)


class MaintenanceWorker(WorkerInterface):
    """Worker for periodic housekeeping."""

    def __init__(
        self,
        config: Config,
        repository: PodcastRepositoryInterface,
        downloader: Optional[EpisodeDownloader] = None,
        job_lock: Optional[JobLock] = None,
    ):
        self.config = config
        self.repository = repository
        self._downloader = downloader
        self.job_lock = job_lock or JobLock(repository)

    @property
    def name(self) -> str:
        return "Maintenance"

    @property
    def downloader(self) -> EpisodeDownloader:
        if self._downloader is None:
            self._downloader = EpisodeDownloader.from_config(self.config, self.repository)
        return self._downloader

    def get_pending_count(self) -> int:
        return len(self.repository.get_episodes_missing_size())

    def run(self, settings: SyncSettings) -> WorkerResult:
        result = WorkerResult()

        tasks = [
            ("reclaim stale locks", self.job_lock.reclaim_stale),
            ("update file sizes", self.downloader.update_file_sizes),
            ("download missing images", lambda: self.downloader.download_missing_images(settings)),
        ]
        for label, task in tasks:
            try:
                result.processed += task()
            except Exception as e:
                logger.exception(f"Maintenance task '{label}' failed: {e}")
                result.failed += 1
                result.errors.append(f"{label}: {e}")

        return result
