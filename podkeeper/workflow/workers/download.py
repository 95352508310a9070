"""Download worker for episode enclosures.

Runs the locked, bounded-concurrency download of every queued episode.
"""

import logging
from typing import Optional

from podkeeper.config import Config
from podkeeper.db.models import DownloadStatus
from podkeeper.db.repository import PodcastRepositoryInterface
from podkeeper.podcast.downloader import EpisodeDownloader
from podkeeper.podcast.settings import SyncSettings
from podkeeper.workflow.workers.base import WorkerInterface, WorkerResult

logger = logging.getLogger(__name__)


class DownloadWorker(WorkerInterface):
    """Worker that downloads every episode with status NOT_DOWNLOADED.

    Concurrency comes from the `max_download_concurrency` setting.
    """

    def __init__(
        self,
        config: Config,
        repository: PodcastRepositoryInterface,
        downloader: Optional[EpisodeDownloader] = None,
    ):
        """Initialize the download worker.

        Args:
            config: Application configuration.
            repository: Database repository for episode operations.
            downloader: Downloader to use; built from `config` on first use if omitted.
        """
        self.config = config
        self.repository = repository
        self._downloader = downloader

    @property
    def name(self) -> str:
        return "Download"

    @property
    def downloader(self) -> EpisodeDownloader:
        """Lazily initialize the episode downloader."""
        if self._downloader is None:
            self._downloader = EpisodeDownloader.from_config(self.config, self.repository)
        return self._downloader

    def get_pending_count(self) -> int:
        return len(
            self.repository.list_episodes(download_status=DownloadStatus.NOT_DOWNLOADED)
        )

    def run(self, settings: SyncSettings) -> WorkerResult:
        result = WorkerResult()

        try:
            download_result = self.downloader.download_pending(settings=settings)

            if download_result.get("locked"):
                # Another run holds the download lock
                result.skipped = 1
                return result

            result.processed = download_result.get("downloaded", 0)
            result.failed = download_result.get("failed", 0)

            for dl_result in download_result.get("results", []):
                if not dl_result.success and dl_result.error:
                    result.errors.append(
                        f"Episode {dl_result.episode_id}: {dl_result.error}"
                    )

        except Exception as e:
            logger.exception(f"Download run failed: {e}")
            result.failed += 1
            result.errors.append(str(e))

        return result
