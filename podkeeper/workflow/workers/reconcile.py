"""Reconcile worker: re-checks downloaded episodes against the disk."""

import logging

from podkeeper.db.repository import PodcastRepositoryInterface
from podkeeper.podcast.reconciler import DiskReconciler
from podkeeper.podcast.settings import SyncSettings
from podkeeper.workflow.workers.base import WorkerInterface, WorkerResult

logger = logging.getLogger(__name__)


class ReconcileWorker(WorkerInterface):
    def __init__(self, repository: PodcastRepositoryInterface):
        self.repository = repository
        self.reconciler = DiskReconciler(repository)

    @property
    def name(self) -> str:
        return "Reconcile"

    def get_pending_count(self) -> int:
        return len(self.repository.get_downloaded_episodes())

    def run(self, settings: SyncSettings) -> WorkerResult:
        result = WorkerResult()

        try:
            outcome = self.reconciler.reconcile(settings=settings)
            # Episodes whose state was corrected
            result.processed = outcome.missing
            result.skipped = outcome.checked - outcome.missing
        except Exception as e:
            logger.exception(f"Reconciliation failed: {e}")
            result.failed = 1
            result.errors.append(str(e))

        return result
