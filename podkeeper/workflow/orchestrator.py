"""Long-running refresh orchestrator.

Runs the feed refresh, download, reconciliation and maintenance stages
on independent timers until interrupted.
"""

import logging
import signal
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Dict, Optional

from podkeeper.config import Config
from podkeeper.db.repository import PodcastRepositoryInterface
from podkeeper.podcast.job_lock import JobLock
from podkeeper.podcast.settings import SyncSettings
from podkeeper.workflow.config import PipelineConfig
from podkeeper.workflow.workers.base import WorkerInterface, WorkerResult

logger = logging.getLogger(__name__)


@dataclass
class RefreshStats:
    """Statistics for an orchestrator run."""

    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    stopped_at: Optional[datetime] = None

    refresh_runs: int = 0
    reconcile_runs: int = 0
    maintenance_runs: int = 0
    podcasts_synced: int = 0
    episodes_downloaded: int = 0
    download_failures: int = 0
    download_runs_skipped: int = 0
    episodes_reconciled: int = 0

    @property
    def duration_seconds(self) -> float:
        """Duration of the run in seconds."""
        end = self.stopped_at or datetime.now(UTC)
        return (end - self.started_at).total_seconds()


class RefreshOrchestrator:
    """Timer-driven loop over the refresh-loop workers.

    Each refresh cycle syncs every feed and then runs the download stage.
    Reconciliation and maintenance run on their own, longer intervals.
    Every stage of a cycle shares one settings snapshot.

    Example:
        config = Config()
        orchestrator = RefreshOrchestrator(
            config=config,
            pipeline_config=PipelineConfig.from_env(),
            repository=create_repository_from_config(config),
        )

        # Run until interrupted
        orchestrator.run()
    """

    STAGE_ORDER = ["sync", "download", "reconcile", "maintenance"]

    def __init__(
        self,
        config: Config,
        pipeline_config: PipelineConfig,
        repository: PodcastRepositoryInterface,
    ):
        """Initialize the orchestrator.

        Args:
            config: Application configuration.
            pipeline_config: Loop timing configuration.
            repository: Database repository.
        """
        self.config = config
        self.pipeline_config = pipeline_config
        self.repository = repository

        self._running = False
        self._last_run: Dict[str, float] = {}
        self._stats = RefreshStats()
        self._workers: Dict[str, WorkerInterface] = {}

    def _get_worker(self, stage: str) -> Optional[WorkerInterface]:
        """Get or create the worker for a stage."""
        if stage in self._workers:
            return self._workers[stage]

        worker = None
        if stage == "sync":
            from podkeeper.workflow.workers.sync import SyncWorker

            worker = SyncWorker(config=self.config, repository=self.repository)
        elif stage == "download":
            from podkeeper.workflow.workers.download import DownloadWorker

            worker = DownloadWorker(config=self.config, repository=self.repository)
        elif stage == "reconcile":
            from podkeeper.workflow.workers.reconcile import ReconcileWorker

            worker = ReconcileWorker(repository=self.repository)
        elif stage == "maintenance":
            from podkeeper.workflow.workers.maintenance import MaintenanceWorker

            worker = MaintenanceWorker(config=self.config, repository=self.repository)

        if worker:
            self._workers[stage] = worker

        return worker

    def run_stage(self, stage: str, settings: Optional[SyncSettings] = None) -> WorkerResult:
        """Run a single stage once."""
        worker = self._get_worker(stage)
        if worker is None:
            raise ValueError(f"Unknown stage: {stage}")

        settings = settings or SyncSettings.load(self.repository)
        logger.info(f"Running stage: {stage}")

        result = worker.run(settings)
        worker.log_result(result)
        self._record(stage, result)
        return result

    def _record(self, stage: str, result: WorkerResult) -> None:
        if stage == "sync":
            self._stats.podcasts_synced += result.processed
        elif stage == "download":
            self._stats.episodes_downloaded += result.processed
            self._stats.download_failures += result.failed
            self._stats.download_runs_skipped += result.skipped
        elif stage == "reconcile":
            self._stats.reconcile_runs += 1
            self._stats.episodes_reconciled += result.processed
        elif stage == "maintenance":
            self._stats.maintenance_runs += 1

    def run_refresh_cycle(self, settings: Optional[SyncSettings] = None) -> Dict[str, WorkerResult]:
        """Sync every feed, then download whatever is queued."""
        settings = settings or SyncSettings.load(self.repository)
        results = {
            "sync": self.run_stage("sync", settings),
            "download": self.run_stage("download", settings),
        }
        self._stats.refresh_runs += 1
        return results

    def run_once(self) -> Dict[str, WorkerResult]:
        """Run every stage once, in order, with a single settings snapshot."""
        settings = SyncSettings.load(self.repository)
        return {stage: self.run_stage(stage, settings) for stage in self.STAGE_ORDER}

    def run(self) -> RefreshStats:
        """Run the loop until interrupted.

        Returns:
            RefreshStats with run statistics.
        """
        logger.info("Starting refresh orchestrator")
        self._running = True
        self._stats = RefreshStats()

        # Set up signal handlers for graceful shutdown
        original_sigint = signal.signal(signal.SIGINT, self._handle_signal)
        original_sigterm = signal.signal(signal.SIGTERM, self._handle_signal)

        try:
            self._startup()

            while self._running:
                self._iteration()
                if self._running:
                    time.sleep(self.pipeline_config.idle_wait_seconds)

        except Exception:
            logger.exception("Orchestrator error")
        finally:
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)

            self._shutdown()

        return self._stats

    def stop(self) -> None:
        """Signal the loop to stop after the current stage."""
        logger.info("Stopping orchestrator...")
        self._running = False

    def _handle_signal(self, signum, frame) -> None:
        """Handle interrupt signals gracefully."""
        sig_name = signal.Signals(signum).name
        logger.info(f"Received {sig_name}, initiating graceful shutdown...")
        self.stop()

    def _startup(self) -> None:
        # Locks left behind by a crashed process
        JobLock(self.repository).reclaim_stale()

    def _shutdown(self) -> None:
        self._stats.stopped_at = datetime.now(UTC)
        logger.info(
            f"Orchestrator stopped. Stats: "
            f"refreshes={self._stats.refresh_runs}, "
            f"downloaded={self._stats.episodes_downloaded}, "
            f"failed={self._stats.download_failures}, "
            f"duration={self._stats.duration_seconds:.1f}s"
        )

    def _is_due(self, key: str, interval: int, now: float) -> bool:
        last = self._last_run.get(key)
        return last is None or now - last >= interval

    def _iteration(self) -> None:
        """Run whichever stages are due."""
        now = time.monotonic()
        config = self.pipeline_config
        settings = None

        if self._is_due("refresh", config.refresh_interval_seconds, now):
            settings = SyncSettings.load(self.repository)
            self.run_refresh_cycle(settings)
            self._last_run["refresh"] = now

        if self._running and self._is_due("reconcile", config.reconcile_interval_seconds, now):
            settings = settings or SyncSettings.load(self.repository)
            self.run_stage("reconcile", settings)
            self._last_run["reconcile"] = now

        if self._running and self._is_due("maintenance", config.maintenance_interval_seconds, now):
            settings = settings or SyncSettings.load(self.repository)
            self.run_stage("maintenance", settings)
            self._last_run["maintenance"] = now

    def get_status(self) -> Dict[str, int]:
        """Pending item counts per stage."""
        status = {}
        for stage in self.STAGE_ORDER:
            worker = self._get_worker(stage)
            if worker:
                try:
                    status[stage] = worker.get_pending_count()
                except Exception:
                    logger.warning(f"Failed to get count for {stage}", exc_info=True)
                    status[stage] = -1
        return status
