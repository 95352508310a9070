"""Workers for each stage of the refresh loop."""

from podkeeper.workflow.workers.base import WorkerInterface, WorkerResult
from podkeeper.workflow.workers.download import DownloadWorker
from podkeeper.workflow.workers.maintenance import MaintenanceWorker
from podkeeper.workflow.workers.reconcile import ReconcileWorker
from podkeeper.workflow.workers.sync import SyncWorker

__all__ = [
    "WorkerInterface",
    "WorkerResult",
    "SyncWorker",
    "DownloadWorker",
    "ReconcileWorker",
    "MaintenanceWorker",
]
