"""Refresh loop for podcast feeds.

This package runs the stages of the refresh loop on timers:
sync → download, with reconciliation and maintenance on their own intervals.
"""

from podkeeper.workflow.config import PipelineConfig
from podkeeper.workflow.orchestrator import RefreshOrchestrator, RefreshStats
from podkeeper.workflow.workers.base import WorkerInterface, WorkerResult

__all__ = [
    "PipelineConfig",
    "RefreshOrchestrator",
    "RefreshStats",
    "WorkerInterface",
    "WorkerResult",
]
