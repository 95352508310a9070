"""Base classes for workflow workers.

Every stage of the refresh loop (sync, download, reconcile, maintenance)
is a worker that runs against one settings snapshot and reports counts.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from podkeeper.podcast.settings import SyncSettings

logger = logging.getLogger(__name__)


@dataclass
class WorkerResult:
    """Result of one worker run.

    Attributes:
        processed: Items handled successfully (podcasts synced, episodes downloaded, ...).
        failed: Items that failed.
        skipped: Items or whole runs skipped, e.g. because the job lock was held.
        errors: Error messages for failed items.
    """

    processed: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.processed + self.failed + self.skipped

    def __add__(self, other: "WorkerResult") -> "WorkerResult":
        return WorkerResult(
            processed=self.processed + other.processed,
            failed=self.failed + other.failed,
            skipped=self.skipped + other.skipped,
            errors=self.errors + other.errors,
        )


class WorkerInterface(ABC):
    """Abstract base class for refresh-loop workers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this worker."""
        pass

    @abstractmethod
    def get_pending_count(self) -> int:
        """Number of items this worker would act on if run now."""
        pass

    @abstractmethod
    def run(self, settings: SyncSettings) -> WorkerResult:
        """Run one pass of this stage.

        Args:
            settings: Settings snapshot shared by every stage of the cycle.
        """
        pass

    def log_result(self, result: WorkerResult) -> None:
        if result.total == 0:
            logger.info(f"[{self.name}] Nothing to do")
        else:
            logger.info(
                f"[{self.name}] Processed: {result.processed}, "
                f"Failed: {result.failed}, Skipped: {result.skipped}"
            )

        for error in result.errors:
            logger.error(f"[{self.name}] {error}")
