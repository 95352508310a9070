"""Reconciliation of recorded download state against the filesystem."""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from ..db.models import DownloadStatus
from ..db.repository import PodcastRepositoryInterface
from .settings import SyncSettings

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of a reconciliation pass."""

    checked: int = 0
    requeued: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    @property
    def missing(self) -> int:
        return len(self.requeued) + len(self.deleted)


def _has_content(path: Optional[str]) -> bool:
    """True if `path` names a non-empty file."""
    if not path:
        return False
    try:
        return os.path.getsize(path) > 0
    except OSError:
        return False


class DiskReconciler:
    """Corrects DOWNLOADED items whose file is no longer on disk.

    A missing or empty file sends the item back to NOT_DOWNLOADED so the next
    download run fetches it again, or to DELETED when the
    `dont_download_deleted_from_disk` setting is on. Items whose file is
    present are left untouched.
    """

    def __init__(self, repository: PodcastRepositoryInterface):
        self.repository = repository

    def reconcile(self, settings: Optional[SyncSettings] = None) -> ReconcileResult:
        settings = settings or SyncSettings.load(self.repository)
        target = (
            DownloadStatus.DELETED
            if settings.dont_download_deleted_from_disk
            else DownloadStatus.NOT_DOWNLOADED
        )

        result = ReconcileResult()
        for episode in self.repository.get_downloaded_episodes():
            result.checked += 1
            if _has_content(episode.download_path):
                continue

            logger.info(
                f"File missing or empty for '{episode.title}' ({episode.download_path}), "
                f"marking {target.value}"
            )
            self.repository.mark_not_downloaded(episode.id, target)
            if target == DownloadStatus.DELETED:
                result.deleted.append(episode.id)
            else:
                result.requeued.append(episode.id)

        logger.info(f"Reconciled {result.checked} downloaded episodes, {result.missing} missing")
        return result
