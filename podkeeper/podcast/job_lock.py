"""Named, expiring advisory locks for scheduled jobs.

Lock state lives in the database, so it survives process restarts: a holder
that crashes simply lets its lock expire, after which any process may take it.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator

from ..db.models import utcnow
from ..db.repository import PodcastRepositoryInterface

logger = logging.getLogger(__name__)

DOWNLOAD_JOB_NAME = "download_missing_episodes"
DOWNLOAD_JOB_TTL_SECONDS = 120


class JobLock:
    """Acquire and release named job locks through the repository.

    Example:
        lock = JobLock(repository)
        with lock.hold("download_missing_episodes", 120) as acquired:
            if acquired:
                run_downloads()
    """

    def __init__(
        self,
        repository: PodcastRepositoryInterface,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the lock manager.

        Args:
            repository: Repository storing the lock rows
            clock: Returns the current naive UTC time; overridable for tests
        """
        self.repository = repository
        self.clock = clock

    def try_acquire(self, name: str, ttl_seconds: int) -> bool:
        """Take the lock if it is free or expired.

        Returns:
            True if the lock is now held by the caller. False means another
            holder is active; callers skip their cycle.
        """
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        acquired = self.repository.acquire_lock(name, ttl_seconds, now=self.clock())
        if acquired:
            logger.debug(f"Acquired job lock '{name}' for {ttl_seconds}s")
        else:
            logger.info(f"Job lock '{name}' is held by another run")
        return acquired

    def renew(self, name: str, ttl_seconds: int) -> bool:
        """Extend a lock this run holds by another `ttl_seconds` from now.

        Long runs call this as they make progress; a holder that stops
        renewing still loses the lock after one TTL.
        """
        renewed = self.repository.renew_lock(name, ttl_seconds, now=self.clock())
        if not renewed:
            logger.warning(f"Job lock '{name}' was not held when renewing")
        return renewed

    def release(self, name: str) -> None:
        self.repository.release_lock(name)
        logger.debug(f"Released job lock '{name}'")

    def is_locked(self, name: str) -> bool:
        return self.repository.is_lock_held(name, now=self.clock())

    def reclaim_stale(self) -> int:
        """Clear every lock whose holder let it expire.

        Returns:
            Number of locks reclaimed
        """
        count = self.repository.reclaim_stale_locks(now=self.clock())
        if count:
            logger.info(f"Reclaimed {count} stale job lock(s)")
        return count

    @contextmanager
    def hold(self, name: str, ttl_seconds: int) -> Iterator[bool]:
        """Context manager yielding whether the lock was acquired.

        The lock is released on exit only if this call acquired it.
        """
        acquired = self.try_acquire(name, ttl_seconds)
        try:
            yield acquired
        finally:
            if acquired:
                self.release(name)
