"""Database module for podcast data persistence.

Provides:
- SQLAlchemy ORM models (Podcast, PodcastItem, JobLock, Setting)
- Repository interface and implementation
- Factory functions for creating repositories
"""

from .factory import create_repository, create_repository_from_config
from .models import Base, DownloadStatus, JobLock, Podcast, PodcastItem, Setting
from .repository import PodcastRepositoryInterface, SQLAlchemyPodcastRepository

__all__ = [
    "Base",
    "DownloadStatus",
    "JobLock",
    "Podcast",
    "PodcastItem",
    "Setting",
    "PodcastRepositoryInterface",
    "SQLAlchemyPodcastRepository",
    "create_repository",
    "create_repository_from_config",
]
