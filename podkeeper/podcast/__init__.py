"""Podcast feed sync and download orchestration.

Provides functionality for:
- RSS feed fetching and parsing
- Diffing feeds against recorded episodes
- Locked, bounded-concurrency episode downloads
- Reconciling recorded downloads against the disk
"""

from .downloader import DownloadResult, EpisodeDownloader
from .episode_diff import EpisodeDiff, EpisodeDiffEngine, initial_status
from .episode_service import EpisodeService
from .feed_parser import FeedParser, ParsedEpisode, ParsedPodcast
from .feed_sync import FeedSyncService
from .job_lock import DOWNLOAD_JOB_NAME, DOWNLOAD_JOB_TTL_SECONDS, JobLock
from .pubdate import parse_pub_date
from .reconciler import DiskReconciler, ReconcileResult
from .settings import SyncSettings

__all__ = [
    "DOWNLOAD_JOB_NAME",
    "DOWNLOAD_JOB_TTL_SECONDS",
    "DiskReconciler",
    "DownloadResult",
    "EpisodeDiff",
    "EpisodeDiffEngine",
    "EpisodeDownloader",
    "EpisodeService",
    "FeedParser",
    "FeedSyncService",
    "JobLock",
    "ParsedEpisode",
    "ParsedPodcast",
    "ReconcileResult",
    "SyncSettings",
    "initial_status",
    "parse_pub_date",
]
