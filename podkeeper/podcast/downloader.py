"""Episode downloader with bounded concurrency.

Downloads pending podcast episodes with support for:
- A fixed-size worker pool (never more than N downloads in flight)
- A database job lock so overlapping runs skip instead of racing
- Retry logic with exponential backoff for transient HTTP failures
- Episode image caching and file size backfill
"""

import logging
import os
import re
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set
from urllib.parse import unquote, urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..db.models import DownloadStatus, Podcast, PodcastItem, utcnow
from ..db.repository import PodcastRepositoryInterface
from ..exceptions import DownloadError
from .job_lock import DOWNLOAD_JOB_NAME, DOWNLOAD_JOB_TTL_SECONDS, JobLock
from .settings import SyncSettings

logger = logging.getLogger(__name__)


@dataclass
class DownloadResult:
    """Result of a download operation."""

    episode_id: str
    success: bool
    local_path: Optional[str] = None
    file_size: Optional[int] = None
    error: Optional[str] = None
    duration_seconds: Optional[float] = None


class EpisodeDownloader:
    """Downloads podcast episodes with configurable concurrency.

    Example:
        downloader = EpisodeDownloader(
            repository=repo,
            download_directory="/opt/podcasts",
        )
        results = downloader.download_pending()
    """

    DEFAULT_USER_AGENT = "podkeeper/0.1 (+https://github.com/podkeeper/podkeeper)"
    DEFAULT_CHUNK_SIZE = 8192
    DEFAULT_TIMEOUT = 300  # 5 minutes
    DEFAULT_EXTENSION = ".mp3"
    MAX_FILENAME_LENGTH = 200

    def __init__(
        self,
        repository: PodcastRepositoryInterface,
        download_directory: str,
        job_lock: Optional[JobLock] = None,
        retry_attempts: int = 3,
        timeout: int = DEFAULT_TIMEOUT,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        user_agent: Optional[str] = None,
    ):
        """Initialize the episode downloader.

        Args:
            repository: Database repository
            download_directory: Base directory for downloads
            job_lock: Lock manager guarding download runs; built from the repository if omitted
            retry_attempts: Number of retry attempts for failed requests
            timeout: Download timeout in seconds
            chunk_size: Chunk size for streaming downloads
            user_agent: Custom user agent string
        """
        self.repository = repository
        self.download_directory = download_directory
        self.job_lock = job_lock or JobLock(repository)
        self.retry_attempts = retry_attempts
        self.timeout = timeout
        self.chunk_size = chunk_size
        self.user_agent = user_agent or self.DEFAULT_USER_AGENT

        # Paths reserved by downloads still in flight
        self._claimed_paths: Set[str] = set()
        self._claim_lock = threading.Lock()

        os.makedirs(download_directory, exist_ok=True)

        self._session = self._create_session()

    @classmethod
    def from_config(cls, config, repository: PodcastRepositoryInterface) -> "EpisodeDownloader":
        """Create a downloader from a `Config`'s download settings."""
        return cls(
            repository=repository,
            download_directory=config.PODCAST_DOWNLOAD_DIRECTORY,
            retry_attempts=config.PODCAST_DOWNLOAD_RETRY_ATTEMPTS,
            timeout=config.PODCAST_DOWNLOAD_TIMEOUT,
            chunk_size=config.PODCAST_CHUNK_SIZE,
            user_agent=config.PODCAST_USER_AGENT,
        )

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic."""
        session = requests.Session()

        retry_strategy = Retry(
            total=self.retry_attempts,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "HEAD"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update({"User-Agent": self.user_agent})

        return session

    def _request_headers(self, settings: SyncSettings) -> Dict[str, str]:
        if settings.user_agent:
            return {"User-Agent": settings.user_agent}
        return {}

    # --- Batch download ---

    def download_pending(self, settings: Optional[SyncSettings] = None) -> Dict[str, Any]:
        """Download every episode with status NOT_DOWNLOADED.

        The run holds the download job lock until every episode has been
        attempted, renewing it as each download finishes. If another run
        holds it, nothing is downloaded.

        Args:
            settings: Settings snapshot; read from the database if omitted

        Returns:
            Dictionary with download statistics
        """
        settings = settings or SyncSettings.load(self.repository)

        if not self.job_lock.try_acquire(DOWNLOAD_JOB_NAME, DOWNLOAD_JOB_TTL_SECONDS):
            logger.info("Download run already in progress, skipping this cycle")
            return {
                "locked": True,
                "downloaded": 0,
                "failed": 0,
                "results": [],
            }

        try:
            episodes = self.repository.get_episodes_pending_download()

            if not episodes:
                logger.info("No episodes pending download")
                return {
                    "locked": False,
                    "downloaded": 0,
                    "failed": 0,
                    "results": [],
                }

            max_workers = settings.max_download_concurrency
            logger.info(f"Downloading {len(episodes)} episodes with {max_workers} concurrent downloads")

            results = []
            downloaded = 0
            failed = 0

            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                future_to_episode = {
                    executor.submit(self._download_and_renew, episode, settings): episode
                    for episode in episodes
                }

                for future in as_completed(future_to_episode):
                    result = future.result()
                    results.append(result)

                    if result.success:
                        downloaded += 1
                    else:
                        failed += 1

            logger.info(f"Download batch complete: {downloaded} succeeded, {failed} failed")

            return {
                "locked": False,
                "downloaded": downloaded,
                "failed": failed,
                "results": results,
            }
        finally:
            self.job_lock.release(DOWNLOAD_JOB_NAME)

    def _download_and_renew(self, episode: PodcastItem, settings: SyncSettings) -> DownloadResult:
        try:
            return self.download_episode(episode, settings)
        finally:
            # Each finished download buys the batch another TTL
            self.job_lock.renew(DOWNLOAD_JOB_NAME, DOWNLOAD_JOB_TTL_SECONDS)

    # --- Single episode ---

    def download_episode(
        self, episode: PodcastItem, settings: Optional[SyncSettings] = None
    ) -> DownloadResult:
        """Download a single episode and record the outcome.

        A failed download leaves the episode NOT_DOWNLOADED with the error
        recorded, so the next run retries it.

        Args:
            episode: Episode to download
            settings: Settings snapshot; read from the database if omitted

        Returns:
            DownloadResult with download status
        """
        settings = settings or SyncSettings.load(self.repository)
        start_time = utcnow()

        podcast = self.repository.get_podcast(episode.podcast_id)
        if not podcast:
            return DownloadResult(
                episode_id=episode.id,
                success=False,
                error=f"Podcast not found: {episode.podcast_id}",
            )

        output_path = self._claim_episode_path(episode, podcast, settings)
        logger.info(f"Downloading: {episode.title}")

        try:
            try:
                os.makedirs(os.path.dirname(output_path), exist_ok=True)
                file_size = self._download_file(
                    url=episode.enclosure_url,
                    output_path=output_path,
                    episode_id=episode.id,
                    headers=self._request_headers(settings),
                )
            except (requests.exceptions.RequestException, OSError) as e:
                logger.error(f"Download failed for {episode.title}: {e}")
                self.repository.mark_download_failed(episode.id, str(e))
                return DownloadResult(
                    episode_id=episode.id,
                    success=False,
                    error=str(e),
                )

            self.repository.mark_download_complete(
                episode_id=episode.id,
                local_path=output_path,
                file_size=file_size,
            )
        finally:
            with self._claim_lock:
                self._claimed_paths.discard(output_path)

        duration = (utcnow() - start_time).total_seconds()
        logger.info(
            f"Downloaded: {episode.title} "
            f"({file_size / 1024 / 1024:.1f} MB in {duration:.1f}s)"
        )

        if settings.download_episode_images and episode.image_url:
            try:
                image_path = self.download_episode_image(episode, podcast, settings)
                self.repository.update_episode(episode.id, local_image_path=image_path)
            except DownloadError as e:
                logger.warning(f"Image download failed for {episode.title}: {e}")

        return DownloadResult(
            episode_id=episode.id,
            success=True,
            local_path=output_path,
            file_size=file_size,
            duration_seconds=duration,
        )

    def _download_file(
        self,
        url: str,
        output_path: str,
        episode_id: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> int:
        """Stream a URL to a per-episode `.part` file, then move it into place.

        The partial file is removed if the transfer fails.

        Returns:
            Number of bytes written
        """
        partial_path = f"{output_path}.{episode_id}.part"
        downloaded = 0

        try:
            with self._session.get(
                url,
                stream=True,
                timeout=self.timeout,
                allow_redirects=True,
                headers=headers,
            ) as response:
                response.raise_for_status()

                with open(partial_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=self.chunk_size):
                        if chunk:
                            f.write(chunk)
                            downloaded += len(chunk)

            os.replace(partial_path, output_path)
        except BaseException:
            if os.path.exists(partial_path):
                try:
                    os.remove(partial_path)
                except OSError as e:
                    logger.warning(f"Could not remove partial file {partial_path}: {e}")
            raise

        return downloaded

    # --- Paths ---

    def podcast_directory(self, podcast: Podcast) -> str:
        return os.path.join(self.download_directory, self._sanitize_filename(podcast.title))

    def build_episode_path(
        self, episode: PodcastItem, podcast: Podcast, settings: SyncSettings
    ) -> str:
        """Local path for an episode's enclosure.

        `<download_dir>/<podcast title>/<prefix>-<episode title><ext>`, where
        the prefix is the episode's sequence number and/or publish date,
        depending on settings, and is omitted when both are disabled.
        """
        ext = self._extension_from_url(episode.enclosure_url)
        title = self._sanitize_filename(episode.title)

        prefix = self.filename_prefix(episode, settings)
        stem = f"{prefix}-{title}" if prefix else title

        if len(stem) + len(ext) > self.MAX_FILENAME_LENGTH:
            stem = stem[: self.MAX_FILENAME_LENGTH - len(ext)]

        return os.path.join(self.podcast_directory(podcast), stem + ext)

    def _claim_episode_path(
        self, episode: PodcastItem, podcast: Podcast, settings: SyncSettings
    ) -> str:
        """Reserve a download path no other episode records or is writing.

        Episodes sharing a title get `-2`, `-3`, ... appended to the name.
        """
        path = self.build_episode_path(episode, podcast, settings)
        stem, ext = os.path.splitext(path)

        with self._claim_lock:
            candidate = path
            n = 1
            while candidate in self._claimed_paths or self.repository.is_download_path_taken(
                candidate, exclude_episode_id=episode.id
            ):
                n += 1
                candidate = f"{stem}-{n}{ext}"
            self._claimed_paths.add(candidate)

        if candidate != path:
            logger.debug(f"Path {path} already in use, saving {episode.title} as {candidate}")
        return candidate

    def filename_prefix(self, episode: PodcastItem, settings: SyncSettings) -> str:
        parts = []
        if settings.append_episode_number_to_filename:
            number = self.repository.get_episode_number(episode.id)
            if number is not None:
                parts.append(str(number))
        if settings.append_date_to_filename and episode.published_date:
            parts.append(episode.published_date.strftime("%Y-%m-%d"))
        return "-".join(parts)

    def _extension_from_url(self, url: str, default: str = DEFAULT_EXTENSION) -> str:
        url_path = urlparse(url).path
        _, ext = os.path.splitext(unquote(os.path.basename(url_path)))
        # Anything longer is more likely part of a title than an extension
        if not ext or len(ext) > 6 or not re.fullmatch(r"\.[A-Za-z0-9]+", ext):
            return default
        return ext.lower()

    def _sanitize_filename(self, name: str) -> str:
        """Sanitize a string for use as a filename.

        Args:
            name: Original name

        Returns:
            Sanitized name safe for filesystem
        """
        # Remove or replace invalid characters
        safe = re.sub(r'[<>:"/\\|?*]', "", name or "")
        # Replace multiple spaces/underscores with single
        safe = re.sub(r"[\s_]+", "_", safe)
        # Remove leading/trailing whitespace and dots
        safe = safe.strip(" .")
        return safe or "episode"

    # --- Images ---

    def download_episode_image(
        self,
        episode: PodcastItem,
        podcast: Podcast,
        settings: Optional[SyncSettings] = None,
    ) -> str:
        """Download an episode's image into the podcast's `images` folder.

        Returns:
            Local path of the image

        Raises:
            DownloadError: If the image cannot be fetched or written
        """
        if not episode.image_url:
            raise DownloadError("Episode has no image", url="", episode_id=episode.id)

        ext = self._extension_from_url(episode.image_url, default=".jpg")
        image_path = os.path.join(self.podcast_directory(podcast), "images", f"{episode.id}{ext}")
        headers = self._request_headers(settings) if settings else None

        try:
            os.makedirs(os.path.dirname(image_path), exist_ok=True)
            self._download_file(episode.image_url, image_path, episode.id, headers=headers)
        except (requests.exceptions.RequestException, OSError) as e:
            raise DownloadError(str(e), url=episode.image_url, episode_id=episode.id) from e

        return image_path

    def download_missing_images(self, settings: Optional[SyncSettings] = None) -> int:
        """Cache images for every episode that has an image URL but no local copy.

        Returns:
            Number of images downloaded
        """
        settings = settings or SyncSettings.load(self.repository)
        if not settings.download_episode_images:
            logger.debug("Episode image downloads disabled")
            return 0

        downloaded = 0
        for episode in self.repository.get_episodes_missing_image():
            podcast = self.repository.get_podcast(episode.podcast_id)
            if not podcast:
                continue
            try:
                path = self.download_episode_image(episode, podcast, settings)
            except DownloadError as e:
                logger.warning(f"Image download failed for {episode.title}: {e}")
                continue
            self.repository.update_episode(episode.id, local_image_path=path)
            downloaded += 1

        logger.info(f"Downloaded {downloaded} episode images")
        return downloaded

    # --- File sizes ---

    def get_remote_file_size(self, url: str) -> Optional[int]:
        """Look up a URL's size with a HEAD request.

        Returns:
            The Content-Length, or None if the server does not report one
        """
        try:
            response = self._session.head(url, timeout=self.timeout, allow_redirects=True)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.debug(f"Size lookup failed for {url}: {e}")
            return None

        try:
            return int(response.headers.get("content-length", ""))
        except ValueError:
            return None

    def update_file_sizes(self) -> int:
        """Fill in missing file sizes.

        Downloaded episodes are measured on disk; others are sized with a HEAD request.

        Returns:
            Number of episodes updated
        """
        updated = 0
        for episode in self.repository.get_episodes_missing_size():
            size = None
            if (
                episode.download_status == DownloadStatus.DOWNLOADED
                and episode.download_path
                and os.path.exists(episode.download_path)
            ):
                size = os.path.getsize(episode.download_path)
            elif episode.enclosure_url:
                size = self.get_remote_file_size(episode.enclosure_url)

            if size:
                self.repository.update_episode(episode.id, file_size_bytes=size)
                updated += 1

        logger.info(f"Updated file size for {updated} episodes")
        return updated

    def close(self):
        """Close the downloader and release resources."""
        self._session.close()
