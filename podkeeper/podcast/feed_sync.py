"""Feed synchronization service for podcast updates.

Subscribes to feeds and refreshes them, recording new episodes with the
download status the current settings call for.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy.exc import IntegrityError

from ..db.models import DownloadStatus, Podcast
from ..db.repository import PodcastRepositoryInterface
from ..exceptions import FetchError, ParseError, PodcastAlreadyExistsError
from .episode_diff import EpisodeDiffEngine
from .feed_parser import FeedParser, ParsedPodcast
from .settings import SyncSettings

logger = logging.getLogger(__name__)

# Marks a podcast as refreshed at least once, even if no publish date parsed
LAST_EPISODE_FLOOR = datetime(1970, 1, 1)


class FeedSyncService:
    """Service for synchronizing podcast feeds with the database.

    Example:
        sync_service = FeedSyncService(repository)
        result = sync_service.sync_podcast(podcast_id)
        print(f"New episodes: {result['new_episodes']}")
    """

    def __init__(
        self,
        repository: PodcastRepositoryInterface,
        feed_parser: Optional[FeedParser] = None,
        max_fetch_workers: int = 8,
    ):
        """
        Create a FeedSyncService that synchronizes podcast feeds with the given repository.

        Parameters:
            repository (PodcastRepositoryInterface): Persistence for podcasts and items.
            feed_parser (Optional[FeedParser]): Fetcher/parser to use; a default one is built if omitted.
            max_fetch_workers (int): Concurrent feed fetches during bulk subscribe.
        """
        self.repository = repository
        self.feed_parser = feed_parser or FeedParser()
        self.diff_engine = EpisodeDiffEngine(repository)
        self.max_fetch_workers = max_fetch_workers

    # --- Refresh ---

    def sync_podcast(
        self,
        podcast_id: str,
        settings: Optional[SyncSettings] = None,
        parsed: Optional[ParsedPodcast] = None,
    ) -> Dict[str, Any]:
        """
        Refresh a single podcast: update channel metadata and record new episodes.

        Parameters:
            podcast_id (str): Identifier of the podcast to synchronize.
            settings (Optional[SyncSettings]): Settings snapshot; read from the database if omitted.
            parsed (Optional[ParsedPodcast]): Already fetched feed to use instead of fetching again.

        Returns:
            result (dict): Synchronization outcome containing:
                - podcast_id (str): The podcast identifier.
                - new_episodes (int): Number of new episodes recorded.
                - queued (int): How many of those are queued for download.
                - updated (bool): `True` if the feed was fetched and applied.
                - error (str|None): Error message if the feed could not be fetched or parsed.
        """
        result = {
            "podcast_id": podcast_id,
            "new_episodes": 0,
            "queued": 0,
            "updated": False,
            "error": None,
        }

        podcast = self.repository.get_podcast(podcast_id)
        if not podcast:
            result["error"] = f"Podcast not found: {podcast_id}"
            return result

        settings = settings or SyncSettings.load(self.repository)
        is_new = podcast.last_episode is None

        logger.info(f"Syncing podcast: {podcast.title}")

        try:
            if parsed is None:
                parsed = self.feed_parser.parse_url(podcast.feed_url)
        except (FetchError, ParseError) as e:
            logger.error(f"Failed to sync podcast {podcast.title}: {e}")
            result["error"] = str(e)
            return result

        self._update_podcast_metadata(podcast, parsed)

        if is_new:
            self.repository.update_podcast(podcast_id, last_episode=LAST_EPISODE_FLOOR)

        created = self.diff_engine.apply(podcast, parsed.episodes, settings, is_new)

        result["updated"] = True
        result["new_episodes"] = len(created)
        result["queued"] = sum(
            1 for item in created if item.download_status == DownloadStatus.NOT_DOWNLOADED
        )

        logger.info(f"Sync complete for '{podcast.title}': {len(created)} new episodes")
        return result

    def sync_all_podcasts(self, settings: Optional[SyncSettings] = None) -> Dict[str, Any]:
        """
        Refresh every podcast, isolating failures per podcast.

        The settings snapshot is read once and shared by every podcast in the run.

        Returns:
            overall_result (dict): Aggregated sync results with keys:
                - synced (int): Number of podcasts successfully synced.
                - failed (int): Number of podcasts that failed to sync.
                - new_episodes (int): Total number of new episodes recorded.
                - results (list): Per-podcast result dictionaries returned by `sync_podcast`.
        """
        settings = settings or SyncSettings.load(self.repository)
        podcasts = self.repository.list_podcasts()

        overall_result = {
            "synced": 0,
            "failed": 0,
            "new_episodes": 0,
            "results": [],
        }

        for podcast in podcasts:
            result = self.sync_podcast(podcast.id, settings=settings)
            overall_result["results"].append(result)

            if result["error"]:
                overall_result["failed"] += 1
            else:
                overall_result["synced"] += 1
                overall_result["new_episodes"] += result["new_episodes"]

        logger.info(
            f"Sync complete: {overall_result['synced']} synced, "
            f"{overall_result['failed']} failed, "
            f"{overall_result['new_episodes']} new episodes"
        )

        return overall_result

    # --- Subscribe ---

    def add_podcast_from_url(self, feed_url: str) -> Podcast:
        """
        Subscribe to a feed, storing its channel metadata without recording episodes.

        Raises:
            PodcastAlreadyExistsError: If the feed URL is already subscribed.
            FetchError: If the feed cannot be retrieved.
            ParseError: If the feed cannot be parsed.
        """
        podcast, _ = self._add_podcast(feed_url)
        return podcast

    def _add_podcast(self, feed_url: str):
        existing = self.repository.get_podcast_by_feed_url(feed_url)
        if existing:
            raise PodcastAlreadyExistsError(feed_url, existing.id)

        parsed = self.feed_parser.parse_url(feed_url)

        try:
            podcast = self.repository.create_podcast(
                feed_url=feed_url,
                title=parsed.title,
                summary=parsed.summary,
                author=parsed.author,
                image_url=parsed.image_url,
            )
        except IntegrityError as e:
            # Subscribed concurrently between the check and the insert
            raise PodcastAlreadyExistsError(feed_url) from e

        logger.info(f"Added podcast '{podcast.title}' from {feed_url}")
        return podcast, parsed

    def subscribe(self, feed_url: str, settings: Optional[SyncSettings] = None) -> Dict[str, Any]:
        """
        Subscribe to a feed and immediately refresh it, reusing the fetched document.

        Returns:
            dict: `sync_podcast` result plus the podcast `title`.

        Raises:
            PodcastAlreadyExistsError: If the feed URL is already subscribed.
            FetchError: If the feed cannot be retrieved.
            ParseError: If the feed cannot be parsed.
        """
        podcast, parsed = self._add_podcast(feed_url)
        result = self.sync_podcast(podcast.id, settings=settings, parsed=parsed)
        result["title"] = podcast.title
        return result

    def add_podcasts_from_urls(
        self, urls: Iterable[str], settings: Optional[SyncSettings] = None
    ) -> Dict[str, Any]:
        """
        Subscribe to many feeds at once, then refresh everything once.

        Feeds are fetched concurrently. Every fetch finishes before the refresh
        starts, and one failing feed does not affect the others.

        Returns:
            dict: Keys `added`, `already_exists`, `failed`, `results` (one entry per URL)
                and `sync` (the `sync_all_podcasts` result, or None if nothing was added).
        """
        unique_urls = list(dict.fromkeys(url.strip() for url in urls if url and url.strip()))

        summary: Dict[str, Any] = {
            "added": 0,
            "already_exists": 0,
            "failed": 0,
            "results": [],
            "sync": None,
        }
        if not unique_urls:
            return summary

        with ThreadPoolExecutor(max_workers=min(self.max_fetch_workers, len(unique_urls))) as executor:
            future_to_url = {
                executor.submit(self.add_podcast_from_url, url): url for url in unique_urls
            }

            for future in as_completed(future_to_url):
                url = future_to_url[future]
                entry = {"feed_url": url, "podcast_id": None, "error": None}
                try:
                    podcast = future.result()
                    entry["podcast_id"] = podcast.id
                    summary["added"] += 1
                except PodcastAlreadyExistsError as e:
                    entry["podcast_id"] = e.podcast_id
                    entry["error"] = str(e)
                    summary["already_exists"] += 1
                except (FetchError, ParseError) as e:
                    logger.error(f"Failed to add podcast from {url}: {e}")
                    entry["error"] = str(e)
                    summary["failed"] += 1
                summary["results"].append(entry)

        logger.info(
            f"Bulk subscribe: {summary['added']} added, "
            f"{summary['already_exists']} already subscribed, {summary['failed']} failed"
        )

        if summary["added"]:
            summary["sync"] = self.sync_all_podcasts(settings=settings)

        return summary

    def _update_podcast_metadata(self, podcast: Podcast, parsed: ParsedPodcast) -> None:
        """
        Apply channel fields from the parsed feed that differ from the stored values.
        """
        updates = {}

        if parsed.title and parsed.title != podcast.title:
            updates["title"] = parsed.title
        if parsed.summary and parsed.summary != podcast.summary:
            updates["summary"] = parsed.summary
        if parsed.author and parsed.author != podcast.author:
            updates["author"] = parsed.author
        if parsed.image_url and parsed.image_url != podcast.image_url:
            updates["image_url"] = parsed.image_url

        if updates:
            self.repository.update_podcast(podcast.id, **updates)
            logger.debug(f"Updated podcast metadata: {updates.keys()}")
