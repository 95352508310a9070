"""Diffing of fetched feed episodes against recorded podcast items.

Decides which episodes are new for a podcast and which download status
each new episode starts in.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Sequence

from ..db.models import DownloadStatus, Podcast, PodcastItem
from ..db.repository import PodcastRepositoryInterface
from .feed_parser import ParsedEpisode
from .settings import SyncSettings

logger = logging.getLogger(__name__)


@dataclass
class NewEpisode:
    """An episode not yet recorded for its podcast."""

    episode: ParsedEpisode
    index: int  # position in the full feed
    status: DownloadStatus


@dataclass
class EpisodeDiff:
    """Result of comparing a feed against recorded items."""

    new_episodes: List[NewEpisode] = field(default_factory=list)
    existing_count: int = 0
    # Latest publish date among every episode in the feed, new or not
    latest_published: Optional[datetime] = None


def initial_status(
    podcast: Podcast, index: int, settings: SyncSettings, is_new: bool
) -> DownloadStatus:
    """Download status for a newly seen episode.

    Rules are checked top to bottom and the first match wins:

    1. Paused podcast: DELETED
    2. New subscription with download-on-add disabled: DELETED
    3. Auto-download disabled: DELETED
    4. New subscription and feed index >= initial download count: DELETED
    5. Otherwise: NOT_DOWNLOADED
    """
    if podcast.is_paused:
        return DownloadStatus.DELETED
    if is_new and not settings.download_on_add:
        return DownloadStatus.DELETED
    if not settings.auto_download:
        return DownloadStatus.DELETED
    if is_new and index >= settings.initial_download_count:
        return DownloadStatus.DELETED
    return DownloadStatus.NOT_DOWNLOADED


class EpisodeDiffEngine:
    """Computes and persists new episodes for a podcast.

    Example:
        engine = EpisodeDiffEngine(repository)
        created = engine.apply(podcast, parsed.episodes, settings, is_new=True)
    """

    def __init__(self, repository: PodcastRepositoryInterface):
        self.repository = repository

    def diff(
        self,
        podcast: Podcast,
        episodes: Sequence[ParsedEpisode],
        settings: SyncSettings,
        is_new: bool,
    ) -> EpisodeDiff:
        """Find episodes whose GUID is not yet recorded for the podcast.

        Existing GUIDs are fetched in one query. A GUID repeated inside the
        feed is only considered at its first position.

        Args:
            podcast: Podcast the feed belongs to
            episodes: Parsed episodes in feed order
            settings: Settings snapshot for this run
            is_new: Whether the podcast had never been refreshed before this run

        Returns:
            EpisodeDiff with the new episodes and their initial status
        """
        result = EpisodeDiff()
        existing = self.repository.get_existing_guids(
            podcast.id, {episode.guid for episode in episodes}
        )
        seen = set()

        for index, episode in enumerate(episodes):
            published = episode.published_date
            if published and (
                result.latest_published is None or published > result.latest_published
            ):
                result.latest_published = published

            if episode.guid in existing:
                result.existing_count += 1
                continue
            if episode.guid in seen:
                logger.debug(f"Duplicate GUID in feed for {podcast.title}: {episode.guid}")
                continue
            seen.add(episode.guid)

            result.new_episodes.append(
                NewEpisode(
                    episode=episode,
                    index=index,
                    status=initial_status(podcast, index, settings, is_new),
                )
            )

        return result

    def apply(
        self,
        podcast: Podcast,
        episodes: Sequence[ParsedEpisode],
        settings: SyncSettings,
        is_new: bool,
    ) -> List[PodcastItem]:
        """Persist new episodes and advance the podcast's last episode date.

        Returns:
            Items created by this call. Items a concurrent refresh inserted
            first are skipped.
        """
        result = self.diff(podcast, episodes, settings, is_new)
        created = []

        for new in result.new_episodes:
            episode = new.episode
            item = self.repository.create_episode_if_absent(
                podcast_id=podcast.id,
                guid=episode.guid,
                title=episode.title,
                enclosure_url=episode.enclosure_url,
                summary=episode.summary,
                published_date=episode.published_date,
                duration_seconds=episode.duration_seconds,
                episode_type=episode.episode_type,
                image_url=episode.image_url,
                download_status=new.status,
            )
            if item:
                created.append(item)

        if result.latest_published:
            self.repository.advance_last_episode(podcast.id, result.latest_published)

        queued = sum(1 for item in created if item.download_status == DownloadStatus.NOT_DOWNLOADED)
        logger.info(
            f"{podcast.title}: {len(created)} new episodes ({queued} queued), "
            f"{result.existing_count} already known"
        )
        return created
