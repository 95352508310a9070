"""Tests for the feed sync service."""

from datetime import datetime
from unittest.mock import Mock

import pytest

from conftest import make_episodes, make_parsed_podcast
from podkeeper.db.models import DownloadStatus
from podkeeper.exceptions import FetchError, ParseError, PodcastAlreadyExistsError
from podkeeper.podcast.feed_parser import ParsedEpisode
from podkeeper.podcast.feed_sync import LAST_EPISODE_FLOOR, FeedSyncService
from podkeeper.podcast.settings import SyncSettings

FEED_URL = "https://example.com/feed.xml"


@pytest.fixture
def feed_parser():
    return Mock()


@pytest.fixture
def sync_service(repository, feed_parser):
    return FeedSyncService(repository=repository, feed_parser=feed_parser)


def _queued(repository, podcast_id):
    return [
        item.guid
        for item in repository.list_episodes(
            podcast_id=podcast_id, download_status=DownloadStatus.NOT_DOWNLOADED
        )
    ]


class TestSyncPodcast:
    """Tests for refreshing a single podcast."""

    def test_sync_podcast_not_found(self, sync_service):
        result = sync_service.sync_podcast("missing")

        assert result["error"] == "Podcast not found: missing"
        assert result["updated"] is False

    def test_first_refresh_queues_initial_count(self, sync_service, repository, feed_parser, sample_podcast):
        episodes = make_episodes(10)
        feed_parser.parse_url.return_value = make_parsed_podcast(FEED_URL, episodes)

        result = sync_service.sync_podcast(sample_podcast.id, SyncSettings(initial_download_count=3))

        assert result["updated"] is True
        assert result["new_episodes"] == 10
        assert result["queued"] == 3
        assert sorted(_queued(repository, sample_podcast.id)) == sorted(e.guid for e in episodes[:3])

        podcast = repository.get_podcast(sample_podcast.id)
        assert podcast.last_episode == max(e.published_date for e in episodes)

    def test_second_refresh_adds_nothing(self, sync_service, repository, feed_parser, sample_podcast):
        feed_parser.parse_url.return_value = make_parsed_podcast(FEED_URL, make_episodes(4))

        sync_service.sync_podcast(sample_podcast.id, SyncSettings())
        result = sync_service.sync_podcast(sample_podcast.id, SyncSettings())

        assert result["new_episodes"] == 0
        assert len(repository.list_episodes(podcast_id=sample_podcast.id)) == 4

    def test_new_episode_on_existing_podcast_is_queued(self, sync_service, repository, feed_parser, sample_podcast):
        settings = SyncSettings(initial_download_count=0)
        feed_parser.parse_url.return_value = make_parsed_podcast(FEED_URL, make_episodes(2))
        sync_service.sync_podcast(sample_podcast.id, settings)
        assert _queued(repository, sample_podcast.id) == []

        feed_parser.parse_url.return_value = make_parsed_podcast(FEED_URL, make_episodes(3))
        result = sync_service.sync_podcast(sample_podcast.id, settings)

        assert result["queued"] == 1
        assert _queued(repository, sample_podcast.id) == ["ep-3"]

    def test_paused_podcast_records_deleted(self, sync_service, repository, feed_parser, sample_podcast):
        repository.update_podcast(sample_podcast.id, is_paused=True)
        feed_parser.parse_url.return_value = make_parsed_podcast(FEED_URL, make_episodes(3))

        result = sync_service.sync_podcast(sample_podcast.id, SyncSettings())

        assert result["new_episodes"] == 3
        assert result["queued"] == 0

    def test_download_on_add_disabled(self, sync_service, repository, feed_parser, sample_podcast):
        feed_parser.parse_url.return_value = make_parsed_podcast(FEED_URL, make_episodes(3))

        result = sync_service.sync_podcast(sample_podcast.id, SyncSettings(download_on_add=False))

        assert result["queued"] == 0

    def test_fetch_error_leaves_podcast_untouched(self, sync_service, repository, feed_parser, sample_podcast):
        feed_parser.parse_url.side_effect = FetchError("HTTP 503", FEED_URL, 503)

        result = sync_service.sync_podcast(sample_podcast.id, SyncSettings())

        assert result["error"] == "HTTP 503"
        assert result["updated"] is False
        assert repository.get_podcast(sample_podcast.id).last_episode is None
        assert repository.list_episodes(podcast_id=sample_podcast.id) == []

    def test_undated_feed_sets_floor(self, sync_service, repository, feed_parser, sample_podcast):
        undated = ParsedEpisode(guid="g1", title="Ep", enclosure_url="https://example.com/1.mp3")
        feed_parser.parse_url.return_value = make_parsed_podcast(FEED_URL, [undated])

        sync_service.sync_podcast(sample_podcast.id, SyncSettings())

        assert repository.get_podcast(sample_podcast.id).last_episode == LAST_EPISODE_FLOOR

    def test_channel_metadata_updated(self, sync_service, repository, feed_parser, sample_podcast):
        parsed = make_parsed_podcast(FEED_URL, [], title="Renamed Show")
        parsed.image_url = "https://example.com/new.jpg"
        feed_parser.parse_url.return_value = parsed

        sync_service.sync_podcast(sample_podcast.id, SyncSettings())

        podcast = repository.get_podcast(sample_podcast.id)
        assert podcast.title == "Renamed Show"
        assert podcast.image_url == "https://example.com/new.jpg"

    def test_settings_read_once_when_omitted(self, sync_service, repository, feed_parser, sample_podcast):
        repository.update_setting(initial_download_count=1)
        feed_parser.parse_url.return_value = make_parsed_podcast(FEED_URL, make_episodes(3))

        result = sync_service.sync_podcast(sample_podcast.id)

        assert result["queued"] == 1


class TestSyncAllPodcasts:
    """Tests for refreshing every podcast."""

    def test_sync_all_podcasts_empty(self, sync_service):
        result = sync_service.sync_all_podcasts(SyncSettings())

        assert result == {"synced": 0, "failed": 0, "new_episodes": 0, "results": []}

    def test_failure_isolated_per_podcast(self, sync_service, repository, feed_parser):
        good = repository.create_podcast(feed_url="https://example.com/good.xml", title="Good")
        bad = repository.create_podcast(feed_url="https://example.com/bad.xml", title="Bad")

        def parse(url):
            if url == bad.feed_url:
                raise ParseError("not a feed", url)
            return make_parsed_podcast(url, make_episodes(2))

        feed_parser.parse_url.side_effect = parse

        result = sync_service.sync_all_podcasts(SyncSettings())

        assert result["synced"] == 1
        assert result["failed"] == 1
        assert result["new_episodes"] == 2
        assert len(repository.list_episodes(podcast_id=good.id)) == 2


class TestSubscribe:
    """Tests for subscribing to feeds."""

    def test_subscribe_records_and_queues(self, sync_service, repository, feed_parser):
        feed_parser.parse_url.return_value = make_parsed_podcast(FEED_URL, make_episodes(8))

        result = sync_service.subscribe(FEED_URL, SyncSettings(initial_download_count=2))

        assert result["title"] == "Test Podcast"
        assert result["new_episodes"] == 8
        assert result["queued"] == 2
        # The fetched document is reused for the first refresh
        feed_parser.parse_url.assert_called_once_with(FEED_URL)

    def test_subscribe_duplicate_rejected(self, sync_service, repository, feed_parser, sample_podcast):
        with pytest.raises(PodcastAlreadyExistsError) as exc_info:
            sync_service.subscribe(sample_podcast.feed_url)

        assert exc_info.value.podcast_id == sample_podcast.id
        assert str(exc_info.value) == f"Podcast with this url already exists: {sample_podcast.feed_url}"
        feed_parser.parse_url.assert_not_called()

    def test_subscribe_fetch_error_creates_nothing(self, sync_service, repository, feed_parser):
        feed_parser.parse_url.side_effect = FetchError("unreachable", FEED_URL)

        with pytest.raises(FetchError):
            sync_service.subscribe(FEED_URL)

        assert repository.list_podcasts() == []

    def test_add_podcast_from_url_records_no_episodes(self, sync_service, repository, feed_parser):
        feed_parser.parse_url.return_value = make_parsed_podcast(FEED_URL, make_episodes(3))

        podcast = sync_service.add_podcast_from_url(FEED_URL)

        assert podcast.feed_url == FEED_URL
        assert podcast.last_episode is None
        assert repository.list_episodes(podcast_id=podcast.id) == []


class TestBulkSubscribe:
    """Tests for subscribing to many feeds at once."""

    def test_bulk_subscribe(self, sync_service, repository, feed_parser, sample_podcast):
        urls = [
            "https://example.com/a.xml",
            "https://example.com/broken.xml",
            sample_podcast.feed_url,
            "https://example.com/a.xml",
        ]

        def parse(url):
            if "broken" in url:
                raise FetchError("HTTP 404", url, 404)
            return make_parsed_podcast(url, make_episodes(2, prefix=url), title=url)

        feed_parser.parse_url.side_effect = parse

        result = sync_service.add_podcasts_from_urls(urls, SyncSettings())

        assert result["added"] == 1
        assert result["already_exists"] == 1
        assert result["failed"] == 1
        assert len(result["results"]) == 3

        # Every subscribed podcast is refreshed once all fetches are done
        assert result["sync"]["synced"] == 2
        added = repository.get_podcast_by_feed_url("https://example.com/a.xml")
        assert len(repository.list_episodes(podcast_id=added.id)) == 2

    def test_bulk_subscribe_nothing_added_skips_refresh(self, sync_service, feed_parser, sample_podcast):
        result = sync_service.add_podcasts_from_urls([sample_podcast.feed_url, "  "])

        assert result["added"] == 0
        assert result["sync"] is None
        feed_parser.parse_url.assert_not_called()

    def test_bulk_subscribe_empty(self, sync_service):
        result = sync_service.add_podcasts_from_urls([])

        assert result["added"] == 0
        assert result["results"] == []
