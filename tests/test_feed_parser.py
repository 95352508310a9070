"""Tests for the RSS feed fetcher and parser."""

from datetime import datetime
from unittest.mock import Mock, patch

import pytest
import requests

from conftest import SAMPLE_RSS_FEED
from podkeeper.exceptions import FetchError, ParseError
from podkeeper.podcast.feed_parser import FeedParser


@pytest.fixture
def parser():
    return FeedParser()


class TestFeedParser:
    """Tests for RSS feed parsing functionality."""

    def test_parse_channel(self, parser):
        podcast = parser.parse_string(SAMPLE_RSS_FEED, "https://example.com/feed.xml")

        assert podcast.feed_url == "https://example.com/feed.xml"
        assert podcast.title == "Test Podcast"
        assert podcast.author == "Test Author"
        assert podcast.summary == "A podcast for testing"
        assert podcast.image_url == "https://example.com/artwork.jpg"

    def test_entries_without_enclosure_skipped(self, parser):
        podcast = parser.parse_string(SAMPLE_RSS_FEED)

        assert [e.guid for e in podcast.episodes] == ["episode-2-guid", "episode-1-guid"]

    def test_episode_fields(self, parser):
        podcast = parser.parse_string(SAMPLE_RSS_FEED)
        ep2, ep1 = podcast.episodes

        assert ep2.title == "Episode 2: Deep Dive"
        assert ep2.enclosure_url == "https://example.com/ep2.m4a"
        assert ep2.summary == "A deeper look at the topic."
        assert ep2.duration_seconds == 45 * 60 + 30
        assert ep1.duration_seconds == 5400

    def test_publish_dates_normalized(self, parser):
        """Short-day named-zone and padded numeric-zone dates both parse."""
        podcast = parser.parse_string(SAMPLE_RSS_FEED)
        ep2, ep1 = podcast.episodes

        assert ep2.published_raw == "Mon, 8 Jan 2024 12:00:00 GMT"
        assert ep2.published_date == datetime(2024, 1, 8, 12, 0, 0)
        assert ep1.published_date == datetime(2024, 1, 1, 12, 0, 0)

    def test_episode_image_falls_back_to_channel(self, parser):
        podcast = parser.parse_string(SAMPLE_RSS_FEED)
        ep2, ep1 = podcast.episodes

        assert ep2.image_url == "https://example.com/ep2.jpg"
        assert ep1.image_url == "https://example.com/artwork.jpg"

    def test_guid_falls_back_to_enclosure_url(self, parser):
        feed = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>No GUIDs</title>
<item><title>Only audio</title>
<enclosure url="https://example.com/a.mp3" type="audio/mpeg"/></item>
</channel></rss>"""
        podcast = parser.parse_string(feed)

        assert podcast.episodes[0].guid == "https://example.com/a.mp3"

    def test_unparseable_date_kept_as_none(self, parser):
        feed = """<?xml version="1.0"?>
<rss version="2.0"><channel><title>Odd dates</title>
<item><title>Ep</title><guid>g1</guid><pubDate>sometime last week</pubDate>
<enclosure url="https://example.com/a.mp3" type="audio/mpeg"/></item>
</channel></rss>"""
        podcast = parser.parse_string(feed)

        assert podcast.episodes[0].published_date is None

    def test_invalid_document_raises_parse_error(self, parser):
        with pytest.raises(ParseError):
            parser.parse_string("this is not xml at all", "https://example.com/bad.xml")

    def test_parse_duration_formats(self, parser):
        assert parser._parse_duration("3600") == 3600
        assert parser._parse_duration("60:00") == 3600
        assert parser._parse_duration("1:00:00") == 3600
        assert parser._parse_duration("") is None
        assert parser._parse_duration("about an hour") is None

    def test_clean_html(self, parser):
        assert parser._clean_html("<p>Tom &amp; Jerry</p>\n\n<b>rock</b>") == "Tom & Jerry rock"
        assert parser._clean_html("<br/>") is None
        assert parser._clean_html(None) is None


class TestFeedFetch:
    """Tests for fetching feeds over HTTP."""

    def test_parse_url_fetches_and_parses(self, parser):
        response = Mock()
        response.content = SAMPLE_RSS_FEED.encode("utf-8")
        response.raise_for_status.return_value = None

        with patch.object(parser._session, "get", return_value=response) as mock_get:
            podcast = parser.parse_url("https://example.com/feed.xml")

        mock_get.assert_called_once_with("https://example.com/feed.xml", timeout=parser.timeout)
        assert podcast.title == "Test Podcast"
        assert len(podcast.episodes) == 2

    def test_http_error_raises_fetch_error_with_status(self, parser):
        error_response = Mock(status_code=404)
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=error_response)

        with patch.object(parser._session, "get", return_value=response):
            with pytest.raises(FetchError) as exc_info:
                parser.fetch("https://example.com/missing.xml")

        assert exc_info.value.status_code == 404
        assert exc_info.value.url == "https://example.com/missing.xml"

    def test_connection_error_raises_fetch_error(self, parser):
        with patch.object(
            parser._session, "get", side_effect=requests.exceptions.ConnectionError("refused")
        ):
            with pytest.raises(FetchError) as exc_info:
                parser.fetch("https://example.com/feed.xml")

        assert exc_info.value.status_code is None

    def test_custom_user_agent(self):
        parser = FeedParser(user_agent="MyAgent/1.0")
        assert parser._session.headers["User-Agent"] == "MyAgent/1.0"

    def test_from_config(self):
        config = Mock(
            PODCAST_USER_AGENT=None,
            PODCAST_FEED_TIMEOUT=12,
            PODCAST_DOWNLOAD_RETRY_ATTEMPTS=1,
        )

        parser = FeedParser.from_config(config)

        assert parser.timeout == 12
        assert parser.retry_attempts == 1
        assert parser.user_agent == FeedParser.USER_AGENT
