"""
Pytest configuration and shared fixtures for podkeeper tests.

Environment variables that change Config defaults are cleared so tests
behave the same regardless of the machine's environment.
"""

import os
from datetime import datetime, timedelta

import pytest

from podkeeper.db.factory import create_repository
from podkeeper.podcast.feed_parser import ParsedEpisode, ParsedPodcast

for _name in (
    "DATABASE_URL",
    "PODCAST_DOWNLOAD_DIRECTORY",
    "PODCAST_FEED_TIMEOUT",
    "PODCAST_DOWNLOAD_TIMEOUT",
    "PODCAST_USER_AGENT",
):
    os.environ.pop(_name, None)


# Sample RSS feed for testing
SAMPLE_RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"
     xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd">
  <channel>
    <title>Test Podcast</title>
    <description>A podcast for testing</description>
    <link>https://example.com</link>
    <itunes:author>Test Author</itunes:author>
    <itunes:image href="https://example.com/artwork.jpg"/>

    <item>
      <title>Episode 2: Deep Dive</title>
      <description><![CDATA[<p>A deeper look at the topic.</p>]]></description>
      <guid>episode-2-guid</guid>
      <pubDate>Mon, 8 Jan 2024 12:00:00 GMT</pubDate>
      <itunes:duration>45:30</itunes:duration>
      <itunes:episodeType>full</itunes:episodeType>
      <itunes:image href="https://example.com/ep2.jpg"/>
      <enclosure url="https://example.com/ep2.m4a" length="27000000" type="audio/x-m4a"/>
    </item>

    <item>
      <title>Episode 1: Introduction</title>
      <description>The first episode of our podcast.</description>
      <guid>episode-1-guid</guid>
      <pubDate>Mon, 01 Jan 2024 12:00:00 +0000</pubDate>
      <itunes:duration>01:30:00</itunes:duration>
      <enclosure url="https://example.com/ep1.mp3" length="54000000" type="audio/mpeg"/>
    </item>

    <item>
      <title>Announcement without audio</title>
      <description>No enclosure here.</description>
      <guid>announcement-guid</guid>
      <pubDate>Sun, 31 Dec 2023 12:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>"""


class FakeClock:
    """Settable clock returning naive UTC datetimes."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def repository(tmp_path):
    """
    Provide a repository backed by a temporary SQLite file.

    Tables are created from the ORM metadata; the engine is disposed on teardown.
    """
    db_path = tmp_path / "test.db"
    repo = create_repository(f"sqlite:///{db_path}", create_tables=True)
    yield repo
    repo.close()


@pytest.fixture
def sample_podcast(repository):
    return repository.create_podcast(
        feed_url="https://example.com/feed.xml",
        title="Test Podcast",
        summary="A test podcast",
        author="Test Author",
    )


def make_episodes(count, start=datetime(2024, 1, 1, 12, 0, 0), prefix="ep"):
    """
    Build `count` parsed episodes, newest first as feeds list them.

    Episode `i` (0-based, in feed order) is published `count - 1 - i` days after `start`.
    """
    episodes = []
    for i in range(count):
        published = start + timedelta(days=count - 1 - i)
        episodes.append(
            ParsedEpisode(
                guid=f"{prefix}-{count - i}",
                title=f"Episode {count - i}",
                enclosure_url=f"https://example.com/{prefix}-{count - i}.mp3",
                published_raw=published.strftime("%a, %d %b %Y %H:%M:%S +0000"),
                published_date=published,
            )
        )
    return episodes


def make_parsed_podcast(feed_url, episodes, title="Test Podcast"):
    return ParsedPodcast(
        feed_url=feed_url,
        title=title,
        author="Test Author",
        summary="A podcast for testing",
        episodes=list(episodes),
    )
