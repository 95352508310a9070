"""RSS feed fetcher and parser for podcast metadata and episodes.

Fetches feeds with a retrying requests session and parses them with the
feedparser library, keeping only the fields the sync pipeline consumes.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

import feedparser
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..exceptions import FetchError, ParseError
from .pubdate import parse_pub_date

logger = logging.getLogger(__name__)


@dataclass
class ParsedEpisode:
    """Parsed episode data from RSS feed."""

    # Core identifiers
    guid: str
    title: str
    enclosure_url: str

    # Optional metadata
    summary: Optional[str] = None
    image_url: Optional[str] = None
    duration_seconds: Optional[int] = None
    episode_type: Optional[str] = None

    # Raw pubDate text and its normalized UTC value
    published_raw: Optional[str] = None
    published_date: Optional[datetime] = None


@dataclass
class ParsedPodcast:
    """Parsed podcast data from RSS feed."""

    feed_url: str
    title: str

    author: Optional[str] = None
    summary: Optional[str] = None
    image_url: Optional[str] = None

    # Episodes in feed order
    episodes: List[ParsedEpisode] = field(default_factory=list)


class FeedParser:
    """Fetcher and parser for podcast RSS feeds.

    Example:
        parser = FeedParser(timeout=30)
        podcast = parser.parse_url("https://example.com/feed.xml")
        print(f"Podcast: {podcast.title}")
        for episode in podcast.episodes:
            print(f"  - {episode.title}")
    """

    # User agent for feed requests
    USER_AGENT = "podkeeper/0.1 (+https://github.com/podkeeper/podkeeper)"
    DEFAULT_TIMEOUT = 30

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: int = DEFAULT_TIMEOUT,
        retry_attempts: int = 3,
    ):
        """Initialize the feed parser.

        Args:
            user_agent: Custom user agent string for requests
            timeout: Per-request timeout in seconds
            retry_attempts: Retries for connection errors and 429/5xx responses
        """
        self.user_agent = user_agent or self.USER_AGENT
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self._session = self._create_session()

    @classmethod
    def from_config(cls, config) -> "FeedParser":
        return cls(
            user_agent=config.PODCAST_USER_AGENT,
            timeout=config.PODCAST_FEED_TIMEOUT,
            retry_attempts=config.PODCAST_DOWNLOAD_RETRY_ATTEMPTS,
        )

    def _create_session(self) -> requests.Session:
        session = requests.Session()

        retry_strategy = Retry(
            total=self.retry_attempts,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET"],
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({"User-Agent": self.user_agent})
        return session

    def fetch(self, feed_url: str) -> bytes:
        """Fetch the raw feed document.

        Raises:
            FetchError: On transport failures or non-2xx responses
        """
        try:
            response = self._session.get(feed_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FetchError(f"HTTP {status} fetching feed: {feed_url}", feed_url, status) from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f"Failed to fetch feed {feed_url}: {e}", feed_url) from e

        return response.content

    def parse_url(self, feed_url: str) -> ParsedPodcast:
        """Fetch and parse a podcast feed.

        Args:
            feed_url: URL of the RSS feed

        Returns:
            ParsedPodcast with podcast and episode data

        Raises:
            FetchError: If the feed cannot be retrieved
            ParseError: If the document is not a parseable feed
        """
        logger.info(f"Fetching feed: {feed_url}")
        content = self.fetch(feed_url)
        return self.parse_string(content, feed_url)

    def parse_string(self, content, feed_url: str = "") -> ParsedPodcast:
        """Parse a podcast feed from already fetched content.

        Args:
            content: RSS document as str or bytes
            feed_url: Original URL of the feed (for reference)

        Raises:
            ParseError: If the document is not a parseable feed
        """
        feed = feedparser.parse(content)

        if feed.bozo and not feed.feed:
            raise ParseError(
                f"Failed to parse feed {feed_url}: {feed.get('bozo_exception')}", feed_url
            )
        if not feed.feed and not feed.entries:
            raise ParseError(f"Feed is empty: {feed_url}", feed_url)
        if feed.bozo:
            logger.warning(f"Feed parsing warning for {feed_url}: {feed.get('bozo_exception')}")

        return self._parse_feed(feed, feed_url)

    def _parse_feed(self, feed: feedparser.FeedParserDict, feed_url: str) -> ParsedPodcast:
        f = feed.feed

        podcast = ParsedPodcast(
            feed_url=feed_url,
            title=f.get("title") or "Unknown Podcast",
            author=f.get("author") or f.get("itunes_author"),
            summary=self._clean_html(f.get("summary") or f.get("subtitle")),
            image_url=self._extract_channel_image(f),
        )

        for entry in feed.entries:
            episode = self._parse_episode(entry, podcast.image_url)
            if episode:
                podcast.episodes.append(episode)

        logger.info(f"Parsed podcast '{podcast.title}' with {len(podcast.episodes)} episodes")
        return podcast

    def _parse_episode(
        self, entry: feedparser.FeedParserDict, channel_image: Optional[str]
    ) -> Optional[ParsedEpisode]:
        """Parse a feed entry into a ParsedEpisode.

        Returns:
            ParsedEpisode or None if the entry has no enclosure
        """
        enclosure = self._extract_enclosure(entry)
        if not enclosure:
            logger.debug(f"Skipping entry without enclosure: {entry.get('title')}")
            return None

        enclosure_url, _ = enclosure

        # GUID falls back to the enclosure URL
        guid = entry.get("id") or entry.get("guid") or enclosure_url

        content = entry.get("content") or [{}]
        summary = self._clean_html(
            entry.get("summary") or entry.get("description") or content[0].get("value")
        )

        published_raw = entry.get("published")

        return ParsedEpisode(
            guid=guid,
            title=entry.get("title") or entry.get("itunes_title") or "Untitled Episode",
            enclosure_url=enclosure_url,
            summary=summary,
            image_url=self._extract_entry_image(entry) or channel_image,
            duration_seconds=self._parse_duration(
                entry.get("itunes_duration") or entry.get("duration")
            ),
            episode_type=entry.get("itunes_episodetype"),
            published_raw=published_raw,
            published_date=parse_pub_date(published_raw),
        )

    def _extract_enclosure(self, entry: feedparser.FeedParserDict) -> Optional[Tuple[str, str]]:
        """Return (url, mime type) of the entry's enclosure, if any."""
        for enclosure in entry.get("enclosures", []):
            url = enclosure.get("href") or enclosure.get("url")
            if url:
                return (url, enclosure.get("type", ""))

        for link in entry.get("links", []):
            if link.get("rel") == "enclosure" and link.get("href"):
                return (link["href"], link.get("type", ""))

        return None

    def _extract_channel_image(self, feed: feedparser.FeedParserDict) -> Optional[str]:
        """Channel `<image><url>` first, then `itunes:image`."""
        image = feed.get("image")
        if image:
            if isinstance(image, dict):
                url = image.get("href") or image.get("url")
                if url:
                    return url
            else:
                return image

        itunes_image = feed.get("itunes_image")
        if itunes_image:
            if isinstance(itunes_image, dict):
                return itunes_image.get("href")
            return itunes_image

        return None

    def _extract_entry_image(self, entry: feedparser.FeedParserDict) -> Optional[str]:
        image = entry.get("image")
        if isinstance(image, dict):
            return image.get("href") or image.get("url")
        return image or None

    def _parse_duration(self, value) -> Optional[int]:
        """Parse duration string into seconds.

        Handles various formats:
        - Seconds: "3600"
        - MM:SS: "60:00"
        - HH:MM:SS: "1:00:00"
        """
        if not value:
            return None

        value_str = str(value).strip()

        try:
            return int(value_str)
        except ValueError:
            pass

        parts = value_str.split(":")
        try:
            if len(parts) == 2:
                return int(parts[0]) * 60 + int(parts[1])
            elif len(parts) == 3:
                return int(parts[0]) * 3600 + int(parts[1]) * 60 + int(parts[2])
        except (ValueError, TypeError):
            pass

        return None

    def _clean_html(self, text: Optional[str]) -> Optional[str]:
        """Remove HTML tags from text.

        Returns:
            Cleaned text or None
        """
        if not text:
            return None

        # Remove HTML tags
        clean = re.sub(r"<[^>]+>", "", text)
        # Decode HTML entities
        clean = clean.replace("&amp;", "&")
        clean = clean.replace("&lt;", "<")
        clean = clean.replace("&gt;", ">")
        clean = clean.replace("&quot;", '"')
        clean = clean.replace("&#39;", "'")
        clean = clean.replace("&nbsp;", " ")
        # Normalize whitespace
        clean = re.sub(r"\s+", " ", clean).strip()

        return clean if clean else None

    def close(self):
        """Close the HTTP session."""
        self._session.close()
