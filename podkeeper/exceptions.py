"""Exception types raised by podkeeper.

Per-podcast and per-item failures are raised as these types so callers can
isolate them from sibling work; persistence errors from SQLAlchemy are left
to propagate unchanged.
"""

from typing import Optional


class PodkeeperError(Exception):
    """Base class for application-specific errors."""


class FetchError(PodkeeperError):
    """Raised when a feed cannot be retrieved over the network.

    Attributes:
        url: The URL that failed.
        status_code: HTTP status code, when the server answered at all.
    """

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(PodkeeperError):
    """Raised when a fetched feed document is not parseable XML.

    Attributes:
        url: The feed URL the document came from.
    """

    def __init__(self, message: str, url: str):
        super().__init__(message)
        self.url = url


class PodcastAlreadyExistsError(PodkeeperError):
    """Raised when subscribing to a feed URL that is already subscribed.

    Attributes:
        url: The feed URL.
        podcast_id: ID of the existing podcast.
    """

    def __init__(self, url: str, podcast_id: Optional[str] = None):
        super().__init__(f"Podcast with this url already exists: {url}")
        self.url = url
        self.podcast_id = podcast_id


class DownloadError(PodkeeperError):
    """Raised when an enclosure or image download fails.

    Attributes:
        url: The URL being downloaded.
        episode_id: The podcast item the download belongs to.
    """

    def __init__(self, message: str, url: str, episode_id: Optional[str] = None):
        super().__init__(message)
        self.url = url
        self.episode_id = episode_id


class NotFoundError(PodkeeperError):
    """Raised when an explicit operation names an unknown podcast or episode."""
