import os

from dotenv import load_dotenv


class Config:
    def __init__(self, env_file=None):
        """
        Initialize configuration by loading environment variables and setting default attributes.

        Loads environment variables from the provided .env file path when `env_file` is given; otherwise loads from the default environment. After loading, sets database connection parameters and podcast fetch/download options using environment values with sensible defaults.

        Parameters:
            env_file (str | None): Optional path to a .env file to load environment variables from. If omitted, the default environment or default .env discovery is used.
        """
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()

        # Podcast directory (where episode files are stored)
        self.PODCAST_DOWNLOAD_DIRECTORY = os.getenv(
            "PODCAST_DOWNLOAD_DIRECTORY", "/opt/podcasts"
        )

        # Database configuration
        self.DATABASE_URL = os.getenv(
            "DATABASE_URL", "sqlite:///./podkeeper.db"
        )
        self.DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "5"))
        self.DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "10"))
        self.DB_ECHO = os.getenv("DB_ECHO", "false").lower() == "true"

        # Feed fetch configuration
        self.PODCAST_FEED_TIMEOUT = int(os.getenv("PODCAST_FEED_TIMEOUT", "30"))

        # Podcast download configuration
        self.PODCAST_DOWNLOAD_RETRY_ATTEMPTS = int(
            os.getenv("PODCAST_DOWNLOAD_RETRY_ATTEMPTS", "3")
        )
        self.PODCAST_DOWNLOAD_TIMEOUT = int(
            os.getenv("PODCAST_DOWNLOAD_TIMEOUT", "300")
        )
        self.PODCAST_CHUNK_SIZE = int(
            os.getenv("PODCAST_CHUNK_SIZE", "8192")
        )
        # Empty means the built-in default user agent
        self.PODCAST_USER_AGENT = os.getenv("PODCAST_USER_AGENT", "") or None

        if self.PODCAST_FEED_TIMEOUT <= 0 or self.PODCAST_DOWNLOAD_TIMEOUT <= 0:
            raise ValueError(
                "PODCAST_FEED_TIMEOUT and PODCAST_DOWNLOAD_TIMEOUT must be positive"
            )
