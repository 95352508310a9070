"""Repository construction from a `Config` or a bare database URL."""

import logging
import os
from typing import Optional

from .repository import PodcastRepositoryInterface, SQLAlchemyPodcastRepository

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./podkeeper.db"


def _redact(database_url: str) -> str:
    # Drop "user:password@" so credentials never reach the log
    scheme, sep, rest = database_url.partition("://")
    if sep and "@" in rest:
        return f"{scheme}://...@{rest.rsplit('@', 1)[-1]}"
    return database_url


def create_repository(
    database_url: Optional[str] = None,
    create_tables: bool = False,
    **engine_options,
) -> PodcastRepositoryInterface:
    """
    Open a repository on `database_url`, or on `DATABASE_URL` / the local SQLite default.

    Parameters:
        database_url (Optional[str]): SQLAlchemy database URL.
        create_tables (bool): Create missing tables from the ORM metadata instead of
            relying on Alembic. Used by tests and first-run local setups.
        **engine_options: `pool_size`, `max_overflow` and `echo`, passed to the repository.
    """
    url = database_url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
    logger.info(f"Opening repository at {_redact(url)}")
    return SQLAlchemyPodcastRepository(
        database_url=url, create_tables=create_tables, **engine_options
    )


def create_repository_from_config(config, create_tables: bool = False) -> PodcastRepositoryInterface:
    """Open the repository described by a `Config`'s database settings."""
    return create_repository(
        config.DATABASE_URL,
        create_tables=create_tables,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        echo=config.DB_ECHO,
    )
