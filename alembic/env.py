"""Alembic environment for podkeeper schema migrations."""

import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# Make the podkeeper package importable when run from a source checkout
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from podkeeper.db.factory import DEFAULT_DATABASE_URL
from podkeeper.db.models import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# ORM metadata, used by autogenerate
target_metadata = Base.metadata


def get_url() -> str:
    """
    Resolve the database URL: ALEMBIC_DATABASE_URL, then DATABASE_URL, then
    `sqlalchemy.url` from alembic.ini, then the application default.
    """
    return (
        os.getenv("ALEMBIC_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
        or DEFAULT_DATABASE_URL
    )


def _is_sqlite(url: str) -> bool:
    # SQLite cannot ALTER constraints in place; batch mode rebuilds the table
    return url.startswith("sqlite")


def run_migrations_offline() -> None:
    """Emit migration SQL for the resolved URL without connecting."""
    url = get_url()
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations against a live connection."""
    url = get_url()
    configuration = config.get_section(config.config_ini_section) or {}
    configuration["sqlalchemy.url"] = url

    connectable = engine_from_config(
        configuration,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=_is_sqlite(url),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
