from __future__ import annotations

import logging
import sys
from logging.config import fileConfig
from pathlib import Path

from sqlalchemy import Connection, create_engine

# Ensure parent directory (api/) is in Python path for module imports
sys.path.insert(0, str(Path(__file__).parent.parent))

# Import models so they register with Base.metadata
import models  # noqa: F401
from alembic import context
from core.config import get_settings
from core.database import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata

logger = logging.getLogger("alembic")

# async driver -> sync driver used for migrations
_SYNC_DRIVERS = {
    "+asyncpg": "+psycopg2",
    "+aiosqlite": "",
}


def _get_sync_database_url() -> str:
    """Get a synchronous database URL for migrations.

    Alembic runs outside the event loop, so the async drivers of the app
    are swapped for their blocking counterparts.
    """
    url = config.get_main_option("sqlalchemy.url") or get_settings().database_url
    for async_driver, sync_driver in _SYNC_DRIVERS.items():
        if async_driver in url:
            url = url.replace(async_driver, sync_driver)
    return url


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    context.configure(
        url=_get_sync_database_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def _run_migrations(connection: Connection) -> None:
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most things in place
        render_as_batch=connection.dialect.name == "sqlite",
    )

    with context.begin_transaction():
        context.run_migrations()
    logger.info("Migrations applied on %s", connection.dialect.name)


def run_migrations_online() -> None:
    engine = create_engine(_get_sync_database_url())
    try:
        with engine.connect() as connection:
            _run_migrations(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
