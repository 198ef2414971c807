"""Database engine, session, and schema management.

Supported backends:
- Local: SQLite file via aiosqlite (default)
- Server: PostgreSQL via asyncpg
"""

from __future__ import annotations

import asyncio

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


def create_engine(database_url: str | None = None) -> AsyncEngine:
    settings = get_settings()
    url = database_url or settings.database_url

    engine_kwargs: dict = {"echo": settings.db_echo}
    if url.startswith("postgresql"):
        engine_kwargs.update(
            pool_size=5,
            max_overflow=5,
            pool_recycle=300,
        )

    return create_async_engine(url, **engine_kwargs)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


async def init_db(engine: AsyncEngine) -> None:
    """Verify database is reachable. Schema managed via migrations."""
    logger.info("db.connectivity.verifying")

    async with asyncio.timeout(30):
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.rollback()
    logger.info("db.connectivity.verified")


async def create_schema(engine: AsyncEngine) -> None:
    """Create all tables from model metadata.

    Used for local SQLite databases and tests; deployed databases use
    Alembic migrations instead.
    """
    import models  # noqa: F401  (registers tables on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("db.schema.created")


async def dispose_engine(engine: AsyncEngine) -> None:
    await engine.dispose()
    logger.info("db.engine.disposed")


async def check_db_connection(engine: AsyncEngine) -> bool:
    """Return True when a trivial query succeeds within the timeout."""
    try:
        async with asyncio.timeout(5):
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                await conn.rollback()
        return True
    except Exception:
        logger.warning("db.health_check.failed", exc_info=True)
        return False
