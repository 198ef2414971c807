"""Pytest configuration and shared fixtures.

This module provides:
- In-memory SQLite (aiosqlite) engine and sessions for repository/store tests
- A controllable clock and seeded random source for the engine
- CheckInSession fixtures backed by the in-memory store
- FastAPI test client for route tests
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CHECKIN_PROCESSING_DELAY_MS", "0")

import random
from collections.abc import AsyncGenerator, Generator
from datetime import timedelta

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from core.config import clear_settings_cache
from core.database import Base, create_session_maker
from core.wide_event import init_wide_event
from services.checkin_session import CheckInSession
from services.cooldown_service import CooldownPolicy
from services.streak_store import InMemoryStreakStore
from tests.factories import FakeClock

PRODUCTION_POLICY = CooldownPolicy(cooldown=timedelta(hours=24), reset=timedelta(hours=48))


@pytest.fixture(autouse=True)
def setup_wide_event():
    """Initialize wide_event context for all tests.

    Services use set_wide_event_fields(); in production the middleware
    initializes the context, in tests we do it here.
    """
    init_wide_event()
    yield


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None]:
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Engine capabilities
# =============================================================================


@pytest.fixture
def policy() -> CooldownPolicy:
    return PRODUCTION_POLICY


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng():
    """Seeded random source; reproducible mystery payouts."""
    return random.Random(1234).random


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory SQLite database per test.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_maker(test_engine)


@pytest_asyncio.fixture
async def db_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_maker() as session:
        yield session


# =============================================================================
# Session Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> InMemoryStreakStore:
    return InMemoryStreakStore()


@pytest_asyncio.fixture
async def checkin_session(
    memory_store: InMemoryStreakStore,
    policy: CooldownPolicy,
    clock: FakeClock,
    rng,
) -> AsyncGenerator[CheckInSession]:
    """Loaded session over an empty in-memory store. Timer cancelled on teardown."""
    session = CheckInSession(memory_store, policy, clock=clock, rng=rng)
    await session.load()
    yield session
    session.close()


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def app(
    test_engine: AsyncEngine,
    session_maker: async_sessionmaker[AsyncSession],
    checkin_session: CheckInSession,
) -> AsyncGenerator[FastAPI]:
    """FastAPI app with state wired by hand.

    ASGITransport does not run the lifespan, so the engine, session maker
    and check-in session are attached directly.
    """
    from main import app as fastapi_app

    fastapi_app.state.engine = test_engine
    fastapi_app.state.session_maker = session_maker
    fastapi_app.state.checkin_session = checkin_session
    fastapi_app.state.init_done = True
    fastapi_app.state.init_error = None

    yield fastapi_app

    fastapi_app.state.checkin_session = None


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for testing routes."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
