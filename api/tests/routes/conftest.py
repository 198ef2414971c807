"""Route test configuration.

Rate limiting is switched off so handlers can be hit repeatedly, and
``seed_state`` puts a stored streak behind the running session.
"""

from collections.abc import Awaitable, Callable
from unittest.mock import patch

import pytest

from schemas import StreakState
from services.checkin_session import CheckInSession
from services.streak_store import InMemoryStreakStore


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    with patch("core.ratelimit.limiter.enabled", False):
        yield


@pytest.fixture
def seed_state(
    memory_store: InMemoryStreakStore, checkin_session: CheckInSession
) -> Callable[[StreakState], Awaitable[None]]:
    """Store a state and reload the session from it."""

    async def _seed(state: StreakState) -> None:
        await memory_store.save(state)
        await checkin_session.load()

    return _seed
