"""Key-value persistence for StreakState.

The engine sees only ``load() -> StreakState | None`` and ``save(state)``.
``None`` means first run. Every read or write failure surfaces as
PersistenceFailureError; stores never retry.
"""

from datetime import UTC
from typing import Any, Protocol

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.logger import get_logger
from models import StreakStateRecord
from repositories.streak_state_repository import StreakStateRepository
from schemas import StreakState
from services.checkin_errors import PersistenceFailureError

logger = get_logger(__name__)


class StreakStore(Protocol):
    async def load(self) -> StreakState | None: ...

    async def save(self, state: StreakState) -> None: ...


def _parse(payload: dict[str, Any]) -> StreakState:
    try:
        return StreakState.model_validate(payload)
    except ValidationError as e:
        raise PersistenceFailureError(f"Stored streak state is invalid: {e}") from e


class InMemoryStreakStore:
    """Holds JSON payloads in a dict, exactly as a browser key-value store would.

    Payloads may be seeded directly, including legacy camelCase ones.
    """

    def __init__(
        self,
        user_key: str = "local",
        payloads: dict[str, dict[str, Any]] | None = None,
    ):
        self.user_key = user_key
        self.payloads: dict[str, dict[str, Any]] = payloads if payloads is not None else {}
        self.save_count = 0

    async def load(self) -> StreakState | None:
        payload = self.payloads.get(self.user_key)
        if payload is None:
            return None
        return _parse(payload)

    async def save(self, state: StreakState) -> None:
        self.payloads[self.user_key] = state.model_dump(mode="json")
        self.save_count += 1


def _record_to_payload(record: StreakStateRecord) -> dict[str, Any]:
    return {
        "current_streak": record.current_streak,
        "best_streak": record.best_streak,
        "connected_days": record.connected_days,
        "total_points": record.total_points,
        "last_check_in_at": record.last_check_in_at,
        "unlocked_badges": record.unlocked_badges or [],
        "unlocked_ranks": record.unlocked_ranks or [],
        "check_in_history": record.check_in_history or [],
    }


def _state_to_values(state: StreakState) -> dict[str, Any]:
    values = state.model_dump(mode="json")
    # The DateTime column wants a real datetime, normalized to UTC
    values["last_check_in_at"] = (
        state.last_check_in_at.astimezone(UTC)
        if state.last_check_in_at is not None
        else None
    )
    return values


class DatabaseStreakStore:
    """One ``streak_states`` row per user key, via SQLAlchemy async."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession], user_key: str):
        self._session_maker = session_maker
        self.user_key = user_key

    async def load(self) -> StreakState | None:
        try:
            async with self._session_maker() as session:
                record = await StreakStateRepository(session).get_by_key(self.user_key)
                payload = _record_to_payload(record) if record is not None else None
        except SQLAlchemyError as e:
            logger.error("streak_store.load.failed", user_key=self.user_key, error=str(e))
            raise PersistenceFailureError(f"Could not load streak state: {e}") from e

        if payload is None:
            return None
        return _parse(payload)

    async def save(self, state: StreakState) -> None:
        values = _state_to_values(state)
        try:
            async with self._session_maker() as session:
                async with session.begin():
                    await StreakStateRepository(session).upsert(self.user_key, values)
        except SQLAlchemyError as e:
            logger.error("streak_store.save.failed", user_key=self.user_key, error=str(e))
            raise PersistenceFailureError(f"Could not save streak state: {e}") from e
