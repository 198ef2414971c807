"""Streak state repository for database operations."""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import StreakStateRecord
from repositories.utils import log_slow_query

# Columns written on every save; the primary key is excluded
_STATE_COLUMNS = (
    "current_streak",
    "best_streak",
    "connected_days",
    "total_points",
    "last_check_in_at",
    "unlocked_badges",
    "unlocked_ranks",
    "check_in_history",
)


class StreakStateRepository:
    """Repository for StreakStateRecord database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @log_slow_query("get_streak_state")
    async def get_by_key(self, user_key: str) -> StreakStateRecord | None:
        """Get the stored streak state for a user key."""
        result = await self.db.execute(
            select(StreakStateRecord).where(StreakStateRecord.user_key == user_key)
        )
        return result.scalar_one_or_none()

    @log_slow_query("upsert_streak_state")
    async def upsert(self, user_key: str, values: dict[str, Any]) -> StreakStateRecord:
        """Insert or replace the state row for a user key.

        Uses INSERT ... ON CONFLICT so concurrent first saves cannot collide.
        ``values`` must contain every state column.
        """
        row = {column: values[column] for column in _STATE_COLUMNS}
        update_values = {**row, "updated_at": datetime.now(UTC)}

        bind = self.db.get_bind()
        dialect = bind.dialect.name if bind else ""

        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as pg_insert

            stmt = (
                pg_insert(StreakStateRecord)
                .values(user_key=user_key, **row)
                .on_conflict_do_update(index_elements=["user_key"], set_=update_values)
                .returning(StreakStateRecord)
            )
            result = await self.db.execute(stmt)
            return result.scalar_one()

        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as sqlite_insert

            stmt = (
                sqlite_insert(StreakStateRecord)
                .values(user_key=user_key, **row)
                .on_conflict_do_update(index_elements=["user_key"], set_=update_values)
            )
            await self.db.execute(stmt)
            # Bypass the identity map so a previously loaded row is refreshed
            result = await self.db.execute(
                select(StreakStateRecord)
                .where(StreakStateRecord.user_key == user_key)
                .execution_options(populate_existing=True)
            )
            return result.scalar_one()

        else:
            record = await self.get_by_key(user_key)
            if record is None:
                record = StreakStateRecord(user_key=user_key, **row)
                self.db.add(record)
            else:
                for column, value in row.items():
                    setattr(record, column, value)
            await self.db.flush()
            return record
