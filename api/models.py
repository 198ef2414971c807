"""SQLAlchemy models for check-in streak persistence."""

from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from core.database import Base


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class StreakStateRecord(TimestampMixin, Base):
    """One persisted StreakState per user key.

    Badge, rank and history collections are small and always read together,
    so they are stored as JSON arrays on the row.
    """

    __tablename__ = "streak_states"

    user_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Nullable: rows imported from the legacy client may predate best_streak
    best_streak: Mapped[int | None] = mapped_column(Integer, nullable=True)
    connected_days: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_check_in_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    unlocked_badges: Mapped[list[str]] = mapped_column(JSON, default=list)
    unlocked_ranks: Mapped[list[str]] = mapped_column(JSON, default=list)
    # ISO dates, chronological
    check_in_history: Mapped[list[str]] = mapped_column(JSON, default=list)
