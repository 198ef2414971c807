"""Pydantic schemas for the check-in engine and its API.

StreakState doubles as the persisted aggregate and the API representation;
the remaining models are transient engine outputs and response bodies.
"""

from datetime import UTC, date, datetime, timedelta
from enum import StrEnum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

BadgeId = str
RankKey = str

# Most recent distinct check-in dates kept for calendar reconstruction
HISTORY_LIMIT = 60


class RewardSpecial(StrEnum):
    MYSTERY = "mystery"


class RewardTableEntry(BaseModel):
    """Reward configured for one 1-based streak day."""

    model_config = ConfigDict(frozen=True)

    day: int = Field(ge=1)
    points: int = Field(gt=0)
    worth: float = Field(ge=0)
    badge: BadgeId | None = None
    special: RewardSpecial | None = None


class RankTier(BaseModel):
    """Permanent rank reached by cumulative check-ins (connected days)."""

    model_config = ConfigDict(frozen=True)

    key: RankKey
    symbol: str
    name: str
    threshold: int = Field(ge=1)
    boost_fraction: float


class BadgeMilestone(BaseModel):
    """Badge unlocked on the streak day equal to ``days``."""

    model_config = ConfigDict(frozen=True)

    badge: BadgeId
    days: int = Field(ge=1)


class GateStatus(StrEnum):
    ALLOWED = "allowed"
    COOLING = "cooling"
    STREAK_BROKEN = "streak_broken"


class GateResult(BaseModel):
    """Outcome of evaluating the cooldown gate at one instant."""

    model_config = ConfigDict(frozen=True)

    status: GateStatus
    remaining: timedelta | None = None

    @property
    def is_open(self) -> bool:
        """A broken streak still allows the next check-in."""
        return self.status != GateStatus.COOLING

    @property
    def retry_after_seconds(self) -> int:
        if self.remaining is None:
            return 0
        # Round up so clients never retry a fraction of a second too early
        seconds = self.remaining.total_seconds()
        return int(seconds) + (0 if seconds == int(seconds) else 1)


class StreakState(BaseModel):
    """Persisted check-in aggregate, one per user.

    Loading accepts both the snake_case payload written by this service and
    the camelCase payload written by earlier browser clients.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    current_streak: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("current_streak", "currentStreak"),
    )
    best_streak: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("best_streak", "bestStreak"),
    )
    connected_days: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("connected_days", "connectedDays"),
    )
    total_points: int = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices(
            "total_points", "totalPoints", "totalPowerLevel"
        ),
    )
    last_check_in_at: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "last_check_in_at", "lastCheckInAt", "lastCheckIn"
        ),
    )
    unlocked_badges: frozenset[BadgeId] = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices("unlocked_badges", "unlockedBadges"),
    )
    unlocked_ranks: frozenset[RankKey] = Field(
        default_factory=frozenset,
        validation_alias=AliasChoices("unlocked_ranks", "unlockedRanks"),
    )
    check_in_history: tuple[date, ...] = Field(
        default=(),
        validation_alias=AliasChoices("check_in_history", "checkInHistory"),
    )
    # Cached gate result for the UI; never persisted
    can_check_in_now: bool = Field(default=True, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _migrate_legacy_payload(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        payload = dict(data)
        current = payload.get("current_streak", payload.get("currentStreak", 0)) or 0

        # Older payloads predate best_streak; a missing or zero value falls
        # back to the current streak.
        best = payload.pop("bestStreak", None)
        best = payload.get("best_streak", best)
        payload["best_streak"] = best if best else current

        if "connected_days" not in payload and "connectedDays" not in payload:
            payload["connected_days"] = current
        return payload

    @field_validator("last_check_in_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    @field_validator("check_in_history", mode="after")
    @classmethod
    def _normalize_history(cls, value: tuple[date, ...]) -> tuple[date, ...]:
        return tuple(sorted(set(value))[-HISTORY_LIMIT:])

    @field_serializer("unlocked_badges", "unlocked_ranks")
    def _serialize_sorted(self, value: frozenset[str]) -> list[str]:
        return sorted(value)


class CheckInResult(BaseModel):
    """Full record of one successful check-in transition."""

    model_config = ConfigDict(frozen=True)

    new_state: StreakState
    points_awarded: int
    base_points: int
    applied_boost_fraction: float
    # Mystery payout drawn for the day, None on regular days
    mystery_roll: int | None = None
    badge_events: list[BadgeId] = Field(default_factory=list)
    rank_event: RankKey | None = None
    streak_was_reset: bool = False


# =============================================================================
# Progress projections
# =============================================================================


class StreakMilestone(BaseModel):
    badge: BadgeId
    threshold: int
    days_remaining: int


class RankMilestone(BaseModel):
    rank: RankTier
    days_remaining: int


class CalendarDayStatus(StrEnum):
    COLLECTED = "collected"
    MISSED = "missed"
    TODAY = "today"
    TOMORROW = "tomorrow"
    LOCKED = "locked"


class CalendarDay(BaseModel):
    day: date
    weekday: str
    status: CalendarDayStatus
    is_today: bool = False


class BadgeProgress(BaseModel):
    badge: BadgeId
    threshold: int
    unlocked: bool
    percent: float


# =============================================================================
# API responses
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


class DetailedHealthResponse(HealthResponse):
    """Component status for operators. Always returned with 200."""

    database: bool
    profile: str
    streak_loaded: bool
    gate_status: GateStatus | None = None
    timer_pending: bool = False
    in_flight: bool = False


class GateResponse(BaseModel):
    status: GateStatus
    can_check_in: bool
    retry_after_seconds: int = 0


class CheckInStatusResponse(BaseModel):
    """Everything the check-in modal needs to render its idle state."""

    state: StreakState
    displayed_streak: int
    gate: GateResponse
    current_rank: RankTier | None = None
    next_streak_milestone: StreakMilestone | None = None
    next_rank_milestone: RankMilestone | None = None
    streak_progress: float
    rank_progress: float
    next_day_reward: RewardTableEntry
    message: str
    button_label: str


class CheckInResponse(BaseModel):
    result: CheckInResult
    celebrations: list[str] = Field(default_factory=list)
    message: str


class RewardPreviewResponse(BaseModel):
    rewards: list[RewardTableEntry]


class CalendarResponse(BaseModel):
    week_start: date
    days: list[CalendarDay]


class BadgeCatalogItem(BaseModel):
    badge: BadgeId
    name: str
    description: str
    threshold: int
    unlocked: bool
    percent: float


class BadgesResponse(BaseModel):
    badges: list[BadgeCatalogItem]
