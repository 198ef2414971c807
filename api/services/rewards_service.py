"""Reward table: per-day points, badge unlocks and mystery days.

The table covers the first 14 days of a streak cycle with no gaps. Days
past the table earn a flat fallback reward with no badge and no special.
Badge milestones (3, 5, 14) are checked independently of the table, see
services.checkin_service.
"""

from collections.abc import Sequence

from schemas import BadgeId, BadgeMilestone, RewardSpecial, RewardTableEntry
from services.checkin_errors import InvalidConfigurationError

SPARK_BADGE: BadgeId = "🪫"
CHARGED_BADGE: BadgeId = "🔋"
POWER_USER_BADGE: BadgeId = "⚡"

# Fixed evaluation order for badge events: 3 → 5 → 14
BADGE_MILESTONES: tuple[BadgeMilestone, ...] = (
    BadgeMilestone(badge=SPARK_BADGE, days=3),
    BadgeMilestone(badge=CHARGED_BADGE, days=5),
    BadgeMilestone(badge=POWER_USER_BADGE, days=14),
)

FALLBACK_POINTS = 100

# 100 points are worth one unit of display currency
POINTS_PER_CURRENCY_UNIT = 100


def _entry(
    day: int,
    points: int,
    *,
    badge: BadgeId | None = None,
    special: RewardSpecial | None = None,
) -> RewardTableEntry:
    return RewardTableEntry(
        day=day,
        points=points,
        worth=points / POINTS_PER_CURRENCY_UNIT,
        badge=badge,
        special=special,
    )


REWARD_TABLE: tuple[RewardTableEntry, ...] = (
    _entry(1, 20),
    _entry(2, 30),
    _entry(3, 40, badge=SPARK_BADGE),
    _entry(4, 50),
    _entry(5, 70, badge=CHARGED_BADGE),
    _entry(6, 70),
    _entry(7, 100, special=RewardSpecial.MYSTERY),
    _entry(8, 80),
    _entry(9, 80),
    _entry(10, 80),
    _entry(11, 80),
    _entry(12, 80),
    _entry(13, 80),
    _entry(14, 200, badge=POWER_USER_BADGE),
)


def validate_reward_table(entries: Sequence[RewardTableEntry]) -> None:
    """Check the table is keyed 1..N with no gaps or duplicates.

    Raises:
        InvalidConfigurationError: If the table is empty or not contiguous.
    """
    if not entries:
        raise InvalidConfigurationError("Reward table must not be empty")

    days = [entry.day for entry in entries]
    expected = list(range(1, len(entries) + 1))
    if days != expected:
        raise InvalidConfigurationError(
            f"Reward table days must be 1..{len(entries)} in order, got {days}"
        )


def validate_badge_milestones(milestones: Sequence[BadgeMilestone]) -> None:
    """Badge thresholds must be strictly increasing and badges unique."""
    badges = [m.badge for m in milestones]
    if len(set(badges)) != len(badges):
        raise InvalidConfigurationError(f"Duplicate badge milestones: {badges}")
    thresholds = [m.days for m in milestones]
    if any(b <= a for a, b in zip(thresholds, thresholds[1:], strict=False)):
        raise InvalidConfigurationError(
            f"Badge milestone days must be strictly increasing, got {thresholds}"
        )


validate_reward_table(REWARD_TABLE)
validate_badge_milestones(BADGE_MILESTONES)

_REWARDS_BY_DAY: dict[int, RewardTableEntry] = {e.day: e for e in REWARD_TABLE}


def reward_for_day(day: int) -> RewardTableEntry:
    """Reward for a 1-based streak day.

    Raises:
        ValueError: If day is not positive (caller error).
    """
    if day <= 0:
        raise ValueError(f"Streak day must be >= 1, got {day}")

    entry = _REWARDS_BY_DAY.get(day)
    if entry is not None:
        return entry
    return _entry(day, FALLBACK_POINTS)


def table_length() -> int:
    return len(REWARD_TABLE)
