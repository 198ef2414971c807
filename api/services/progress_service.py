"""Read-only projections over StreakState for display.

Nothing here mutates state or touches the clock; ``today`` is passed in.
"""

from collections.abc import Iterator
from datetime import date, timedelta

from schemas import (
    BadgeProgress,
    CalendarDay,
    CalendarDayStatus,
    RankMilestone,
    RewardTableEntry,
    StreakMilestone,
    StreakState,
)
from services.ranks_service import next_rank, rank_for_attendance
from services.rewards_service import BADGE_MILESTONES, reward_for_day

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

MAX_PREVIEW_DAYS = 30


def next_streak_milestone(state: StreakState) -> StreakMilestone | None:
    """Nearest badge threshold above the current streak whose badge is still locked."""
    for milestone in BADGE_MILESTONES:
        if (
            milestone.days > state.current_streak
            and milestone.badge not in state.unlocked_badges
        ):
            return StreakMilestone(
                badge=milestone.badge,
                threshold=milestone.days,
                days_remaining=milestone.days - state.current_streak,
            )
    return None


def next_rank_milestone(state: StreakState) -> RankMilestone | None:
    tier = next_rank(state.connected_days)
    if tier is None:
        return None
    return RankMilestone(rank=tier, days_remaining=tier.threshold - state.connected_days)


def progress_fraction(done: int, prev_threshold: int, next_threshold: int | None) -> float:
    """Fraction of the way from ``prev_threshold`` to ``next_threshold``, in [0, 1].

    With no next threshold every milestone is met, so progress is complete.
    """
    if next_threshold is None:
        return 1.0
    span = next_threshold - prev_threshold
    if span <= 0:
        return 1.0
    return min(1.0, max(0.0, (done - prev_threshold) / span))


def streak_progress(state: StreakState) -> float:
    """Progress from the last passed badge threshold to the next locked one."""
    milestone = next_streak_milestone(state)
    if milestone is None:
        return 1.0
    passed = [m.days for m in BADGE_MILESTONES if m.days <= state.current_streak]
    return progress_fraction(
        state.current_streak, max(passed, default=0), milestone.threshold
    )


def rank_progress(state: StreakState) -> float:
    current = rank_for_attendance(state.connected_days)
    upcoming = next_rank(state.connected_days)
    return progress_fraction(
        state.connected_days,
        current.threshold if current is not None else 0,
        upcoming.threshold if upcoming is not None else None,
    )


def upcoming_reward_preview(state: StreakState, count: int) -> Iterator[RewardTableEntry]:
    """Yield rewards for the next ``count`` streak days.

    Calling again with the same state restarts the preview from the same day.
    """
    if count < 0:
        raise ValueError(f"Preview count must be >= 0, got {count}")
    start = state.current_streak + 1
    for day in range(start, start + count):
        yield reward_for_day(day)


def next_day_reward(state: StreakState) -> RewardTableEntry:
    """Reward the next check-in would earn before boosts ("Get N coins tomorrow")."""
    return reward_for_day(state.current_streak + 1)


def week_start(today: date) -> date:
    return today - timedelta(days=today.weekday())


def weekly_calendar(state: StreakState, today: date) -> list[CalendarDay]:
    """Seven cells, Monday to Sunday, for the week containing ``today``.

    Status precedence: collected, today, tomorrow, missed, locked.
    """
    history = set(state.check_in_history)
    monday = week_start(today)
    tomorrow = today + timedelta(days=1)

    days: list[CalendarDay] = []
    for offset in range(7):
        day = monday + timedelta(days=offset)
        if day in history:
            status = CalendarDayStatus.COLLECTED
        elif day == today:
            status = CalendarDayStatus.TODAY
        elif day == tomorrow:
            status = CalendarDayStatus.TOMORROW
        elif day < today:
            status = CalendarDayStatus.MISSED
        else:
            status = CalendarDayStatus.LOCKED
        days.append(
            CalendarDay(
                day=day,
                weekday=WEEKDAY_NAMES[offset],
                status=status,
                is_today=day == today,
            )
        )
    return days


def badge_progress(state: StreakState) -> list[BadgeProgress]:
    """Per-badge unlock flag and percent toward its streak threshold."""
    return [
        BadgeProgress(
            badge=milestone.badge,
            threshold=milestone.days,
            unlocked=milestone.badge in state.unlocked_badges,
            percent=(
                100.0
                if milestone.badge in state.unlocked_badges
                else min(100.0, state.current_streak / milestone.days * 100)
            ),
        )
        for milestone in BADGE_MILESTONES
    ]
