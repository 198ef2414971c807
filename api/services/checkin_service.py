"""Check-in transition: prior state + now -> new state and rewards.

This module is pure and synchronous. Given the same (state, now, rng) it
always produces the same CheckInResult. The in-flight guard, persistence
and gate timer live in services.checkin_session.

Reward computation for streak day N:
1. base points come from the reward table (or the fallback past the table)
2. a mystery day replaces the base with a payout drawn from fixed bands
3. one boost applies: the larger of the 14-day streak boost and the rank
   boost. Boosts never stack.
4. points = round_half_up(base * (1 + boost))
"""

from collections.abc import Callable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from core.logger import get_logger
from schemas import (
    HISTORY_LIMIT,
    BadgeId,
    CheckInResult,
    GateStatus,
    RewardSpecial,
    RewardTableEntry,
    StreakState,
)
from services.checkin_errors import NotAllowedError
from services.cooldown_service import CooldownPolicy, evaluate_gate
from services.ranks_service import rank_for_attendance
from services.rewards_service import BADGE_MILESTONES, reward_for_day

logger = get_logger(__name__)

RandomSource = Callable[[], float]

# (upper bound of roll, payout), checked in order; first match wins
MYSTERY_BANDS: tuple[tuple[float, int], ...] = (
    (0.05, 500),
    (0.20, 300),
    (0.40, 150),
)
MYSTERY_DEFAULT_PAYOUT = 100

STREAK_BOOST_DAY = 14
STREAK_BOOST_FRACTION = 0.15


def mystery_payout(roll: float) -> int:
    for upper_bound, payout in MYSTERY_BANDS:
        if roll < upper_bound:
            return payout
    return MYSTERY_DEFAULT_PAYOUT


def streak_boost_for_day(streak_day: int) -> float:
    return STREAK_BOOST_FRACTION if streak_day >= STREAK_BOOST_DAY else 0.0


def apply_boost(base_points: int, boost_fraction: float) -> int:
    """Multiply and round half-up to an integer.

    Decimal avoids binary float artifacts such as 70 * 1.15 == 80.49999.
    """
    boosted = Decimal(base_points) * (Decimal(1) + Decimal(str(boost_fraction)))
    return int(boosted.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def badges_unlocked_on(
    streak_day: int,
    entry: RewardTableEntry,
    already_unlocked: frozenset[BadgeId],
) -> list[BadgeId]:
    """Badge events for reaching ``streak_day``, in milestone order.

    Milestone thresholds and table-declared badges name the same badges;
    each badge is emitted at most once and never if already unlocked.
    """
    events: list[BadgeId] = []
    for milestone in BADGE_MILESTONES:
        if milestone.days == streak_day and milestone.badge not in already_unlocked:
            events.append(milestone.badge)

    if (
        entry.badge is not None
        and entry.badge not in already_unlocked
        and entry.badge not in events
    ):
        events.append(entry.badge)
    return events


def process_check_in(
    state: StreakState,
    now: datetime,
    rng: RandomSource,
    policy: CooldownPolicy,
) -> CheckInResult:
    """Apply one check-in to ``state`` at instant ``now``.

    Raises:
        NotAllowedError: If the cooldown gate is still cooling. The prior
            state is attached unchanged.
    """
    gate = evaluate_gate(state.last_check_in_at, now, policy)
    if not gate.is_open:
        raise NotAllowedError(
            f"Check-in not available for another {gate.retry_after_seconds}s",
            retry_after_seconds=gate.retry_after_seconds,
            state=state,
        )

    streak_was_reset = gate.status == GateStatus.STREAK_BROKEN
    working_streak = 0 if streak_was_reset else state.current_streak

    new_streak_day = working_streak + 1
    entry = reward_for_day(new_streak_day)
    base_points = entry.points

    mystery_roll: int | None = None
    if entry.special == RewardSpecial.MYSTERY:
        base_points = mystery_payout(rng())
        mystery_roll = base_points

    new_connected_days = state.connected_days + 1
    rank_before = rank_for_attendance(state.connected_days)
    rank_after = rank_for_attendance(new_connected_days)

    rank_event = None
    if rank_after is not None and (
        rank_before is None or rank_after.threshold > rank_before.threshold
    ):
        rank_event = rank_after.key

    rank_boost = rank_after.boost_fraction if rank_after is not None else 0.0
    applied_boost = max(streak_boost_for_day(new_streak_day), rank_boost)
    points_awarded = apply_boost(base_points, applied_boost)

    badge_events = badges_unlocked_on(new_streak_day, entry, state.unlocked_badges)

    unlocked_ranks = state.unlocked_ranks
    if rank_event is not None:
        unlocked_ranks = unlocked_ranks | {rank_event}

    # Dedupe and trim; dates stay chronological
    history = tuple(sorted({*state.check_in_history, now.date()})[-HISTORY_LIMIT:])

    new_state = state.model_copy(
        update={
            "current_streak": new_streak_day,
            "best_streak": max(new_streak_day, state.best_streak),
            "connected_days": new_connected_days,
            "total_points": state.total_points + points_awarded,
            "last_check_in_at": now,
            "unlocked_badges": state.unlocked_badges | set(badge_events),
            "unlocked_ranks": unlocked_ranks,
            "check_in_history": history,
            "can_check_in_now": False,
        }
    )

    logger.debug(
        "checkin.computed",
        streak_day=new_streak_day,
        base_points=base_points,
        boost=applied_boost,
        points_awarded=points_awarded,
        badge_events=badge_events,
        rank_event=rank_event,
        streak_was_reset=streak_was_reset,
    )

    return CheckInResult(
        new_state=new_state,
        points_awarded=points_awarded,
        base_points=base_points,
        applied_boost_fraction=applied_boost,
        mystery_roll=mystery_roll,
        badge_events=badge_events,
        rank_event=rank_event,
        streak_was_reset=streak_was_reset,
    )
