"""Tests for checkin_service.process_check_in (the pure transition).

Covers the reward pipeline step by step: streak reset, mystery bands, the
non-stacking boost, rounding, badge and rank events, history.
"""

from datetime import UTC, date, datetime, timedelta

import pytest

from schemas import HISTORY_LIMIT
from services.checkin_errors import NotAllowedError
from services.checkin_service import (
    apply_boost,
    badges_unlocked_on,
    mystery_payout,
    process_check_in,
    streak_boost_for_day,
)
from services.cooldown_service import CooldownPolicy
from services.rewards_service import (
    CHARGED_BADGE,
    POWER_USER_BADGE,
    SPARK_BADGE,
    reward_for_day,
)
from tests.factories import StreakStateFactory

pytestmark = pytest.mark.unit

NOW = datetime(2026, 1, 23, 12, 0, 0, tzinfo=UTC)
POLICY = CooldownPolicy(cooldown=timedelta(hours=24), reset=timedelta(hours=48))
YESTERDAY = NOW - timedelta(hours=25)


def fixed(value: float):
    return lambda: value


def never_called() -> float:
    raise AssertionError("rng must only be used on mystery days")


class TestDayThreeScenario:
    def test_spark_day_without_boost(self):
        state = StreakStateFactory.build(
            current_streak=2,
            best_streak=2,
            connected_days=2,
            total_points=50,
            last_check_in_at=YESTERDAY,
        )

        result = process_check_in(state, NOW, never_called, POLICY)

        assert result.new_state.current_streak == 3
        assert result.badge_events == [SPARK_BADGE]
        assert SPARK_BADGE in result.new_state.unlocked_badges
        assert result.base_points == 40
        assert result.applied_boost_fraction == 0
        assert result.points_awarded == 40
        assert result.new_state.total_points == 90
        assert result.rank_event is None
        assert result.mystery_roll is None
        assert result.streak_was_reset is False


class TestFirstCheckIn:
    def test_zero_state(self):
        state = StreakStateFactory.build()

        result = process_check_in(state, NOW, never_called, POLICY)

        assert result.new_state.current_streak == 1
        assert result.new_state.best_streak == 1
        assert result.new_state.connected_days == 1
        assert result.points_awarded == 20
        assert result.new_state.last_check_in_at == NOW
        assert result.new_state.check_in_history == (NOW.date(),)
        assert result.new_state.can_check_in_now is False


class TestMysteryDay:
    @pytest.mark.parametrize(
        "roll,payout",
        [(0.03, 500), (0.10, 300), (0.30, 150), (0.90, 100)],
    )
    def test_payout_bands(self, roll: float, payout: int):
        state = StreakStateFactory.build(
            current_streak=6,
            best_streak=6,
            connected_days=6,
            total_points=0,
            last_check_in_at=YESTERDAY,
        )

        result = process_check_in(state, NOW, fixed(roll), POLICY)

        assert result.base_points == payout
        assert result.mystery_roll == payout
        assert result.points_awarded == payout
        assert result.new_state.total_points == payout

    @pytest.mark.parametrize(
        "roll,payout",
        [(0.0, 500), (0.05, 300), (0.20, 150), (0.40, 100), (0.999, 100)],
    )
    def test_band_boundaries_are_exclusive(self, roll: float, payout: int):
        assert mystery_payout(roll) == payout

    def test_payout_replaces_table_value(self):
        state = StreakStateFactory.build(current_streak=6, last_check_in_at=YESTERDAY)

        result = process_check_in(state, NOW, fixed(0.90), POLICY)

        assert reward_for_day(7).points == 100
        assert result.base_points == 100
        assert result.points_awarded == 100


class TestBoosts:
    def test_streak_boost_from_day_fourteen(self):
        assert streak_boost_for_day(13) == 0
        assert streak_boost_for_day(14) == 0.15
        assert streak_boost_for_day(40) == 0.15

    def test_rank_and_streak_boost_do_not_stack(self):
        # Day 14 (streak boost 0.15) while crossing the 0.20 rank threshold
        state = StreakStateFactory.build(
            current_streak=13, connected_days=29, last_check_in_at=YESTERDAY
        )

        result = process_check_in(state, NOW, never_called, POLICY)

        assert result.rank_event == "devoted"
        assert result.applied_boost_fraction == pytest.approx(0.20)
        assert result.points_awarded == 240

    def test_streak_boost_wins_over_smaller_rank_boost(self):
        state = StreakStateFactory.build(
            current_streak=14, connected_days=20, last_check_in_at=YESTERDAY
        )

        result = process_check_in(state, NOW, never_called, POLICY)

        assert result.applied_boost_fraction == pytest.approx(0.15)
        assert result.points_awarded == 115

    def test_rank_boost_applies_on_unlock_day(self):
        state = StreakStateFactory.build(
            current_streak=1, connected_days=9, last_check_in_at=YESTERDAY
        )

        result = process_check_in(state, NOW, never_called, POLICY)

        assert result.rank_event == "rookie"
        assert "rookie" in result.new_state.unlocked_ranks
        # 30 * 1.05 = 31.5 rounds half-up
        assert result.points_awarded == 32

    def test_held_rank_keeps_boosting_without_event(self):
        state = StreakStateFactory.build(
            current_streak=4,
            connected_days=24,
            unlocked_ranks=frozenset({"rookie", "regular"}),
            last_check_in_at=YESTERDAY,
        )

        result = process_check_in(state, NOW, never_called, POLICY)

        assert result.rank_event is None
        assert result.points_awarded == 77

    @pytest.mark.parametrize(
        "base,boost,expected",
        [(70, 0.15, 81), (30, 0.05, 32), (20, 0.25, 25), (100, 0.30, 130), (40, 0.0, 40)],
    )
    def test_apply_boost_rounds_half_up(self, base: int, boost: float, expected: int):
        assert apply_boost(base, boost) == expected


class TestBadges:
    def test_milestone_and_table_badge_fire_once(self):
        entry = reward_for_day(5)
        assert entry.badge == CHARGED_BADGE

        assert badges_unlocked_on(5, entry, frozenset()) == [CHARGED_BADGE]

    def test_already_unlocked_badge_not_reemitted(self):
        state = StreakStateFactory.build(
            current_streak=2,
            connected_days=20,
            unlocked_badges=frozenset({SPARK_BADGE}),
            last_check_in_at=YESTERDAY,
        )

        result = process_check_in(state, NOW, never_called, POLICY)

        assert result.badge_events == []
        assert result.new_state.unlocked_badges == frozenset({SPARK_BADGE})

    def test_two_fresh_runs_each_unlock_spark_once(self):
        for _ in range(2):
            state = StreakStateFactory.build()
            clock = NOW
            events: list[str] = []
            for _day in range(3):
                result = process_check_in(state, clock, never_called, POLICY)
                events.extend(result.badge_events)
                state = result.new_state
                clock += timedelta(hours=25)

            assert events.count(SPARK_BADGE) == 1

    def test_power_user_on_day_fourteen(self):
        state = StreakStateFactory.build(
            current_streak=13,
            unlocked_badges=frozenset({SPARK_BADGE, CHARGED_BADGE}),
            last_check_in_at=YESTERDAY,
        )

        result = process_check_in(state, NOW, never_called, POLICY)

        assert result.badge_events == [POWER_USER_BADGE]


class TestStreakBreak:
    def test_break_resets_streak_only(self):
        state = StreakStateFactory.build(
            current_streak=9,
            best_streak=12,
            connected_days=30,
            total_points=900,
            unlocked_badges=frozenset({SPARK_BADGE, CHARGED_BADGE}),
            unlocked_ranks=frozenset({"rookie", "regular", "devoted"}),
            last_check_in_at=NOW - timedelta(hours=49),
        )

        result = process_check_in(state, NOW, never_called, POLICY)
        new = result.new_state

        assert result.streak_was_reset is True
        assert new.current_streak == 1
        assert new.best_streak == 12
        assert new.connected_days == 31
        # Day 1 base 20, devoted boost 0.20
        assert result.points_awarded == 24
        assert new.total_points == 924
        assert new.unlocked_badges == state.unlocked_badges
        assert new.unlocked_ranks == state.unlocked_ranks

    def test_grace_window_keeps_streak(self):
        state = StreakStateFactory.build(
            current_streak=4, last_check_in_at=NOW - timedelta(hours=47)
        )

        result = process_check_in(state, NOW, never_called, POLICY)

        assert result.new_state.current_streak == 5
        assert result.streak_was_reset is False


class TestNotAllowed:
    def test_cooling_gate_rejects_with_prior_state(self):
        state = StreakStateFactory.build(
            current_streak=3, last_check_in_at=NOW - timedelta(hours=1)
        )

        with pytest.raises(NotAllowedError) as exc_info:
            process_check_in(state, NOW, never_called, POLICY)

        assert exc_info.value.state is state
        assert exc_info.value.retry_after_seconds == 23 * 3600


class TestHistory:
    def test_same_day_not_duplicated(self):
        state = StreakStateFactory.build(
            current_streak=1,
            check_in_history=(NOW.date(),),
            last_check_in_at=NOW - timedelta(hours=24),
        )

        result = process_check_in(state, NOW, never_called, POLICY)

        assert result.new_state.check_in_history == (NOW.date(),)

    def test_trimmed_to_most_recent(self):
        start = date(2025, 1, 1)
        history = tuple(start + timedelta(days=i) for i in range(HISTORY_LIMIT))
        state = StreakStateFactory.build(
            current_streak=5, check_in_history=history, last_check_in_at=YESTERDAY
        )

        result = process_check_in(state, NOW, never_called, POLICY)
        new_history = result.new_state.check_in_history

        assert len(new_history) == HISTORY_LIMIT
        assert new_history[-1] == NOW.date()
        assert start not in new_history


class TestDeterminism:
    def test_same_inputs_same_result(self):
        state = StreakStateFactory.build(current_streak=6, last_check_in_at=YESTERDAY)

        first = process_check_in(state, NOW, fixed(0.12), POLICY)
        second = process_check_in(state, NOW, fixed(0.12), POLICY)

        assert first == second
