"""Property-based tests for the check-in transition using Hypothesis.

These tests verify properties that must hold for every sequence of
check-ins, regardless of timing or random draws.
"""

from datetime import UTC, datetime, timedelta

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from schemas import GateStatus, StreakState
from services.checkin_errors import NotAllowedError
from services.checkin_service import process_check_in
from services.cooldown_service import CooldownPolicy, evaluate_gate

# Mark all tests in this module as unit tests (no database required)
pytestmark = pytest.mark.unit

POLICY = CooldownPolicy(cooldown=timedelta(hours=24), reset=timedelta(hours=48))
START = datetime(2026, 1, 1, 8, 0, 0, tzinfo=UTC)

# =============================================================================
# Custom Strategies
# =============================================================================

# Gap before each attempt, in minutes: too soon, grace window or broken
gaps = st.integers(min_value=0, max_value=96 * 60)
rolls = st.floats(min_value=0.0, max_value=1.0, exclude_max=True)


@st.composite
def attempt_sequences(draw, max_size: int = 40) -> list[tuple[int, float]]:
    return draw(st.lists(st.tuples(gaps, rolls), min_size=1, max_size=max_size))


hypothesis_settings = settings(
    max_examples=100,
    suppress_health_check=[HealthCheck.too_slow],
)


def run(attempts: list[tuple[int, float]]):
    """Yield (before, after_or_None, now) for each attempt."""
    state = StreakState()
    now = START
    for gap_minutes, roll in attempts:
        now += timedelta(minutes=gap_minutes)
        try:
            result = process_check_in(state, now, lambda r=roll: r, POLICY)
        except NotAllowedError:
            yield state, None, now
            continue
        yield state, result, now
        state = result.new_state


# =============================================================================
# Property Tests
# =============================================================================


class TestCheckInInvariants:
    @given(attempts=attempt_sequences())
    @hypothesis_settings
    def test_lifetime_fields_never_decrease(self, attempts):
        for before, result, _ in run(attempts):
            if result is None:
                continue
            after = result.new_state
            assert after.best_streak >= before.best_streak
            assert after.connected_days == before.connected_days + 1
            assert after.total_points > before.total_points
            assert after.unlocked_badges >= before.unlocked_badges
            assert after.unlocked_ranks >= before.unlocked_ranks

    @given(attempts=attempt_sequences())
    @hypothesis_settings
    def test_best_streak_bounds_current(self, attempts):
        for _, result, _ in run(attempts):
            if result is not None:
                state = result.new_state
                assert 1 <= state.current_streak <= state.best_streak

    @given(attempts=attempt_sequences())
    @hypothesis_settings
    def test_rejection_only_while_cooling(self, attempts):
        for before, result, now in run(attempts):
            gate = evaluate_gate(before.last_check_in_at, now, POLICY)
            assert (result is None) == (gate.status == GateStatus.COOLING)

    @given(attempts=attempt_sequences())
    @hypothesis_settings
    def test_at_most_one_check_in_per_window(self, attempts):
        accepted = [now for _, result, now in run(attempts) if result is not None]
        for earlier, later in zip(accepted, accepted[1:], strict=False):
            assert later - earlier >= POLICY.cooldown

    @given(attempts=attempt_sequences())
    @hypothesis_settings
    def test_badge_events_fire_once(self, attempts):
        events: list[str] = []
        for _, result, _ in run(attempts):
            if result is not None:
                events.extend(result.badge_events)
        assert len(events) == len(set(events))

    @given(attempts=attempt_sequences())
    @hypothesis_settings
    def test_break_resets_streak_to_one(self, attempts):
        for before, result, now in run(attempts):
            if result is None:
                continue
            gate = evaluate_gate(before.last_check_in_at, now, POLICY)
            if gate.status == GateStatus.STREAK_BROKEN:
                assert result.streak_was_reset
                assert result.new_state.current_streak == 1
            else:
                assert result.new_state.current_streak == before.current_streak + 1

    @given(attempts=attempt_sequences())
    @hypothesis_settings
    def test_history_bounded_and_ordered(self, attempts):
        for _, result, _ in run(attempts):
            if result is not None:
                history = result.new_state.check_in_history
                assert len(history) <= 60
                assert list(history) == sorted(set(history))

    @given(attempts=attempt_sequences(max_size=20))
    @hypothesis_settings
    def test_serialized_state_round_trips(self, attempts):
        for _, result, _ in run(attempts):
            if result is not None:
                state = result.new_state
                reloaded = StreakState.model_validate(state.model_dump(mode="json"))
                assert reloaded.model_dump() == state.model_dump()
