"""Stateful owner of one user's streak: load, gate timer, guarded check-in.

The pure transition lives in services.checkin_service. This class adds the
parts that need time and I/O:
- at most one check-in in flight, held across the artificial delay
- read-modify-write serialized by an asyncio.Lock
- persist first, adopt the new state only after the store succeeds
- a one-shot timer that flips ``can_check_in_now`` when the gate reopens
"""

import asyncio
import random
from collections.abc import Callable
from datetime import UTC, datetime
from typing import NoReturn

from core.logger import get_logger
from core.telemetry import log_metric, track_operation
from core.wide_event import set_wide_event_fields
from schemas import CheckInResult, GateResult, StreakState
from services.checkin_errors import (
    AlreadyInFlightError,
    NotAllowedError,
    PersistenceFailureError,
)
from services.checkin_service import RandomSource, process_check_in
from services.cooldown_service import CooldownPolicy, GateTimer, evaluate_gate
from services.streak_store import StreakStore

logger = get_logger(__name__)

Clock = Callable[[], datetime]
GateOpenCallback = Callable[[StreakState], None]


def utc_now() -> datetime:
    return datetime.now(UTC)


class CheckInSession:
    def __init__(
        self,
        store: StreakStore,
        policy: CooldownPolicy,
        *,
        clock: Clock = utc_now,
        rng: RandomSource = random.random,
        processing_delay: float = 0.0,
        on_gate_open: GateOpenCallback | None = None,
    ):
        self._store = store
        self._policy = policy
        self._clock = clock
        self._rng = rng
        self._processing_delay = processing_delay
        self._on_gate_open = on_gate_open

        self._state = StreakState()
        self._lock = asyncio.Lock()
        self._in_flight = False
        self._timer = GateTimer(self._handle_gate_open)

    @property
    def state(self) -> StreakState:
        return self._state

    @property
    def policy(self) -> CooldownPolicy:
        return self._policy

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def timer_pending(self) -> bool:
        return self._timer.pending

    def now(self) -> datetime:
        return self._clock()

    async def load(self) -> StreakState:
        """Read the store; an absent record starts a fresh zero state.

        Raises:
            PersistenceFailureError: If the store cannot be read.
        """
        stored = await self._store.load()
        self._adopt(stored if stored is not None else StreakState())
        logger.info(
            "checkin.session.loaded",
            first_run=stored is None,
            current_streak=self._state.current_streak,
            can_check_in=self._state.can_check_in_now,
        )
        return self._state

    def evaluate_gate(self) -> GateResult:
        return evaluate_gate(self._state.last_check_in_at, self._clock(), self._policy)

    @track_operation("checkin.process")
    async def process_check_in(self) -> CheckInResult:
        """Run one guarded check-in.

        Raises:
            AlreadyInFlightError: Another check-in has not finished yet.
            NotAllowedError: The cooldown gate is closed.
            PersistenceFailureError: The store rejected the write; the
                in-memory state is unchanged.
        """
        if self._in_flight:
            raise AlreadyInFlightError(
                "A check-in is already being processed", state=self._state
            )

        gate = self.evaluate_gate()
        if not gate.is_open:
            self._reject(gate.retry_after_seconds)

        self._in_flight = True
        try:
            async with self._lock:
                if self._processing_delay > 0:
                    await asyncio.sleep(self._processing_delay)

                prior = self._state
                try:
                    result = process_check_in(
                        prior, self._clock(), self._rng, self._policy
                    )
                except NotAllowedError as e:
                    self._reject(e.retry_after_seconds)

                try:
                    await self._store.save(result.new_state)
                except PersistenceFailureError as e:
                    e.state = prior
                    set_wide_event_fields(checkin_outcome="persistence_failure")
                    raise

                self._adopt(result.new_state)
        finally:
            self._in_flight = False

        set_wide_event_fields(
            checkin_outcome="processed",
            checkin_streak=result.new_state.current_streak,
            checkin_points=result.points_awarded,
        )
        logger.info(
            "checkin.processed",
            streak=result.new_state.current_streak,
            points_awarded=result.points_awarded,
            total_points=result.new_state.total_points,
            mystery_roll=result.mystery_roll,
            badge_events=result.badge_events,
            rank_event=result.rank_event,
            streak_was_reset=result.streak_was_reset,
        )
        log_metric(
            "checkin.points_awarded",
            result.points_awarded,
            {"reset": str(result.streak_was_reset).lower()},
        )
        return result

    def close(self) -> None:
        self._timer.cancel()

    def _reject(self, retry_after_seconds: int) -> NoReturn:
        set_wide_event_fields(checkin_outcome="rejected")
        logger.info("checkin.rejected", retry_after_seconds=retry_after_seconds)
        raise NotAllowedError(
            f"Check-in not available for another {retry_after_seconds}s",
            retry_after_seconds=retry_after_seconds,
            state=self._state,
        )

    def _adopt(self, state: StreakState) -> None:
        gate = evaluate_gate(state.last_check_in_at, self._clock(), self._policy)
        self._state = state.model_copy(update={"can_check_in_now": gate.is_open})
        # Rescheduling cancels any timer armed for an older last_check_in_at
        self._timer.schedule(gate, state.last_check_in_at)

    def _handle_gate_open(self) -> None:
        self._state = self._state.model_copy(update={"can_check_in_now": True})
        logger.info("gate.reopened", current_streak=self._state.current_streak)
        if self._on_gate_open is not None:
            self._on_gate_open(self._state)
