"""Cooldown gate: decides whether a check-in is allowed right now.

Three outcomes for the time elapsed since the last check-in:
- elapsed < cooldown            -> COOLING (with the remaining wait)
- cooldown <= elapsed <= reset  -> ALLOWED (grace window)
- elapsed > reset               -> STREAK_BROKEN (allowed, streak restarts)

GateTimer re-evaluates at the exact moment a cooling gate reopens, so
callers never have to poll.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from core.logger import get_logger
from schemas import GateResult, GateStatus
from services.checkin_errors import InvalidConfigurationError

logger = get_logger(__name__)


@dataclass(frozen=True)
class CooldownPolicy:
    """The two tunable durations of the engine."""

    cooldown: timedelta
    reset: timedelta

    def __post_init__(self) -> None:
        if self.cooldown <= timedelta(0):
            raise InvalidConfigurationError(
                f"Cooldown must be positive, got {self.cooldown}"
            )
        if self.reset <= self.cooldown:
            raise InvalidConfigurationError(
                f"Reset duration ({self.reset}) must be longer than "
                f"cooldown duration ({self.cooldown})"
            )


def evaluate_gate(
    last_check_in_at: datetime | None,
    now: datetime,
    policy: CooldownPolicy,
) -> GateResult:
    """Evaluate the gate for ``now``. Both datetimes must be timezone-aware."""
    if last_check_in_at is None:
        return GateResult(status=GateStatus.ALLOWED)

    elapsed = now - last_check_in_at

    if elapsed < policy.cooldown:
        return GateResult(
            status=GateStatus.COOLING,
            remaining=policy.cooldown - elapsed,
        )
    if elapsed > policy.reset:
        return GateResult(status=GateStatus.STREAK_BROKEN)
    return GateResult(status=GateStatus.ALLOWED)


class GateTimer:
    """One-shot timer that fires when a cooling gate reopens.

    Scheduling again cancels the pending handle, so a stale callback never
    fires after ``last_check_in_at`` has moved on. Must be used from inside
    a running event loop.
    """

    def __init__(self, on_open: Callable[[], None]):
        self._on_open = on_open
        self._handle: asyncio.TimerHandle | None = None
        self._due_for: datetime | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def due_for(self) -> datetime | None:
        """The last_check_in_at value the pending timer was scheduled for."""
        return self._due_for

    def schedule(self, gate: GateResult, last_check_in_at: datetime | None) -> None:
        """Arm the timer for a COOLING gate; disarm it for any other result."""
        self.cancel()
        if gate.status != GateStatus.COOLING or gate.remaining is None:
            return

        loop = asyncio.get_running_loop()
        self._due_for = last_check_in_at
        self._handle = loop.call_later(gate.remaining.total_seconds(), self._fire)
        logger.debug(
            "gate.timer.scheduled",
            remaining_seconds=gate.remaining.total_seconds(),
        )

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._due_for = None

    def _fire(self) -> None:
        self._handle = None
        self._due_for = None
        self._on_open()
