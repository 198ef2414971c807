"""Error taxonomy for the check-in engine.

All of these are recoverable by the caller. Rejections (NotAllowed,
AlreadyInFlight, PersistenceFailure) carry the unchanged prior state so the
presentation layer can keep rendering it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schemas import StreakState


class CheckInError(Exception):
    """Base class for check-in rejections."""

    def __init__(self, message: str, state: StreakState | None = None):
        super().__init__(message)
        self.state = state


class NotAllowedError(CheckInError):
    """Raised when the cooldown gate is closed."""

    def __init__(
        self,
        message: str,
        retry_after_seconds: int,
        state: StreakState | None = None,
    ):
        super().__init__(message, state)
        self.retry_after_seconds = retry_after_seconds


class AlreadyInFlightError(CheckInError):
    """Raised when another check-in is still being processed."""

    pass


class PersistenceFailureError(CheckInError):
    """Raised when the store fails to load or save streak state."""

    pass


class InvalidConfigurationError(ValueError):
    """Raised for inconsistent durations or malformed static tables.

    A configuration defect: it should stop the engine from initializing.
    """

    pass
