"""Wide Event context for canonical log lines.

A request-scoped dict that collects check-in context (streak, gate status,
points) while a request runs. RequestTimingMiddleware initializes it at
request start and emits it as one log line at request end.

Usage:
    from core.wide_event import set_wide_event_fields

    set_wide_event_fields(gate_status="allowed", current_streak=4)
    set_wide_event_nested("checkin", points_awarded=70, badge_events=["🔋"])
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any]] = ContextVar("wide_event")


def init_wide_event() -> dict[str, Any]:
    """Initialize a new wide event dict for the current async context."""
    event: dict[str, Any] = {}
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Get the current wide event dict. Returns empty dict if not initialized."""
    try:
        return _wide_event.get()
    except LookupError:
        return {}


def set_wide_event_fields(**kwargs: Any) -> None:
    """Set multiple fields on the current wide event.

    No-op outside a request context (CLI, timers, tests without the fixture).
    """
    get_wide_event().update(kwargs)


def set_wide_event_nested(category: str, **kwargs: Any) -> None:
    """Set fields in a nested category.

    Example:
        set_wide_event_nested("checkin", points_awarded=40)
        # Results in: {"checkin": {"points_awarded": 40}}
    """
    event = get_wide_event()
    event.setdefault(category, {}).update(kwargs)


def clear_wide_event() -> None:
    """Called by RequestTimingMiddleware after emitting the event."""
    _wide_event.set({})
