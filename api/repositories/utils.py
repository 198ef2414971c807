"""Timing and error capture for repository operations."""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from core.logger import get_logger
from core.wide_event import set_wide_event_fields

logger = get_logger(__name__)

# Repository calls slower than this are flagged on the request's wide event
SLOW_QUERY_THRESHOLD_MS = 250

P = ParamSpec("P")
R = TypeVar("R")


def log_slow_query(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorate an async repository method with slow-query and error capture.

    Slow calls add ``db_slow_query`` fields to the wide event and a debug log
    line. Failures are recorded and re-raised unchanged.

    Usage:
        @log_slow_query("get_streak_state")
        async def get_by_key(self, user_key: str) -> StreakStateRecord | None:
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
                set_wide_event_fields(
                    db_query_error=True,
                    db_operation=operation_name,
                    db_duration_ms=elapsed_ms,
                    db_error_type=type(e).__name__,
                )
                logger.warning(
                    "db.query.failed",
                    operation=operation_name,
                    duration_ms=elapsed_ms,
                    error=str(e),
                )
                raise

            elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
            if elapsed_ms > SLOW_QUERY_THRESHOLD_MS:
                set_wide_event_fields(
                    db_slow_query=True,
                    db_operation=operation_name,
                    db_duration_ms=elapsed_ms,
                )
                logger.debug(
                    "db.query.slow", operation=operation_name, duration_ms=elapsed_ms
                )
            return result

        return wrapper

    return decorator
