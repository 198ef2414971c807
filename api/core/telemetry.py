"""Request timing and operation tracking."""

import inspect
import os
import time
import uuid
from collections.abc import Callable
from functools import wraps
from typing import ParamSpec, TypeVar, cast

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import get_logger
from core.wide_event import clear_wide_event, get_wide_event, init_wide_event

logger = get_logger(__name__)

SERVICE_NAME = os.getenv("SERVICE_NAME", "checkin-streaks-api")
SERVICE_VERSION = os.getenv("SERVICE_VERSION", "0.1.0")

# Operations slower than this are logged at warning level
SLOW_OPERATION_MS = 1000

P = ParamSpec("P")
R = TypeVar("R")


class RequestTimingMiddleware:
    """Times each request and emits the wide event at request end.

    - One wide event per request (canonical log line)
    - Always emitted for errors, slow requests and check-in mutations
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        request_id = str(uuid.uuid4())

        wide_event = init_wide_event()
        wide_event["service_name"] = SERVICE_NAME
        wide_event["service_version"] = SERVICE_VERSION
        wide_event["request_id"] = request_id
        wide_event["http_method"] = method
        wide_event["http_path"] = path

        response_status: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal response_status

            if message.get("type") == "http.response.start":
                response_status = int(message.get("status", 0))
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                duration_ms = (time.perf_counter() - start_time) * 1000
                headers.append(
                    (b"x-request-duration-ms", f"{duration_ms:.2f}".encode())
                )
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers

            elif message.get("type") == "http.response.body" and not message.get(
                "more_body", False
            ):
                duration_ms = (time.perf_counter() - start_time) * 1000
                route = scope.get("route")

                event = get_wide_event()
                event["http_route"] = getattr(route, "path", None) or path
                event["http_status_code"] = response_status
                event["duration_ms"] = round(duration_ms, 2)
                event["outcome"] = (
                    "success" if response_status and response_status < 400 else "error"
                )

                should_emit = (
                    response_status is None
                    or response_status >= 400
                    or duration_ms > SLOW_OPERATION_MS
                    or method != "GET"
                )
                if should_emit:
                    logger.info("request.completed", **event)

                clear_wide_event()

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start_time) * 1000
            event = get_wide_event()
            event["duration_ms"] = round(duration_ms, 2)
            event["outcome"] = "exception"
            event["exception_type"] = type(exc).__name__
            logger.info("request.completed", **event)
            clear_wide_event()
            raise


def _log_duration(operation_name: str, start_time: float, success: bool) -> None:
    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    if duration_ms > SLOW_OPERATION_MS:
        logger.warning(
            "operation.slow",
            operation=operation_name,
            duration_ms=duration_ms,
            success=success,
        )
    else:
        logger.debug(
            "operation.completed",
            operation=operation_name,
            duration_ms=duration_ms,
            success=success,
        )


def track_operation(operation_name: str):
    """Decorator to time a business operation (sync or async)."""

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                start_time = time.perf_counter()
                success = False
                try:
                    result = await func(*args, **kwargs)
                    success = True
                    return result
                finally:
                    _log_duration(operation_name, start_time, success)

            return cast(Callable[P, R], async_wrapper)

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start_time = time.perf_counter()
            success = False
            try:
                result = func(*args, **kwargs)
                success = True
                return result
            finally:
                _log_duration(operation_name, start_time, success)

        return sync_wrapper

    return decorator


def log_metric(name: str, value: float, properties: dict[str, str] | None = None) -> None:
    """Emit a structured metric line (queryable from logs)."""
    logger.info("metric", metric_name=name, value=value, **(properties or {}))
