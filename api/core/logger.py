"""Centralized logging configuration using structlog.

Structured logging across the service:
- JSON output for log aggregation (LOG_FORMAT=json)
- Colored console output for local development (default)
- stdlib loggers (uvicorn, sqlalchemy, alembic) routed through the same renderer

Usage:
    from core import get_logger
    logger = get_logger(__name__)
    logger.info("checkin.processed", streak=3, points=40)
"""

import logging
import os
import sys
from datetime import date, timedelta
from enum import Enum
from typing import Any

import structlog
from structlog.types import EventDict, Processor


def _get_log_level() -> int:
    """Get log level from environment, defaulting to INFO."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _is_json_format() -> bool:
    return os.environ.get("LOG_FORMAT", "").lower() == "json"


def _plain_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, timedelta):
        return value.total_seconds()
    if isinstance(value, frozenset | set):
        return sorted(_plain_value(item) for item in value)
    if isinstance(value, list | tuple):
        return [_plain_value(item) for item in value]
    return value


def _render_engine_values(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Turn gate enums, dates, badge sets and durations into JSON-friendly values."""
    return {
        key: value if key == "exc_info" or key.startswith("_") else _plain_value(value)
        for key, value in event_dict.items()
    }


def configure_logging() -> None:
    """Configure structlog and stdlib logging. Call once at application startup."""
    log_level = _get_log_level()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        _render_engine_values,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if _is_json_format():
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True, exception_formatter=structlog.dev.plain_traceback
        )

    structlog.configure(
        processors=shared_processors
        + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Third-party stdlib logs get the same formatting via foreign_pre_chain
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)

    # Quiet noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Example:
        logger = get_logger(__name__)
        logger.info("checkin.processed", streak=5, points_awarded=70)
        logger.warning("checkin.rejected", reason="cooling", retry_after=42)
    """
    return structlog.stdlib.get_logger(name)

