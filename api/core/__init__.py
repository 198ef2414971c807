"""Ambient stack for the check-in service: settings, logging and telemetry.

    from core import get_logger, get_settings, track_operation
"""

from core.config import Settings, clear_settings_cache, get_settings
from core.logger import configure_logging, get_logger
from core.telemetry import RequestTimingMiddleware, log_metric, track_operation
from core.wide_event import set_wide_event_fields, set_wide_event_nested

__all__ = [
    "RequestTimingMiddleware",
    "Settings",
    "clear_settings_cache",
    "configure_logging",
    "get_logger",
    "get_settings",
    "log_metric",
    "set_wide_event_fields",
    "set_wide_event_nested",
    "track_operation",
]
