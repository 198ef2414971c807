"""Unit tests for core.logger module.

- configure_logging() installs a single stdout handler on the root logger
- LOG_LEVEL is honored
- Noisy third-party loggers are quieted
- Engine values are rendered as plain JSON types
"""

import logging
from datetime import date, timedelta

import pytest
import structlog

from core.logger import (
    _get_log_level,
    _render_engine_values,
    configure_logging,
    get_logger,
)
from schemas import GateStatus


@pytest.fixture(autouse=True)
def _clean_root_logger():
    """Save and restore root logger state around each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)


@pytest.mark.unit
class TestConfigureLogging:
    def test_single_handler_with_structlog_formatter(self):
        configure_logging()

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_reconfigure_does_not_duplicate_handlers(self):
        configure_logging()
        configure_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")

        configure_logging()

        assert logging.getLogger().level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        assert _get_log_level() == logging.INFO

    def test_quiets_third_party(self):
        configure_logging()

        assert logging.getLogger("aiosqlite").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING


@pytest.mark.unit
def test_get_logger_accepts_key_value_events():
    logger = get_logger("tests.logger")

    logger.info("checkin.processed", streak=3, points_awarded=40)


@pytest.mark.unit
class TestRenderEngineValues:
    def test_plain_types(self):
        event = _render_engine_values(
            None,
            "info",
            {
                "event": "gate.evaluated",
                "gate_status": GateStatus.COOLING,
                "remaining": timedelta(minutes=2),
                "unlocked_badges": frozenset({"🔋", "🪫"}),
                "history": (date(2026, 1, 22), date(2026, 1, 23)),
            },
        )

        assert event["gate_status"] == "cooling"
        assert event["remaining"] == 120.0
        assert event["unlocked_badges"] == sorted({"🔋", "🪫"})
        assert event["history"] == ["2026-01-22", "2026-01-23"]

    def test_exc_info_and_private_keys_untouched(self):
        exc_info = (ValueError, ValueError("x"), None)
        meta = ("kept",)

        event = _render_engine_values(
            None, "error", {"exc_info": exc_info, "_record": meta}
        )

        assert event["exc_info"] is exc_info
        assert event["_record"] is meta
