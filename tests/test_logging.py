"""Tests for logging configuration."""

import json
import logging

import pytest
import structlog

from cashgame.config import configure_logging, get_logger, session_context


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.getLogger().handlers.clear()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_sdk_loggers_quiet_by_default(self):
        configure_logging(level="INFO")

        assert logging.getLogger("openai").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_sdk_loggers_verbose_in_debug(self):
        configure_logging(level="DEBUG")

        assert logging.getLogger("openai").level == logging.DEBUG

    def test_json_lines_on_stderr(self, capsys):
        configure_logging(level="INFO", format="json")

        get_logger("cashgame.test").info("till_counted", amount="800.00")

        captured = capsys.readouterr()
        assert captured.out == ""
        line = json.loads(captured.err.strip().splitlines()[-1])
        assert line["event"] == "till_counted"
        assert line["amount"] == "800.00"
        assert line["level"] == "info"


class TestSessionContext:
    """Tests for session_context()."""

    def test_binds_only_inside_block(self):
        with session_context("session-1"):
            assert structlog.contextvars.get_contextvars() == {"session_id": "session-1"}

        assert "session_id" not in structlog.contextvars.get_contextvars()

    def test_events_carry_session_id(self, capsys):
        configure_logging(level="INFO", format="json")

        with session_context("session-1"):
            get_logger("cashgame.test").info("till_counted")

        line = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert line["session_id"] == "session-1"
