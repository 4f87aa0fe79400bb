"""Tests for logging configuration."""

import json
import logging
import re

import pytest
import structlog

from queue_explorer.logging_config import setup_logging


def strip_ansi(text):
    """Strip ANSI escape sequences from text."""
    ansi_escape = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
    return ansi_escape.sub("", text)


def parse_json_lines(output):
    """Parse output containing multiple JSON lines."""
    lines = output.strip().split("\n")
    return [json.loads(line) for line in lines if line.strip()]


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration around each test."""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestLoggingSetup:
    """Test logging setup and configuration."""

    def test_json_format_goes_to_stderr(self, capsys):
        setup_logging(log_format="json", log_level="INFO")

        logger = structlog.get_logger("queue_explorer.test")
        logger.info("queue_scan_finished", connection="local", queue_count=3)

        captured = capsys.readouterr()
        assert captured.out == ""

        entries = parse_json_lines(captured.err)
        log_entry = next((e for e in entries if e.get("event") == "queue_scan_finished"), None)
        assert log_entry is not None
        assert log_entry["connection"] == "local"
        assert log_entry["queue_count"] == 3
        assert log_entry["level"] == "info"
        assert log_entry["logger"] == "queue_explorer.test"
        assert "timestamp" in log_entry

    def test_console_format(self, capsys):
        setup_logging(log_format="console", log_level="INFO")

        structlog.get_logger().info("connection_established", connection="local")

        output = strip_ansi(capsys.readouterr().err)
        assert "connection_established" in output
        assert "connection=local" in output

    def test_default_level_is_warning(self, monkeypatch, capsys):
        monkeypatch.delenv("QUEUE_EXPLORER_LOG_LEVEL", raising=False)
        monkeypatch.delenv("QUEUE_EXPLORER_LOG_FORMAT", raising=False)
        setup_logging()

        logger = structlog.get_logger()
        logger.info("info_event")
        logger.warning("warning_event")

        output = strip_ansi(capsys.readouterr().err)
        assert "info_event" not in output
        assert "warning_event" in output

    def test_setup_from_env(self, monkeypatch, capsys):
        monkeypatch.setenv("QUEUE_EXPLORER_LOG_FORMAT", "json")
        monkeypatch.setenv("QUEUE_EXPLORER_LOG_LEVEL", "DEBUG")

        setup_logging()

        structlog.get_logger().debug("debug_event", test=True)

        entries = parse_json_lines(capsys.readouterr().err)
        log_entry = next((e for e in entries if e.get("event") == "debug_event"), None)
        assert log_entry is not None
        assert log_entry["level"] == "debug"

    def test_redis_logger_stays_quiet(self):
        setup_logging(log_level="DEBUG")

        assert logging.getLogger("redis").level == logging.WARNING


class TestContext:
    def test_bound_context_is_rendered(self, capsys):
        setup_logging(log_format="json", log_level="INFO")
        structlog.contextvars.bind_contextvars(connection="staging")

        structlog.get_logger("queue_explorer.test").info("event_with_context")

        entries = parse_json_lines(capsys.readouterr().err)
        log_entry = next((e for e in entries if e.get("event") == "event_with_context"), None)
        assert log_entry["connection"] == "staging"
