"""Unit tests for logging configuration

Tests verify that structlog is properly configured with:
- JSON output format
- File logging to logs/hn_sentiment.log
- Automatic log directory creation
- Console level and stream selection
- Exception stack traces for ERROR level
"""

import io
import json
import logging
import os
import shutil
import tempfile

import pytest
import structlog

from hn_sentiment.utils.logging_config import setup_logging, get_logger


@pytest.fixture
def temp_log_dir():
    """Create a temporary directory for test logs."""
    temp_dir = tempfile.mkdtemp(prefix="test_logs_")
    yield temp_dir
    if os.path.exists(temp_dir):
        shutil.rmtree(temp_dir)


@pytest.fixture
def clean_logging():
    """Reset logging configuration after each test."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()


def _read_entries(log_file, event):
    with open(log_file, "r") as f:
        return [json.loads(line) for line in f if event in line]


class TestSetupLogging:
    """Test setup_logging() function."""

    def test_creates_logs_directory(self, temp_log_dir, clean_logging):
        """setup_logging creates the log directory if it doesn't exist."""
        log_dir = os.path.join(temp_log_dir, "logs")
        assert not os.path.exists(log_dir)

        setup_logging(log_dir=log_dir, console_stream=io.StringIO())

        assert os.path.isdir(log_dir)

    def test_writes_json_to_default_file(self, temp_log_dir, clean_logging):
        """Entries land in hn_sentiment.log as JSON with the expected fields."""
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir, console_stream=io.StringIO())

        logger = get_logger("hn_sentiment.hn")
        logger.info("comments_discovered", root_id=8863, discovered=71)

        entries = _read_entries(os.path.join(log_dir, "hn_sentiment.log"), "comments_discovered")
        assert len(entries) == 1
        entry = entries[0]
        assert entry["event"] == "comments_discovered"
        assert entry["level"] == "info"
        assert entry["logger"] == "hn_sentiment.hn"
        assert entry["root_id"] == 8863
        assert entry["discovered"] == 71
        assert "timestamp" in entry

    def test_debug_written_to_file_only(self, temp_log_dir, clean_logging):
        """The file captures DEBUG; the console honours console_level."""
        log_dir = os.path.join(temp_log_dir, "logs")
        console = io.StringIO()
        setup_logging(log_dir=log_dir, console_level=logging.WARNING, console_stream=console)

        logger = get_logger("test.levels")
        logger.debug("debug_event")
        logger.warning("warning_event")

        log_file = os.path.join(log_dir, "hn_sentiment.log")
        assert len(_read_entries(log_file, "debug_event")) == 1
        assert len(_read_entries(log_file, "warning_event")) == 1
        assert "debug_event" not in console.getvalue()
        assert "warning_event" in console.getvalue()

    def test_custom_log_filename(self, temp_log_dir, clean_logging):
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir, log_filename="custom.log", console_stream=io.StringIO())

        get_logger().info("test_message")

        assert os.path.exists(os.path.join(log_dir, "custom.log"))

    def test_error_with_exception_includes_traceback(self, temp_log_dir, clean_logging):
        log_dir = os.path.join(temp_log_dir, "logs")
        setup_logging(log_dir=log_dir, console_stream=io.StringIO())

        logger = get_logger("test.error")
        try:
            raise RuntimeError("provider exploded")
        except RuntimeError:
            logger.error("chat_completion_api_error", exc_info=True)

        entries = _read_entries(os.path.join(log_dir, "hn_sentiment.log"), "chat_completion_api_error")
        assert "exception" in entries[0]
        assert "provider exploded" in entries[0]["exception"]


class TestGetLogger:
    """Test get_logger() function."""

    def test_get_logger_returns_usable_logger(self, temp_log_dir, clean_logging):
        setup_logging(log_dir=os.path.join(temp_log_dir, "logs"), console_stream=io.StringIO())

        logger = get_logger(__name__)

        assert hasattr(logger, "info")
        assert hasattr(logger, "warning")
        assert hasattr(logger, "error")
