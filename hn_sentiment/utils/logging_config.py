"""Logging Configuration for HN Sentiment

This module provides centralized logging configuration using structlog with JSON output.
Discovery, enrichment and thread-summary events are all emitted through the same
pipeline so a single log file captures one complete analysis run.

Usage:
    >>> from hn_sentiment.utils.logging_config import setup_logging
    >>> setup_logging()
    >>> import structlog
    >>> logger = structlog.get_logger()
    >>> logger.info("discovery_started", post_id=41780712)
    >>> logger.warning("comment_analysis_failed", comment_id=41780999, error_type="EnrichmentError")
"""

import logging
import sys
from pathlib import Path
from typing import Optional, TextIO

import structlog


def setup_logging(
    log_dir: str = "logs",
    log_filename: str = "hn_sentiment.log",
    console_level: int = logging.INFO,
    console_stream: Optional[TextIO] = None,
) -> None:
    """Configure structlog with JSON renderer and file output.

    Sets up both Python stdlib logging and structlog to write JSON-formatted
    log entries to logs/hn_sentiment.log. Creates the logs directory if it doesn't exist.

    Args:
        log_dir: Directory for log files, relative to current working directory (default: "logs")
        log_filename: Name of the log file (default: "hn_sentiment.log")
        console_level: Minimum level echoed to the console (default: INFO)
        console_stream: Stream for console output (default: sys.stdout). The
            command-line driver passes sys.stderr so stdout carries only the tree.

    Log entry format (JSON):
        {
            "event": "comments_discovered",
            "level": "info",
            "timestamp": "2026-02-10T12:34:56.789Z",
            "logger": "hn_sentiment.hn",
            ...additional context fields...
        }
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    log_file = log_path / log_filename

    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler(console_stream or sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)


def get_logger(name: str = None):
    """Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__). If None, returns root logger.

    Returns:
        Configured structlog logger ready for use (BoundLoggerLazyProxy)
    """
    return structlog.get_logger(name)
