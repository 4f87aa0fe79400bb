"""Structured logging configuration.

Logs go to stderr so they never mix with command output on stdout. The format
is either JSON (for log shipping) or a colored console rendering.

Usage:
    from queue_explorer.logging_config import setup_logging
    import structlog

    setup_logging(log_format="console", log_level="DEBUG")
    logger = structlog.get_logger(__name__)
    logger.info("event_name", key1=value1, key2=value2)
"""

import logging
import os
import sys
from typing import Literal

import structlog
from structlog.types import Processor


def setup_logging(
    log_format: Literal["json", "console"] | None = None,
    log_level: str | None = None,
) -> None:
    """Configure structured logging with structlog.

    Args:
        log_format: Output format - "json" or "console".
                   Falls back to QUEUE_EXPLORER_LOG_FORMAT env var or "console".
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
                  Falls back to QUEUE_EXPLORER_LOG_LEVEL env var or "WARNING".
    """
    log_format = log_format or os.getenv("QUEUE_EXPLORER_LOG_FORMAT", "console")
    log_level = log_level or os.getenv("QUEUE_EXPLORER_LOG_LEVEL", "WARNING")

    numeric_level = getattr(logging, log_level.upper(), logging.WARNING)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=numeric_level,
        force=True,
    )
    # redis logs every reconnect attempt at INFO
    logging.getLogger("redis").setLevel(max(numeric_level, logging.WARNING))

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=False),
        structlog.contextvars.merge_contextvars,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=False))
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logger = structlog.get_logger(__name__)
    logger.debug("logging_initialized", log_format=log_format, log_level=log_level)
