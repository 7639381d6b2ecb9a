"""Structured logging configuration.

Pattern: structlog with standard library integration, JSON output.
"""
import logging
import os
import sys
import uuid

import structlog

from psy_scheduler import config


def setup_structured_logging(log_level: str = None):
    """
    Configure structured logging for the scheduler.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR). Falls back to
            the SCHEDULER_LOG_LEVEL environment variable, then INFO.
    """
    level_name = (log_level or os.getenv(config.ENV_LOG_LEVEL) or "INFO").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name}")

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get logger instance with structured logging.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def generate_operation_id() -> str:
    """Generate unique id used to correlate log lines of one store call."""
    return f"op-{uuid.uuid4().hex[:12]}"
