"""
Module: logger.py
Description: Structured logging configuration for the job dispatcher.

Configures structlog for JSON output so every fetch, dispatch and
acknowledgement step produces one machine-readable line, tagged with
the SQS message id where one applies.

Key Components:
- JSON output for CloudWatch compatibility
- Timestamp and log level processors
- configure_logging() and set_log_level() for level filtering
- get_logger() helper function

Dependencies: structlog, logging, datetime
"""

import logging

import structlog
from datetime import datetime, timezone

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def _add_timestamp(logger, method_name, event_dict):
    """
    Add ISO 8601 timestamp to log entries.

    Args:
        logger: Logger instance
        method_name: Log method name (info, error, etc.)
        event_dict: Current log event dictionary

    Returns:
        Updated event dictionary with timestamp
    """
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    """Add log level to event dictionary."""
    event_dict["level"] = method_name.upper()
    return event_dict


def _filtering_logger(log_level: str):
    level_name = (log_level or "").upper()
    if level_name not in VALID_LOG_LEVELS:
        raise ValueError(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")
    return structlog.make_filtering_bound_logger(getattr(logging, level_name))


def configure_logging(log_level: str = "INFO") -> None:
    """
    Configure structlog for JSON output filtered at the given level.

    Loggers are not cached on first use, so later configuration changes
    apply to module-level loggers that were created earlier.

    Args:
        log_level: Standard level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Raises:
        ValueError: If log_level is not a standard level name
    """
    structlog.configure(
        processors=[
            _add_timestamp,
            _add_log_level,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.WriteLoggerFactory(),
        wrapper_class=_filtering_logger(log_level),
        cache_logger_on_first_use=False,
    )


configure_logging()


def set_log_level(log_level: str) -> None:
    """
    Change the level filter without touching the processor chain.

    Args:
        log_level: Standard level name

    Raises:
        ValueError: If log_level is not a standard level name
    """
    structlog.configure(wrapper_class=_filtering_logger(log_level))


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Deleting message from queue.", message_id="msg-1")
        {"event": "Deleting message from queue.", "message_id": "msg-1", "timestamp": "...", "level": "INFO"}
    """
    return structlog.get_logger(name)
