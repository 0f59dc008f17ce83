"""
Module: utils
Description: Package initialization for utility functions.

Current utilities:
- logger: Structured logging configuration and helpers
- backoff: Fibonacci backoff delay shared by fetch, delete and retry
"""

from .backoff import fibonacci_backoff_delay
from .logger import configure_logging, get_logger, set_log_level

__all__ = [
    "fibonacci_backoff_delay",
    "configure_logging",
    "get_logger",
    "set_log_level",
]
