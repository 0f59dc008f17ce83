"""
Package: job_dispatcher
Description: Polling SQS consumer that dispatches messages to job handlers.

Messages are fetched in batches, routed by job class to registered
handlers, deleted on success and handed back to the queue with a
Fibonacci backoff on failure.
"""

from .config.settings import Settings, load_settings
from .errors import HandlerError, ParseError, QueueConfigurationError
from .models.job import DriveMode, Job, JobHandler
from .processing.dispatcher import JobDispatcher

__all__ = [
    "DriveMode",
    "HandlerError",
    "Job",
    "JobDispatcher",
    "JobHandler",
    "ParseError",
    "QueueConfigurationError",
    "Settings",
    "load_settings",
]
