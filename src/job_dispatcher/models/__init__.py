"""
Module: models
Description: Package initialization for data models.

This package contains the data models used by the dispatcher:
- Job: Normalized queue message handed to handlers
- DriveMode: Fetch loop termination policy
- FetchOutcome: Result of one fetch cycle
"""

from .job import (
    DEFAULT_JOB_CLASS,
    UNKNOWN_MESSAGE_ID,
    DriveMode,
    FetchOutcome,
    FetchStatus,
    Job,
    JobHandler,
    RawMessage,
)

__all__ = [
    "DEFAULT_JOB_CLASS",
    "UNKNOWN_MESSAGE_ID",
    "DriveMode",
    "FetchOutcome",
    "FetchStatus",
    "Job",
    "JobHandler",
    "RawMessage",
]
