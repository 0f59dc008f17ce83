"""
Package: processing
Description: Message processing for the job dispatcher.

Provides message parsing, acknowledgement by deletion, retry by
visibility timeout, and the dispatcher loop composing them.
"""

from .deletion import MessageDeletionService
from .dispatcher import JobDispatcher
from .parser import MessageParser
from .retry import RetryingService

__all__ = [
    "JobDispatcher",
    "MessageDeletionService",
    "MessageParser",
    "RetryingService",
]
