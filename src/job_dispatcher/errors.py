"""
Module: errors.py
Description: Exception hierarchy for the job dispatcher.

Transport failures are classified once, at the SQS boundary, into a
closed set of kinds so that callers branch on an enum rather than on
AWS error code strings.

Key Components:
- TransportErrorKind: INVALID_RECEIPT (terminal) or TRANSIENT
- QueueTransportError and its per-operation subclasses
- ParseError, HandlerError for per-message failures
- QueueConfigurationError for fatal startup problems
"""

from enum import Enum
from typing import Optional


class TransportErrorKind(str, Enum):
    """Classification of a failed SQS call."""

    INVALID_RECEIPT = "invalid_receipt"
    TRANSIENT = "transient"


class JobDispatcherError(Exception):
    """Base class for all job dispatcher errors."""


class QueueConfigurationError(JobDispatcherError):
    """The queue cannot be used as configured. Never absorbed by the dispatcher."""


class QueueTransportError(JobDispatcherError):
    """
    A queue operation failed.

    Attributes:
        kind: Classification of the failure
        code: AWS error code when the service returned one
    """

    def __init__(
        self,
        message: str,
        kind: TransportErrorKind = TransportErrorKind.TRANSIENT,
        code: Optional[str] = None
    ):
        super().__init__(message)
        self.kind = kind
        self.code = code

    @property
    def is_invalid_receipt(self) -> bool:
        return self.kind is TransportErrorKind.INVALID_RECEIPT


class FetchError(QueueTransportError):
    """ReceiveMessage failed (unreachable, throttled, ...)."""


class AcknowledgeError(QueueTransportError):
    """DeleteMessage failed."""


class VisibilityUpdateError(QueueTransportError):
    """ChangeMessageVisibility failed."""


class ParseError(JobDispatcherError):
    """Message body is malformed for the configured body format."""


class HandlerError(JobDispatcherError):
    """
    A job handler failed.

    Handlers may raise this to signal a failed job explicitly; any other
    exception raised by a handler is treated the same way.
    """
