"""
Module: job.py
Description: Job data models for the dispatcher.

Defines the immutable Job record handed to handlers, the drive modes
that bound a dispatcher run, and the outcome of a single fetch cycle.

Key Components:
- RawMessage: SQS ReceiveMessage item, passed through untouched
- Job: Normalized message (id, attributes, job class, body)
- JobHandler: Callable registered per job class
- DriveMode: loop, deplete or single
- FetchOutcome: Result of one fetch-and-process cycle

Dependencies: pydantic, enum, dataclasses, typing
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

RawMessage = Dict[str, Any]

DEFAULT_JOB_CLASS = "default"
UNKNOWN_MESSAGE_ID = "Unknown_Message_ID"


class Job(BaseModel):
    """
    A queue message normalized for a job handler.

    Attributes:
        id: SQS message id, or Unknown_Message_ID when missing
        attributes: String and Number message attributes, by name
        job_class: Routing key for the handler registry
        body: Raw body string, or the parsed JSON value
        original_message: The SQS message this job was built from
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="SQS message identifier")
    attributes: Dict[str, str] = Field(
        default_factory=dict,
        description="String-valued message attributes"
    )
    job_class: str = Field(
        default=DEFAULT_JOB_CLASS,
        min_length=1,
        description="Job class used to route to a handler"
    )
    body: Any = Field(default="", description="Message body (string or JSON value)")
    original_message: RawMessage = Field(
        default_factory=dict,
        description="Raw SQS message"
    )


JobHandler = Callable[[Job], Union[None, Awaitable[None]]]


class DriveMode(str, Enum):
    """How many fetch cycles a dispatcher run executes."""

    LOOP = "loop"
    DEPLETE = "deplete"
    SINGLE = "single"


class FetchStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchOutcome:
    """
    Result of one fetch-and-process cycle.

    failure_count is the number of consecutive failed receives after this
    cycle: reset to 0 on OK and EMPTY, incremented on FAILED.
    """

    status: FetchStatus
    failure_count: int = 0
    message_count: int = 0

    @classmethod
    def ok(cls, message_count: int) -> "FetchOutcome":
        return cls(FetchStatus.OK, 0, message_count)

    @classmethod
    def empty(cls) -> "FetchOutcome":
        return cls(FetchStatus.EMPTY)

    @classmethod
    def failed(cls, failure_count: int) -> "FetchOutcome":
        return cls(FetchStatus.FAILED, failure_count)


def receipt_handle_of(message: RawMessage) -> Optional[str]:
    """Receipt handle of a raw message, or None if it was never claimed."""
    return message.get('ReceiptHandle') or None


def message_id_of(message: RawMessage) -> str:
    return message.get('MessageId') or UNKNOWN_MESSAGE_ID
