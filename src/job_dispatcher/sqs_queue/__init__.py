"""
Package: sqs_queue
Description: SQS transport for the job dispatcher.

Provides an async client for receiving, deleting and re-timing
messages on a single SQS queue.
"""

from .sqs import SQS_RECEIVE_MESSAGE_BATCH_LIMIT, SQSClient

__all__ = [
    "SQSClient",
    "SQS_RECEIVE_MESSAGE_BATCH_LIMIT",
]
