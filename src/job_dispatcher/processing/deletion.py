"""
Module: deletion.py
Description: Acknowledges processed messages by deleting them from SQS.

Deletion is retried without limit on transient errors, waiting a
Fibonacci backoff between attempts. An invalid receipt handle ends the
attempt: the message is already gone or has been claimed elsewhere.

Dependencies: tenacity, asyncio, logger
"""

import asyncio
from typing import Awaitable, Callable

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_never

from job_dispatcher.errors import QueueTransportError
from job_dispatcher.models.job import RawMessage, message_id_of, receipt_handle_of
from job_dispatcher.sqs_queue.sqs import SQSClient
from job_dispatcher.utils.backoff import fibonacci_backoff_delay
from job_dispatcher.utils.logger import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


def _should_retry(error: BaseException) -> bool:
    if isinstance(error, QueueTransportError):
        return not error.is_invalid_receipt
    return isinstance(error, Exception)


def _wait(retry_state: RetryCallState) -> int:
    # first failure waits delay(0), the next delay(1), ...
    return fibonacci_backoff_delay(retry_state.attempt_number - 1)


class MessageDeletionService:
    """Deletes messages by receipt handle, retrying until it succeeds."""

    def __init__(self, sqs_client: SQSClient, sleep: Sleep = asyncio.sleep):
        """
        Initialize deletion service.

        Args:
            sqs_client: Transport bound to the consumed queue
            sleep: Coroutine used to wait between attempts
        """
        self.sqs_client = sqs_client
        self._sleep = sleep

    async def delete(self, message: RawMessage) -> None:
        """
        Delete a message from the queue.

        Never raises. Returns immediately for a message without a receipt
        handle, since it was never claimed by this consumer.

        Args:
            message: Raw SQS message to acknowledge
        """
        receipt_handle = receipt_handle_of(message)
        message_id = message_id_of(message)
        logger.debug("Deleting message", message_id=message_id)
        if not receipt_handle:
            return

        def log_failure(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            logger.error(
                "Failed to delete message.",
                message_id=message_id,
                error=str(error),
                error_code=getattr(error, 'code', None),
                attempt=retry_state.attempt_number
            )
            logger.error(
                "Waiting before retry.",
                message_id=message_id,
                wait_seconds=retry_state.next_action.sleep
            )

        retrying = AsyncRetrying(
            sleep=self._sleep,
            stop=stop_never,
            wait=_wait,
            retry=retry_if_exception(_should_retry),
            before_sleep=log_failure,
            reraise=True
        )

        try:
            async for attempt in retrying:
                with attempt:
                    await self.sqs_client.delete_message(receipt_handle)

        except QueueTransportError as e:
            logger.error(
                "Message is already removed from the queue.",
                message_id=message_id,
                error_code=e.code
            )
