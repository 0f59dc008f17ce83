"""
Module: processing/retry.py
Description: Hands failed jobs back to the queue for redelivery.

Shortens the message's visibility timeout to a Fibonacci backoff of its
receive count so SQS redelivers it sooner than the queue default. A
failed visibility change is logged and not retried; the message then
comes back after its original timeout.
"""

from typing import Optional

from job_dispatcher.errors import QueueTransportError
from job_dispatcher.models.job import RawMessage, message_id_of, receipt_handle_of
from job_dispatcher.sqs_queue.sqs import SQSClient
from job_dispatcher.utils.backoff import fibonacci_backoff_delay
from job_dispatcher.utils.logger import get_logger

logger = get_logger(__name__)


def _receive_count(message: RawMessage) -> Optional[int]:
    raw = (message.get('Attributes') or {}).get('ApproximateReceiveCount')
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def visibility_delay(message: RawMessage) -> int:
    """
    Visibility timeout for the next delivery of a failed message.

    Args:
        message: Raw SQS message

    Returns:
        fibonacci_backoff_delay(receive count - 1), or 0 when SQS did not
        report a receive count
    """
    receive_count = _receive_count(message)
    if receive_count is None:
        return 0
    return fibonacci_backoff_delay(receive_count - 1)


class RetryingService:
    """Schedules redelivery of failed messages through visibility timeouts."""

    def __init__(self, sqs_client: SQSClient):
        self.sqs_client = sqs_client

    async def retry(self, message: RawMessage) -> None:
        """
        Make a message visible again after its backoff delay.

        Never raises.

        Args:
            message: Raw SQS message whose job failed
        """
        receipt_handle = receipt_handle_of(message)
        message_id = message_id_of(message)
        if not receipt_handle:
            return

        delay_time = visibility_delay(message)
        logger.error(
            "Delaying message to retry.",
            message_id=message_id,
            wait_seconds=delay_time
        )

        try:
            await self.sqs_client.change_message_visibility(receipt_handle, delay_time)

        except QueueTransportError as e:
            if e.is_invalid_receipt:
                logger.error(
                    "Message was already removed from the queue.",
                    message_id=message_id,
                    error_code=e.code
                )
            else:
                logger.error(
                    "Failed to update message visibility timeout, "
                    "message will be retried after current visibility timeout.",
                    message_id=message_id,
                    error=str(e),
                    error_code=e.code
                )

        except Exception as e:
            logger.error(
                "Unexpected error updating message visibility timeout",
                message_id=message_id,
                error=str(e),
                error_type=type(e).__name__
            )
