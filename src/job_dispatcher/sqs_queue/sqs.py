"""
Module: sqs.py
Description: SQS client for the dispatcher's queue operations.

Handles receiving message batches, deleting processed messages and
changing message visibility for retries. botocore errors are translated
here into typed dispatcher errors carrying a TransportErrorKind.
"""

from typing import Any, Dict, List, Optional

from aioboto3 import Session
from botocore.exceptions import BotoCoreError, ClientError

from job_dispatcher.errors import (
    AcknowledgeError,
    FetchError,
    QueueConfigurationError,
    TransportErrorKind,
    VisibilityUpdateError,
)
from job_dispatcher.models.job import RawMessage
from job_dispatcher.utils.logger import get_logger

logger = get_logger(__name__)

SQS_RECEIVE_MESSAGE_BATCH_LIMIT = 10

INVALID_RECEIPT_ERROR_CODES = frozenset({
    'ReceiptHandleIsInvalid',
    'AWS.SimpleQueueService.ReceiptHandleIsInvalid',
})
NONEXISTENT_QUEUE_ERROR_CODES = frozenset({
    'QueueDoesNotExist',
    'AWS.SimpleQueueService.NonExistentQueue',
})


def _classify(error: ClientError) -> TransportErrorKind:
    if error.response['Error'].get('Code') in INVALID_RECEIPT_ERROR_CODES:
        return TransportErrorKind.INVALID_RECEIPT
    return TransportErrorKind.TRANSIENT


class SQSClient:
    """
    SQS client bound to a single queue.

    Each operation opens a short-lived aioboto3 client from a shared
    session, so the instance holds no connection state between calls.
    """

    def __init__(
        self,
        queue_url: str,
        region_name: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None
    ):
        """
        Initialize SQS client.

        Args:
            queue_url: URL of the SQS queue
            region_name: Optional AWS region
            aws_access_key_id: Optional access key id
            aws_secret_access_key: Optional secret access key
            endpoint_url: Optional endpoint override

        Raises:
            ValueError: If queue_url is empty or not a string
        """
        if not queue_url or not isinstance(queue_url, str):
            raise ValueError("queue_url must be a non-empty string")

        self.queue_url = queue_url
        self.endpoint_url = endpoint_url
        self.session = Session(
            aws_access_key_id=aws_access_key_id,
            aws_secret_access_key=aws_secret_access_key,
            region_name=region_name
        )

        logger.info(
            "SQS client initialized",
            queue_url=queue_url,
            endpoint_url=endpoint_url
        )

    def _client(self):
        return self.session.client('sqs', endpoint_url=self.endpoint_url)

    async def receive_messages(
        self,
        max_messages: int = SQS_RECEIVE_MESSAGE_BATCH_LIMIT,
        wait_seconds: int = 5
    ) -> List[RawMessage]:
        """
        Long-poll the queue for a batch of messages.

        Requests the ApproximateReceiveCount attribute and all message
        attributes for every message.

        Args:
            max_messages: Batch size, capped at the SQS limit of 10
            wait_seconds: Long-poll wait in seconds

        Returns:
            Raw SQS messages, possibly empty

        Raises:
            QueueConfigurationError: If the queue does not exist
            FetchError: If the receive call fails for any other reason
        """
        params: Dict[str, Any] = {
            'QueueUrl': self.queue_url,
            'AttributeNames': ['ApproximateReceiveCount'],
            'MessageAttributeNames': ['All'],
            'MaxNumberOfMessages': min(max_messages, SQS_RECEIVE_MESSAGE_BATCH_LIMIT),
            'WaitTimeSeconds': wait_seconds,
        }

        try:
            async with self._client() as sqs:
                response = await sqs.receive_message(**params)

        except ClientError as e:
            code = e.response['Error'].get('Code')
            if code in NONEXISTENT_QUEUE_ERROR_CODES:
                raise QueueConfigurationError(
                    f"Queue {self.queue_url} does not exist"
                ) from e
            raise FetchError(
                e.response['Error'].get('Message', str(e)),
                kind=TransportErrorKind.TRANSIENT,
                code=code
            ) from e

        except BotoCoreError as e:
            raise FetchError(str(e)) from e

        return (response or {}).get('Messages') or []

    async def delete_message(self, receipt_handle: str) -> None:
        """
        Delete a message by receipt handle.

        Raises:
            AcknowledgeError: With kind INVALID_RECEIPT when the handle is
                no longer valid, TRANSIENT otherwise
        """
        try:
            async with self._client() as sqs:
                await sqs.delete_message(
                    QueueUrl=self.queue_url,
                    ReceiptHandle=receipt_handle
                )

        except ClientError as e:
            raise AcknowledgeError(
                e.response['Error'].get('Message', str(e)),
                kind=_classify(e),
                code=e.response['Error'].get('Code')
            ) from e

        except BotoCoreError as e:
            raise AcknowledgeError(str(e)) from e

    async def change_message_visibility(
        self,
        receipt_handle: str,
        visibility_timeout: int
    ) -> None:
        """
        Set the remaining visibility timeout of an in-flight message.

        Raises:
            VisibilityUpdateError: With kind INVALID_RECEIPT when the handle
                is no longer valid, TRANSIENT otherwise
        """
        try:
            async with self._client() as sqs:
                await sqs.change_message_visibility(
                    QueueUrl=self.queue_url,
                    ReceiptHandle=receipt_handle,
                    VisibilityTimeout=visibility_timeout
                )

        except ClientError as e:
            raise VisibilityUpdateError(
                e.response['Error'].get('Message', str(e)),
                kind=_classify(e),
                code=e.response['Error'].get('Code')
            ) from e

        except BotoCoreError as e:
            raise VisibilityUpdateError(str(e)) from e
