"""
Module: dispatcher.py
Description: Fetch, dispatch and acknowledge loop for SQS jobs.

Pulls batches from the queue, routes every message to the handler
registered for its job class, deletes it on success and shortens its
visibility timeout on failure. How many fetch cycles a run executes is
governed by the configured drive mode.

Key Components:
- JobDispatcher: Handler registry plus the fetch loop
- Drive modes: single (one cycle), deplete (until empty), loop (forever)
- Fetch failures: Fibonacci backoff capped at max_fetching_delay_seconds

Dependencies: asyncio, settings, sqs_queue, processing services, logger
"""

import asyncio
import inspect
from typing import Dict, List, Optional, Set

from job_dispatcher.config.settings import Settings
from job_dispatcher.errors import QueueConfigurationError
from job_dispatcher.models.job import (
    DriveMode,
    FetchOutcome,
    FetchStatus,
    JobHandler,
    RawMessage,
    message_id_of,
)
from job_dispatcher.processing.deletion import MessageDeletionService, Sleep
from job_dispatcher.processing.parser import MessageParser
from job_dispatcher.processing.retry import RetryingService
from job_dispatcher.sqs_queue.sqs import SQS_RECEIVE_MESSAGE_BATCH_LIMIT, SQSClient
from job_dispatcher.utils.backoff import fibonacci_backoff_delay
from job_dispatcher.utils.logger import get_logger, set_log_level

logger = get_logger(__name__)


class JobDispatcher:
    """
    Polling SQS consumer dispatching messages to job handlers.

    Handlers are registered per job class before start(); the last
    registration for a class wins. Messages of a batch are processed
    concurrently, batches strictly one after another.

    Attributes:
        settings: Dispatcher settings
        sqs_client: Transport bound to the configured queue
        message_parser: Raw message to Job converter
        deletion_service: Acknowledges processed messages
        retrying_service: Schedules redelivery of failed messages

    Example:
        >>> dispatcher = JobDispatcher(load_settings())
        >>> dispatcher.register("resize_image", resize_image)
        >>> await dispatcher.start()
    """

    def __init__(
        self,
        settings: Settings,
        handlers: Optional[Dict[str, JobHandler]] = None,
        sqs_client: Optional[SQSClient] = None,
        sleep: Sleep = asyncio.sleep
    ):
        """
        Initialize the dispatcher.

        Args:
            settings: Validated dispatcher settings
            handlers: Optional initial job class to handler mapping
            sqs_client: Optional transport; built from settings when omitted
            sleep: Coroutine used for every backoff wait

        Raises:
            ValueError: If the queue URL is empty
        """
        self.settings = settings
        set_log_level(settings.log_level)

        if sqs_client is None:
            aws = settings.aws
            sqs_client = SQSClient(
                settings.queue.url,
                region_name=aws.region if aws else None,
                aws_access_key_id=aws.access_key_id if aws else None,
                aws_secret_access_key=aws.secret_access_key if aws else None,
                endpoint_url=settings.queue.endpoint_url
            )

        self.sqs_client = sqs_client
        self.message_parser = MessageParser(
            job_class_attribute_name=settings.message.job_class_attribute_name,
            body_format=settings.message.body_format
        )
        self.deletion_service = MessageDeletionService(sqs_client, sleep=sleep)
        self.retrying_service = RetryingService(sqs_client)

        self._sleep = sleep
        self._registry: Dict[str, JobHandler] = {}
        self._pending_acknowledgements: Set[asyncio.Future] = set()

        for job_class, handler in (handlers or {}).items():
            self.register(job_class, handler)

        logger.info(
            "Job dispatcher initialized",
            queue_url=settings.queue.url,
            drive_mode=settings.queue.drive_mode.value,
            long_polling_time_seconds=settings.queue.long_polling_time_seconds
        )

    def register(self, job_class: str, handler: JobHandler) -> None:
        """
        Register the handler for a job class, replacing any previous one.

        Args:
            job_class: Job class routed to this handler
            handler: Plain function or coroutine function taking a Job

        Raises:
            ValueError: If handler is not callable
        """
        if not callable(handler):
            raise ValueError("handler must be callable")
        self._registry[job_class] = handler

    on = register

    @property
    def handlers(self) -> Dict[str, JobHandler]:
        return dict(self._registry)

    async def start(self, max_fetches: Optional[int] = None) -> None:
        """
        Run fetch cycles until the drive mode terminates the run.

        Message and handler failures never propagate; fetch failures feed
        the backoff and termination logic. Outstanding background
        deletions are awaited before returning.

        Args:
            max_fetches: Optional upper bound on the number of fetch cycles

        Raises:
            QueueConfigurationError: If the queue does not exist
        """
        drive_mode = self.settings.queue.drive_mode
        failure_count = 0
        fetches = 0

        try:
            while max_fetches is None or fetches < max_fetches:
                outcome = await self.fetch_and_process(failure_count)
                fetches += 1
                failure_count = outcome.failure_count
                if self._should_terminate(drive_mode, outcome):
                    break
        finally:
            await self._drain_acknowledgements()

        logger.info(
            "Job dispatcher stopped",
            drive_mode=drive_mode.value,
            fetches=fetches
        )

    def _should_terminate(self, drive_mode: DriveMode, outcome: FetchOutcome) -> bool:
        if drive_mode is DriveMode.SINGLE:
            return True
        if drive_mode is DriveMode.DEPLETE:
            if outcome.status is FetchStatus.EMPTY:
                return True
            return (
                outcome.status is FetchStatus.FAILED
                and outcome.failure_count > self.settings.queue.max_fetching_retry
            )
        return False

    async def fetch_and_process(self, failure_count: int = 0) -> FetchOutcome:
        """
        Run one fetch cycle.

        Args:
            failure_count: Consecutive failed receives before this cycle

        Returns:
            OK when messages were processed, EMPTY when the queue had none,
            FAILED with the incremented failure count when the receive failed
        """
        logger.info("Fetching messages from queue.", queue_url=self.settings.queue.url)

        try:
            messages = await self.sqs_client.receive_messages(
                max_messages=SQS_RECEIVE_MESSAGE_BATCH_LIMIT,
                wait_seconds=self.settings.queue.long_polling_time_seconds
            )

        except QueueConfigurationError:
            raise

        except Exception as e:
            wait_time = fibonacci_backoff_delay(
                failure_count,
                self.settings.queue.max_fetching_delay_seconds
            )
            logger.error(
                "Failed to receive messages from queue.",
                error=str(e),
                error_code=getattr(e, 'code', None),
                error_type=type(e).__name__
            )
            logger.error("Waiting before retry.", wait_seconds=wait_time)
            await self._sleep(wait_time)
            return FetchOutcome.failed(failure_count + 1)

        if not messages:
            logger.info("No job received, queue is empty.")
            return FetchOutcome.empty()

        logger.info(f"Received {len(messages)} messages, processing.")
        await self._process_messages(messages)
        return FetchOutcome.ok(len(messages))

    async def _process_messages(self, messages: List[RawMessage]) -> None:
        await asyncio.gather(*(self.process_message(message) for message in messages))

    async def process_message(self, message: RawMessage) -> None:
        """
        Parse, route and settle a single message.

        Unroutable messages are deleted: a message without a handler
        would not become routable on redelivery.

        Args:
            message: Raw SQS message
        """
        try:
            job = self.message_parser.parse(message)
        except Exception as e:
            logger.error(
                "Failed to parse message.",
                message_id=message_id_of(message),
                error=str(e),
                error_type=type(e).__name__
            )
            await self.retrying_service.retry(message)
            return

        handler = self._registry.get(job.job_class)
        if handler is not None:
            logger.info("Starting.", message_id=job.id, job_class=job.job_class)
            try:
                result = handler(job)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    "Failed to process message.",
                    message_id=job.id,
                    job_class=job.job_class,
                    error=str(e),
                    error_type=type(e).__name__
                )
                await self.retrying_service.retry(message)
                return
        else:
            logger.error(
                f"No job handler registered for {job.job_class} messages.",
                message_id=job.id,
                job_class=job.job_class
            )

        logger.info("Deleting message from queue.", message_id=job.id)
        await self._acknowledge(message)
        logger.info("Finished.", message_id=job.id)

    async def _acknowledge(self, message: RawMessage) -> None:
        if self.settings.queue.await_acknowledgement:
            await self.deletion_service.delete(message)
            return

        task = asyncio.ensure_future(self.deletion_service.delete(message))
        self._pending_acknowledgements.add(task)
        task.add_done_callback(self._pending_acknowledgements.discard)

    async def _drain_acknowledgements(self) -> None:
        if self._pending_acknowledgements:
            await asyncio.gather(*list(self._pending_acknowledgements))
