"""
Module: conftest.py
Description: Shared pytest fixtures for job dispatcher tests.

Provides test settings, a mocked SQS transport and sample SQS messages
so unit tests run without AWS access or real sleeps.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from job_dispatcher.config.settings import MessageSettings, QueueSettings, Settings
from job_dispatcher.sqs_queue.sqs import SQSClient

TEST_QUEUE_URL = "https://sqs.us-east-1.amazonaws.com/123456789012/test-jobs"


def make_settings(**queue_overrides) -> Settings:
    """Build settings without reading the environment or a .env file."""
    queue = {"url": TEST_QUEUE_URL, "long_polling_time_seconds": 5,
             "max_fetching_delay_seconds": 6}
    queue.update(queue_overrides)
    return Settings(
        _env_file=None,
        log_level="DEBUG",
        queue=QueueSettings(**queue),
        message=MessageSettings(job_class_attribute_name="job_class", body_format="json")
    )


def make_message(message_id, job_class=None, receive_count="1", body=None, receipt=True):
    """Build a raw SQS message as returned by ReceiveMessage."""
    message = {
        "MessageId": message_id,
        "Attributes": {"ApproximateReceiveCount": receive_count},
        "MessageAttributes": {},
        "Body": json.dumps(body if body is not None else {"desc": f"job {message_id}"}),
    }
    if job_class is not None:
        message["MessageAttributes"]["job_class"] = {
            "DataType": "String",
            "StringValue": job_class,
        }
    if receipt:
        message["ReceiptHandle"] = f"handle{message_id}"
    return message


@pytest.fixture
def test_settings():
    """Deplete-mode settings pointing at a fake queue."""
    return make_settings()


@pytest.fixture
def sqs_client():
    """
    Provide a mocked SQSClient.

    Every queue operation is an AsyncMock; receive_messages returns an
    empty batch unless a test overrides it.
    """
    client = MagicMock(spec=SQSClient)
    client.queue_url = TEST_QUEUE_URL
    client.receive_messages = AsyncMock(return_value=[])
    client.delete_message = AsyncMock(return_value=None)
    client.change_message_visibility = AsyncMock(return_value=None)
    return client


@pytest.fixture
def sleep():
    """Replacement for asyncio.sleep that returns immediately."""
    return AsyncMock(return_value=None)


@pytest.fixture
def sample_messages():
    """One message each for the default class, WorkerA and WorkerB."""
    return [
        make_message("0"),
        make_message("1", job_class="WorkerA", receive_count="10"),
        make_message("2", job_class="WorkerB"),
    ]


@pytest.fixture
def message_factory():
    """Factory for raw SQS messages."""
    return make_message


@pytest.fixture
def settings_factory():
    """Factory for settings with queue overrides."""
    return make_settings
