"""
Module: test_deletion.py
Description: Unit tests for MessageDeletionService.

Covers the no-receipt shortcut, unbounded retry on transient errors
with Fibonacci waits, and the terminal invalid-receipt case.
"""

from unittest.mock import call

import pytest
from structlog.testing import capture_logs

from job_dispatcher.errors import AcknowledgeError, TransportErrorKind
from job_dispatcher.processing.deletion import MessageDeletionService
from job_dispatcher.utils.backoff import fibonacci_backoff_delay


def transient_error():
    return AcknowledgeError("throttled", kind=TransportErrorKind.TRANSIENT, code="Throttling")


def invalid_receipt_error():
    return AcknowledgeError(
        "receipt handle is invalid",
        kind=TransportErrorKind.INVALID_RECEIPT,
        code="ReceiptHandleIsInvalid"
    )


class TestMessageDeletionService:
    """Test cases for MessageDeletionService.delete."""

    @pytest.mark.asyncio
    async def test_delete_success(self, sqs_client, sleep, message_factory):
        service = MessageDeletionService(sqs_client, sleep=sleep)

        await service.delete(message_factory("1"))

        sqs_client.delete_message.assert_awaited_once_with("handle1")
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_receipt_handle_makes_no_calls(self, sqs_client, sleep, message_factory):
        service = MessageDeletionService(sqs_client, sleep=sleep)

        await service.delete(message_factory("1", receipt=False))

        sqs_client.delete_message.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_receipt_stops_after_one_call(self, sqs_client, sleep, message_factory):
        sqs_client.delete_message.side_effect = invalid_receipt_error()
        service = MessageDeletionService(sqs_client, sleep=sleep)

        with capture_logs() as logs:
            await service.delete(message_factory("7"))

        assert sqs_client.delete_message.await_count == 1
        sleep.assert_not_called()
        assert any(
            entry["event"] == "Message is already removed from the queue."
            and entry["message_id"] == "7"
            for entry in logs
        )

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried_with_backoff(self, sqs_client, sleep, message_factory):
        """Test deletion keeps retrying until it succeeds."""
        failures = 8
        sqs_client.delete_message.side_effect = [transient_error()] * failures + [None]
        service = MessageDeletionService(sqs_client, sleep=sleep)

        with capture_logs() as logs:
            await service.delete(message_factory("3"))

        assert sqs_client.delete_message.await_count == failures + 1
        assert sleep.await_args_list == [
            call(fibonacci_backoff_delay(n)) for n in range(failures)
        ]
        failure_logs = [entry for entry in logs if entry["event"] == "Failed to delete message."]
        assert len(failure_logs) == failures
        assert all(entry["message_id"] == "3" for entry in failure_logs)
        waits = [entry["wait_seconds"] for entry in logs if entry["event"] == "Waiting before retry."]
        assert waits == [fibonacci_backoff_delay(n) for n in range(failures)]

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_retried(self, sqs_client, sleep, message_factory):
        sqs_client.delete_message.side_effect = [RuntimeError("boom"), None]
        service = MessageDeletionService(sqs_client, sleep=sleep)

        await service.delete(message_factory("4"))

        assert sqs_client.delete_message.await_count == 2

    @pytest.mark.asyncio
    async def test_invalid_receipt_after_transient_errors(self, sqs_client, sleep, message_factory):
        sqs_client.delete_message.side_effect = [
            transient_error(),
            transient_error(),
            invalid_receipt_error(),
        ]
        service = MessageDeletionService(sqs_client, sleep=sleep)

        await service.delete(message_factory("5"))

        assert sqs_client.delete_message.await_count == 3
        assert sleep.await_count == 2
