"""
Module: test_retry.py
Description: Unit tests for RetryingService.
"""

import pytest
from structlog.testing import capture_logs

from job_dispatcher.errors import TransportErrorKind, VisibilityUpdateError
from job_dispatcher.processing.retry import RetryingService, visibility_delay


class TestVisibilityDelay:
    """Test cases for the visibility timeout computation."""

    @pytest.mark.parametrize("receive_count,expected", [
        ("1", 0),
        ("2", 1),
        ("3", 1),
        ("4", 2),
        ("10", 34),
    ])
    def test_delay_from_receive_count(self, message_factory, receive_count, expected):
        assert visibility_delay(message_factory("1", receive_count=receive_count)) == expected

    def test_missing_receive_count(self, message_factory):
        message = message_factory("1")
        del message["Attributes"]
        assert visibility_delay(message) == 0

    def test_malformed_receive_count(self, message_factory):
        assert visibility_delay(message_factory("1", receive_count="many")) == 0


class TestRetryingService:
    """Test cases for RetryingService.retry."""

    @pytest.mark.asyncio
    async def test_retry_changes_visibility(self, sqs_client, message_factory):
        service = RetryingService(sqs_client)

        await service.retry(message_factory("1", receive_count="10"))

        sqs_client.change_message_visibility.assert_awaited_once_with("handle1", 34)

    @pytest.mark.asyncio
    async def test_no_receipt_handle_makes_no_calls(self, sqs_client, message_factory):
        service = RetryingService(sqs_client)

        await service.retry(message_factory("1", receipt=False))

        sqs_client.change_message_visibility.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_receipt_is_logged(self, sqs_client, message_factory):
        sqs_client.change_message_visibility.side_effect = VisibilityUpdateError(
            "invalid", kind=TransportErrorKind.INVALID_RECEIPT, code="ReceiptHandleIsInvalid"
        )
        service = RetryingService(sqs_client)

        with capture_logs() as logs:
            await service.retry(message_factory("9"))

        assert sqs_client.change_message_visibility.await_count == 1
        assert any(
            entry["event"] == "Message was already removed from the queue."
            and entry["message_id"] == "9"
            for entry in logs
        )

    @pytest.mark.asyncio
    async def test_transient_error_is_not_retried(self, sqs_client, message_factory):
        """Test a failed visibility change is logged once and not repeated."""
        sqs_client.change_message_visibility.side_effect = VisibilityUpdateError("throttled")
        service = RetryingService(sqs_client)

        with capture_logs() as logs:
            await service.retry(message_factory("9"))

        assert sqs_client.change_message_visibility.await_count == 1
        failures = [entry for entry in logs if entry["event"].startswith("Failed to update")]
        assert len(failures) == 1
        assert failures[0]["message_id"] == "9"

    @pytest.mark.asyncio
    async def test_unexpected_error_is_absorbed(self, sqs_client, message_factory):
        sqs_client.change_message_visibility.side_effect = RuntimeError("boom")
        service = RetryingService(sqs_client)

        await service.retry(message_factory("9"))

        assert sqs_client.change_message_visibility.await_count == 1
