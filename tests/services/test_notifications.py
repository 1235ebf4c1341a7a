"""
Tests for the notification formatter.
"""

import pytest

from trustbridge.services.notifications import (
    format_currency,
    format_exchange_rate,
    format_polling_error,
    format_status_update,
    format_timeout,
    format_webhook_update,
)
from trustbridge.services.polling import PollingTask
from trustbridge.types import WebhookPayload


@pytest.fixture
def task() -> PollingTask:
    return PollingTask(transfer_id="tx-42", chat_id="628111@c.us", start_time=0.0)


class TestStatusTemplates:
    """One distinct template per status value."""

    @pytest.mark.parametrize(
        "status,marker",
        [
            ("PAID", "Payment Confirmed"),
            ("processing", "Processing"),
            ("COMPLETED", "Transfer Completed!"),
            ("FAILED", "Transaction Failed"),
            ("CANCELLED", "Transaction Cancelled"),
        ],
    )
    def test_known_statuses(self, task, status, marker):
        text = format_status_update(task, status)

        assert marker in text
        assert "tx-42" in text

    def test_unknown_status_uses_default(self, task):
        text = format_status_update(task, "ON_HOLD")

        assert "Status: ON_HOLD" in text
        assert "more updates" in text

    def test_completed_with_details_renders_summary(self, task):
        details = {
            "sender": {"amount": 100, "currency": "USD", "totalCharged": 101.5},
            "recipient": {"amount": 1_550_000, "currency": "IDR", "name": "Siti", "bank": "BNI", "account": "998877"},
            "fees": {"amount": 1.5, "percentage": 1.5},
            "blockchain": {"mockADAAmount": 250},
        }

        text = format_status_update(task, "COMPLETED", details)

        assert "Transfer Completed Successfully" in text
        assert "$100.00" in text
        assert "Rp 1,550,000.00" in text
        assert "Siti" in text and "BNI - 998877" in text
        assert "Rate: 1 USD = 15,500.00 IDR" in text
        assert "250.00 mockADA used" in text

    def test_timeout_and_error_are_distinct(self, task):
        timeout = format_timeout(task)
        error = format_polling_error(task)

        assert timeout != error
        assert "tx-42" in timeout and "tx-42" in error


class TestFormatting:

    def test_symbol_first_currencies(self):
        assert format_currency(1234.5, "USD") == "$1,234.50"
        assert format_currency(10, "EUR") == "€10.00"

    def test_symbol_after_and_unknown_codes(self):
        assert format_currency(5000, "IDR") == "Rp 5,000.00"
        assert format_currency(3, "ADA") == "ADA 3.00"

    def test_exchange_rate_decimals(self):
        assert format_exchange_rate("USD", "IDR", 15500) == "1 USD = 15,500.00 IDR"
        assert format_exchange_rate("IDR", "USD", 0.0645) == "1 IDR = 0.0645 USD"
        assert format_exchange_rate("EUR", "USD", 1.1) == "1 EUR = 1.10 USD"


class TestWebhookTemplates:

    def test_completed_webhook_lists_recipient(self):
        payload = WebhookPayload.model_validate(
            {
                "transactionId": "tx-9",
                "recipientPhone": "+628111",
                "status": "completed",
                "data": {"targetAmount": 1000000, "targetCurrency": "IDR", "recipientName": "Budi"},
            }
        )

        text = format_webhook_update(payload)

        assert "Transaction Completed" in text
        assert "Rp 1,000,000.00" in text
        assert "Recipient: Budi" in text

    def test_failed_webhook_shows_reason(self):
        payload = WebhookPayload.model_validate(
            {
                "transactionId": "tx-9",
                "recipientPhone": "+628111",
                "status": "FAILED",
                "data": {"failureReason": "Bank rejected"},
            }
        )

        assert "Reason: Bank rejected" in format_webhook_update(payload)
