"""
Notification Formatter

Pure functions turning transaction status changes into chat text. Nothing
here performs I/O; callers fetch settlement details and deliver the text.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..types import WebhookPayload

if TYPE_CHECKING:
    from .polling import PollingTask

logger = logging.getLogger(__name__)

DIVIDER = "━━━━━━━━━━━━━━━━━━━━"

CURRENCY_SYMBOLS: Dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CNY": "¥",
    "IDR": "Rp",
    "PHP": "₱",
    "THB": "฿",
    "MYR": "RM",
    "SGD": "S$",
    "INR": "₹",
    "VND": "₫",
    "AED": "د.إ",
    "MXN": "$",
}

SYMBOL_FIRST = frozenset({"USD", "EUR", "GBP", "SGD", "MXN"})


def format_currency(amount: float, currency: Optional[str]) -> str:
    code = (currency or "").upper()
    symbol = CURRENCY_SYMBOLS.get(code, code)
    formatted = f"{amount:,.2f}"
    if code in SYMBOL_FIRST:
        return f"{symbol}{formatted}"
    return f"{symbol} {formatted}".strip()


def format_exchange_rate(from_currency: str, to_currency: str, rate: float) -> str:
    formatted = f"{rate:,.4f}".rstrip("0")
    if formatted.endswith("."):
        formatted += "00"
    elif len(formatted.split(".")[1]) < 2:
        formatted += "0"
    return f"1 {from_currency} = {formatted} {to_currency}"


def _simple_completion(transfer_id: str) -> str:
    return (
        "✅ *Transfer Completed!*\n\n"
        f"Transaction ID: {transfer_id}\n\n"
        "Your transfer has been completed successfully!\n\n"
        "Thank you for using TrustBridge! 🌉"
    )


def format_completion_summary(details: Dict[str, Any]) -> str:
    """Settlement breakdown sent when a transfer completes."""
    sender = details.get("sender") or {}
    recipient = details.get("recipient") or {}
    fees = details.get("fees") or {}
    blockchain = details.get("blockchain") or {}

    sender_amount = float(sender.get("amount") or 0)
    recipient_amount = float(recipient.get("amount") or 0)
    fee_amount = float(fees.get("amount") or 0)
    total_charged = float(sender.get("totalCharged") or (sender_amount + fee_amount))
    sender_currency = sender.get("currency") or ""
    recipient_currency = recipient.get("currency") or ""

    lines = [
        "✅ *Transfer Completed Successfully!*",
        "",
        DIVIDER,
        "",
        "📤 *You Sent*",
        f"   {format_currency(sender_amount, sender_currency)}",
        "",
        "📥 *Recipient Receives*",
        f"   {format_currency(recipient_amount, recipient_currency)}",
        f"   {recipient.get('name') or 'N/A'}",
        f"   {recipient.get('bank') or 'N/A'} - {recipient.get('account') or 'N/A'}",
        "",
        DIVIDER,
        "",
        "💳 *Transaction Details*",
        f"   Fee: {format_currency(fee_amount, sender_currency)} ({fees.get('percentage') or 0}%)",
        f"   Total: {format_currency(total_charged, sender_currency)}",
    ]
    if sender_amount:
        lines.append(
            f"   Rate: {format_exchange_rate(sender_currency, recipient_currency, recipient_amount / sender_amount)}"
        )
    lines.append("")

    hub_amount = blockchain.get("mockADAAmount")
    if hub_amount:
        lines += [
            "⛓️ *Blockchain*",
            "   Via mockADA Hub",
            f"   {float(hub_amount):.2f} mockADA used",
            "",
        ]

    lines += [
        DIVIDER,
        "",
        "✨ *Your money is on the way!*",
        "The recipient will receive the funds in their bank account shortly.",
        "",
        "Thank you for using TrustBridge! 🌉",
    ]
    return "\n".join(lines)


def format_status_update(
    task: "PollingTask",
    status: str,
    details: Optional[Dict[str, Any]] = None,
) -> str:
    """Message for a status change of a tracked transfer.

    ``details`` is the settlement breakdown for ``COMPLETED``; without it the
    short completion text is used.
    """
    transfer_id = task.transfer_id
    normalized = (status or "").upper()

    if normalized == "PAID":
        return (
            "🔔 *Transaction Update*\n\n"
            f"Transaction ID: {transfer_id}\n"
            "Status: ✅ Payment Confirmed\n\n"
            "Your payment has been received and is being processed. "
            "You'll receive another update when the transaction is completed."
        )
    if normalized == "PROCESSING":
        return (
            "🔔 *Transaction Update*\n\n"
            f"Transaction ID: {transfer_id}\n"
            "Status: ⏳ Processing\n\n"
            "Your transaction is being processed on the blockchain. This may take a few moments."
        )
    if normalized == "COMPLETED":
        if details:
            try:
                return format_completion_summary(details)
            except (TypeError, ValueError, ZeroDivisionError) as exc:
                logger.error("Error creating completion summary for %s: %s", transfer_id, exc)
        return _simple_completion(transfer_id)
    if normalized == "FAILED":
        return (
            "❌ *Transaction Failed*\n\n"
            f"Transaction ID: {transfer_id}\n\n"
            "Unfortunately, your transaction failed. Please contact support or try again."
        )
    if normalized == "CANCELLED":
        return (
            "⚠️ *Transaction Cancelled*\n\n"
            f"Transaction ID: {transfer_id}\n\n"
            "Your transaction has been cancelled."
        )
    return (
        "🔔 *Transaction Update*\n\n"
        f"Transaction ID: {transfer_id}\n"
        f"Status: {status}\n\n"
        "We'll notify you when there are more updates."
    )


def format_timeout(task: "PollingTask") -> str:
    return (
        "⏰ Transaction Status Update\n\n"
        f"Transaction ID: {task.transfer_id}\n\n"
        "We're still processing your transaction, but automatic updates have stopped. "
        'You can check your transaction status manually by typing "history" or contact support for assistance.\n\n'
        "Thank you for your patience! 🙏"
    )


def format_polling_error(task: "PollingTask") -> str:
    return (
        "⚠️ Status Update Error\n\n"
        f"Transaction ID: {task.transfer_id}\n\n"
        "We encountered an error while checking your transaction status. "
        "Your transaction is likely still being processed. "
        "Please check your transaction history or contact support.\n\n"
        'Type "history" to view your transactions.'
    )


def format_webhook_update(payload: WebhookPayload) -> str:
    """Message for a status pushed by the backend webhook."""
    data = payload.data
    transaction_id = payload.transaction_id
    status = (payload.status or "").upper()

    if status == "PAID":
        amount = f"{data.source_amount} {data.source_currency}" if data and data.source_amount is not None else "N/A"
        return (
            "✅ *Payment Received*\n\n"
            f"Transaction ID: {transaction_id}\n"
            "Status: Payment confirmed\n"
            f"Amount: {amount}\n\n"
            "Your transaction is being processed..."
        )
    if status == "PROCESSING":
        return (
            "⏳ *Transaction Processing*\n\n"
            f"Transaction ID: {transaction_id}\n"
            "Status: Transferring to the recipient account\n\n"
            "Please wait a moment..."
        )
    if status == "COMPLETED":
        lines = [
            "🎉 *Transaction Completed*",
            "",
            f"Transaction ID: {transaction_id}",
            "Status: Funds sent to the recipient account",
        ]
        if data:
            if data.target_amount is not None:
                lines.append(f"Amount sent: {format_currency(data.target_amount, data.target_currency)}")
            lines.append(f"Recipient: {data.recipient_name or 'N/A'}")
            lines.append(f"Bank: {data.recipient_bank or 'N/A'}")
            lines.append(f"Account No.: {data.recipient_account or 'N/A'}")
        lines += ["", "Thank you for using TrustBridge! 🙏"]
        return "\n".join(lines)
    if status == "FAILED":
        reason = (data.failure_reason if data else None) or "Unknown"
        return (
            "❌ *Transaction Failed*\n\n"
            f"Transaction ID: {transaction_id}\n"
            "Status: Transaction could not be processed\n"
            f"Reason: {reason}\n\n"
            "Funds will be returned to your wallet within 1-3 business days."
        )
    if status == "CANCELLED":
        return (
            "🚫 *Transaction Cancelled*\n\n"
            f"Transaction ID: {transaction_id}\n"
            "Status: Transaction has been cancelled\n\n"
            "If you have any questions, please contact customer service."
        )
    return (
        "📋 *Transaction Update*\n\n"
        f"Transaction ID: {transaction_id}\n"
        f"Status: {payload.status}"
    )
