"""User-facing texts for the transfer wizard."""

from typing import Sequence

from ...logging_config import mask_card_number
from ...services.exchange_rate import RateResult
from ...services.quote import TransferQuote
from ...types import Transaction
from .models import PaymentMethod, TransferDraft

SERVICES_MENU = (
    "📋 Available services:\n"
    '• Type "transfer" - Start a new transfer\n'
    '• Type "history" - View transaction history\n'
    '• Type "help" - List available commands'
)

COMING_SOON_CURRENCIES = (
    ("SGD", "Singapore Dollar"),
    ("MYR", "Malaysian Ringgit"),
    ("THB", "Thai Baht"),
    ("PHP", "Philippine Peso"),
    ("BND", "Brunei Dollar"),
)

CURRENCY_NAMES = {"IDR": "Indonesian Rupiah"}


def payment_method_prompt() -> str:
    return (
        "💸 Let's start your transfer process!\n\n"
        "How would you like to pay?\n"
        '• Type "WALLET" - Pay via Wallet (redirect to payment link)\n'
        '• Type "MASTERCARD" - Pay via Mastercard (enter card details here)\n\n'
        '💡 Type "back" to cancel transfer'
    )


def recipient_name_prompt() -> str:
    return "👤 Please provide the recipient's full name:\n💡 Type \"back\" to cancel transfer"


def recipient_currency_prompt(recipient_currencies: Sequence[str]) -> str:
    available = "\n".join(f"• {code} - {CURRENCY_NAMES.get(code, code)}" for code in recipient_currencies)
    coming_soon = "\n".join(
        f"• {code} - {name}" for code, name in COMING_SOON_CURRENCIES if code not in recipient_currencies
    )
    text = f"💱 What currency should the recipient receive?\n\nAvailable option:\n{available}\n"
    if coming_soon:
        text += f"\nComing soon:\n{coming_soon}\n"
    return text + f'\nPlease type "{recipient_currencies[0]}":\n💡 Type "back" to change recipient name'


def recipient_bank_prompt() -> str:
    return (
        "🏦 Please provide the recipient's bank name (e.g., BCA, Mandiri, BNI, etc.):\n\n"
        '💡 Type "back" to change currency'
    )


def recipient_account_prompt() -> str:
    return "🔢 Please provide the recipient's account number:\n\n💡 Type \"back\" to change bank name"


def sender_currency_prompt(method: PaymentMethod, allowed: Sequence[str]) -> str:
    codes = ", ".join(allowed)
    if method is PaymentMethod.MASTERCARD:
        text = f"🌍 Which currency will you pay with? Choose one of: {codes}\n\nPlease type the 3-letter code (e.g. {allowed[0]})."
    else:
        text = f"🌍 Which wallet currency will you pay with? Choose one of: {codes}\n\nPlease type the code (e.g. {allowed[0]})."
    return text + '\n💡 Type "back" to change account number'


def card_number_prompt(currency: str) -> str:
    return f"💳 You chose to pay with {currency}. Please enter your card number:\n💡 Type \"back\" to change currency"


def card_cvc_prompt() -> str:
    return "🔒 Enter CVC (3 or 4 digits):\n💡 Type \"back\" to change card number"


def card_expiry_prompt() -> str:
    return "📅 Enter card expiry (MM/YY or MM/YYYY):\n💡 Type \"back\" to change CVC"


def amount_prompt(draft: TransferDraft) -> str:
    if draft.payment_method is PaymentMethod.MASTERCARD:
        hint = "change card expiry"
        lead = "💰 Card saved. "
    else:
        hint = "change currency"
        lead = "💰 "
    return f"{lead}How much {draft.sender_currency} would you like to transfer?\n\n💡 Type \"back\" to {hint}"


def validation_error(reason: str) -> str:
    return f"❌ {reason}\n\nPlease try again, or type \"back\" to return to the previous step."


def confirmation_summary(draft: TransferDraft, quote: TransferQuote, rate: RateResult) -> str:
    sender = draft.sender_currency
    recipient = draft.recipient_currency
    lines = [
        "📋 Please confirm your transfer details:",
        "",
        f"💳 Payment Method: {draft.payment_method.value}",
        f"👤 Recipient Name: {draft.recipient_name}",
        f"💱 Recipient Currency: {recipient}",
        f"🏦 Bank: {draft.recipient_bank}",
        f"🔢 Account Number: {draft.recipient_account}",
        f"💱 Sender Currency: {sender}",
        f"💰 Amount: {quote.amount:g} {sender}",
    ]
    if draft.card_number:
        lines.append(f"💳 Card: {mask_card_number(draft.card_number)}")

    if sender != recipient:
        lines += [
            "",
            "📊 Exchange Rate Information:",
            f"💱 Rate: 1 {sender} = {quote.rate:,.3f} {recipient}",
            f"💰 Recipient will receive: {quote.recipient_amount:,.3f} {recipient}",
        ]
        if rate.degraded:
            lines.append("⚠️ Live rates are unavailable right now; this is an estimated rate.")

    lines += [
        "",
        "💳 Fee Information:",
        f"📊 Transfer Fee ({quote.fee_percentage:.1f}%): {quote.fee:.2f} {sender}",
        f"💰 Total Amount: {quote.total:.2f} {sender}",
        "",
        'Type "confirm" to proceed, "cancel" to abort, or "back" to change amount.',
    ]
    return "\n".join(lines)


def confirmation_reprompt() -> str:
    return 'Please type "confirm" to proceed, "cancel" to abort, or "back" to change amount.'


def quote_failed() -> str:
    return "❌ Sorry, there was an error calculating the exchange rate. Please try again or contact support."


def submitted(transaction: Transaction) -> str:
    text = (
        "✅ Transfer request submitted successfully!\n\n"
        f"Transaction ID: {transaction.id}\n"
        f"Status: {transaction.status}\n"
    )
    if transaction.payment_link:
        text += f"\n💳 Payment Link:\n{transaction.payment_link}\n\nPlease complete your payment using the link above."
    return text + "\n\n🔔 You will receive automatic updates when the status changes."


def submission_failed(error: str) -> str:
    return f"❌ Failed to create transaction: {error or 'Unknown error'}.\n\nPlease try again later or contact support."


def cancelled() -> str:
    return f"❌ Transfer cancelled. How else can I help you today?\n\n{SERVICES_MENU}"


def went_back(prompt: str) -> str:
    return f"↩️ Going back.\n\n{prompt}"
