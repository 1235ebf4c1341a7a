"""
Field validators shared by both payment branches.

Each validator takes raw chat text and returns the normalized value, or
raises ``ValidationError`` carrying the user-facing reason.
"""

import math
import re
from typing import Iterable

from ...errors import ValidationError
from .models import PaymentMethod

_DIGITS = re.compile(r"^\d+$")
_CARD_NUMBER = re.compile(r"^\d{13,19}$")
_CVC = re.compile(r"^\d{3,4}$")
_EXPIRY = re.compile(r"^(0[1-9]|1[0-2])/(\d{2}|\d{4})$")


def validate_payment_method(text: str) -> PaymentMethod:
    try:
        return PaymentMethod(text.strip().upper())
    except ValueError:
        raise ValidationError(
            "payment_method",
            'Invalid payment method. Please type either "WALLET" or "MASTERCARD".',
        ) from None


def validate_recipient_name(text: str) -> str:
    name = text.strip()
    if not name:
        raise ValidationError("recipient_name", "Recipient name cannot be empty.")
    return name


def validate_bank_name(text: str) -> str:
    bank = text.strip()
    if not bank:
        raise ValidationError("recipient_bank", "Bank name cannot be empty.")
    return bank


def validate_currency(text: str, allowed: Iterable[str], field: str = "currency") -> str:
    """Case-insensitive membership check; returns the upper-cased code."""
    allowed_codes = [code.upper() for code in allowed]
    code = text.strip().upper()
    if code not in allowed_codes:
        raise ValidationError(field, f"Unsupported currency. Please choose one of: {', '.join(allowed_codes)}")
    return code


def validate_account_number(text: str) -> str:
    account = text.strip()
    if not _DIGITS.match(account):
        raise ValidationError("recipient_account", "Account number should only contain numbers.")
    return account


def validate_amount(text: str) -> float:
    try:
        amount = float(text.strip())
    except ValueError:
        amount = math.nan
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("amount", "Please enter a valid amount (positive number only).")
    return amount


def validate_card_number(text: str) -> str:
    digits = re.sub(r"\s+", "", text)
    if not _CARD_NUMBER.match(digits):
        raise ValidationError("card_number", "Invalid card number. Please enter digits only (13-19 digits).")
    return digits


def validate_cvc(text: str) -> str:
    cvc = text.strip()
    if not _CVC.match(cvc):
        raise ValidationError("card_cvc", "Invalid CVC. Please enter 3 or 4 digits.")
    return cvc


def validate_expiry(text: str) -> str:
    expiry = text.strip()
    if not _EXPIRY.match(expiry):
        raise ValidationError("card_expiry", "Invalid expiry format. Use MM/YY or MM/YYYY.")
    return expiry
