import pytest

from trustbridge.core.transfer.models import PaymentMethod
from trustbridge.core.transfer.validators import (
    validate_account_number,
    validate_amount,
    validate_bank_name,
    validate_card_number,
    validate_currency,
    validate_cvc,
    validate_expiry,
    validate_payment_method,
    validate_recipient_name,
)
from trustbridge.errors import ValidationError


class TestValidators:
    """Named validators normalize good input and reject bad input."""

    def test_payment_method(self):
        assert validate_payment_method(" wallet ") is PaymentMethod.WALLET
        assert validate_payment_method("MasterCard") is PaymentMethod.MASTERCARD
        with pytest.raises(ValidationError):
            validate_payment_method("paypal")

    def test_names_must_not_be_blank(self):
        assert validate_recipient_name("  Budi Santoso ") == "Budi Santoso"
        assert validate_bank_name("BCA") == "BCA"
        with pytest.raises(ValidationError):
            validate_recipient_name("   ")
        with pytest.raises(ValidationError):
            validate_bank_name("")

    def test_currency_membership_is_case_insensitive(self):
        assert validate_currency("idr", ["IDR"]) == "IDR"
        with pytest.raises(ValidationError) as exc_info:
            validate_currency("sgd", ["IDR"], field="recipient_currency")
        assert exc_info.value.field == "recipient_currency"

    @pytest.mark.parametrize("value", ["1234567890", "007"])
    def test_account_number_digits(self, value):
        assert validate_account_number(value) == value

    @pytest.mark.parametrize("value", ["12-34", "abc", "", "12 34"])
    def test_account_number_rejects_non_digits(self, value):
        with pytest.raises(ValidationError):
            validate_account_number(value)

    @pytest.mark.parametrize("value,expected", [("100", 100.0), ("0.5", 0.5), (" 12.75 ", 12.75)])
    def test_amount_accepts_positive_numbers(self, value, expected):
        assert validate_amount(value) == expected

    @pytest.mark.parametrize("value", ["-5", "0", "abc", "nan", "inf", ""])
    def test_amount_rejects_non_positive_or_non_finite(self, value):
        with pytest.raises(ValidationError):
            validate_amount(value)

    def test_card_number_strips_whitespace(self):
        assert validate_card_number("4111 1111 1111 1111") == "4111111111111111"

    @pytest.mark.parametrize("value", ["411111111111", "41111111111111111111", "4111-1111-1111-1111"])
    def test_card_number_length_and_digits(self, value):
        with pytest.raises(ValidationError):
            validate_card_number(value)

    @pytest.mark.parametrize("value,valid", [("123", True), ("1234", True), ("12", False), ("12345", False), ("12a", False)])
    def test_cvc(self, value, valid):
        if valid:
            assert validate_cvc(value) == value
        else:
            with pytest.raises(ValidationError):
                validate_cvc(value)

    @pytest.mark.parametrize("value", ["01/27", "12/2030"])
    def test_expiry_valid(self, value):
        assert validate_expiry(value) == value

    @pytest.mark.parametrize("value", ["13/27", "00/27", "1/27", "12/203", "1227"])
    def test_expiry_invalid(self, value):
        with pytest.raises(ValidationError):
            validate_expiry(value)
