"""
Transfer Wizard Models

Steps, payment branches and the per-chat draft collected by the wizard.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ...services.exchange_rate import RateResult
from ...services.quote import TransferQuote
from ...types import Transaction


class WizardStep(str, Enum):
    """Wizard steps in prompt order."""

    PAYMENT_METHOD = "payment_method"
    RECIPIENT_NAME = "recipient_name"
    RECIPIENT_CURRENCY = "recipient_currency"
    RECIPIENT_BANK = "recipient_bank"
    RECIPIENT_ACCOUNT = "recipient_account"
    SENDER_CURRENCY = "sender_currency"
    CARD_NUMBER = "card_number"            # MASTERCARD only
    CARD_CVC = "card_cvc"                  # MASTERCARD only
    CARD_EXPIRY = "card_expiry"            # MASTERCARD only
    AMOUNT = "amount"
    CONFIRMATION = "confirmation"


class WizardOutcome(str, Enum):
    """How a wizard run ended."""

    COMMITTED = "committed"    # submitted to the backend
    CANCELLED = "cancelled"    # user cancelled or backed out of the first steps
    ABORTED = "aborted"        # quote or submission failure discarded the draft


class PaymentMethod(str, Enum):
    WALLET = "WALLET"
    MASTERCARD = "MASTERCARD"


class CurrencyClass(str, Enum):
    FIAT = "fiat"
    TOKEN = "token"


# Sender currency class per payment branch
SENDER_CURRENCY_CLASS: Dict[PaymentMethod, CurrencyClass] = {
    PaymentMethod.WALLET: CurrencyClass.TOKEN,
    PaymentMethod.MASTERCARD: CurrencyClass.FIAT,
}

CARD_STEPS = (WizardStep.CARD_NUMBER, WizardStep.CARD_CVC, WizardStep.CARD_EXPIRY)


@dataclass
class TransferDraft:
    """Fields collected so far. Only holds values that passed their step's validator."""

    payment_method: Optional[PaymentMethod] = None
    recipient_name: Optional[str] = None
    recipient_currency: Optional[str] = None
    recipient_bank: Optional[str] = None
    recipient_account: Optional[str] = None
    sender_currency: Optional[str] = None
    card_number: Optional[str] = None
    card_cvc: Optional[str] = None
    card_expiry: Optional[str] = None
    amount: Optional[float] = None

    # Computed on entering confirmation, dropped when leaving it
    quote: Optional[TransferQuote] = None
    rate_result: Optional[RateResult] = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.__dataclass_fields__)

    def to_dict(self) -> Dict[str, Any]:
        """Loggable view; card data is never included."""
        return {
            "paymentMethod": self.payment_method.value if self.payment_method else None,
            "recipientName": self.recipient_name,
            "recipientCurrency": self.recipient_currency,
            "recipientBank": self.recipient_bank,
            "recipientAccount": self.recipient_account,
            "senderCurrency": self.sender_currency,
            "amount": self.amount,
            "hasCard": self.card_number is not None,
        }


@dataclass
class ConversationSession:
    """One chat's wizard position and draft. ``step is None`` means idle."""

    chat_id: str
    step: Optional[WizardStep] = None
    draft: TransferDraft = field(default_factory=TransferDraft)
    # Set while the "cancel current transfer?" yes/no question is open
    pending_interrupt: bool = False

    @property
    def active(self) -> bool:
        return self.step is not None

    def reset(self) -> None:
        self.step = None
        self.draft = TransferDraft()
        self.pending_interrupt = False


@dataclass
class WizardReply:
    messages: List[str] = field(default_factory=list)
    step: Optional[WizardStep] = None
    outcome: Optional[WizardOutcome] = None
    transaction: Optional[Transaction] = None
