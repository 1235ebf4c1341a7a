"""
Transfer Wizard Module

Per-chat conversation that collects, quotes and submits one transfer.
"""

from .models import (
    ConversationSession,
    CurrencyClass,
    PaymentMethod,
    TransferDraft,
    WizardOutcome,
    WizardReply,
    WizardStep,
)
from .sessions import SessionRegistry
from .state_machine import TransferWizard

__all__ = [
    # Wizard
    "TransferWizard",
    "SessionRegistry",
    # Models
    "WizardStep",
    "WizardOutcome",
    "WizardReply",
    "PaymentMethod",
    "CurrencyClass",
    "TransferDraft",
    "ConversationSession",
]
