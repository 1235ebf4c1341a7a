"""
Transfer Wizard

Drives one chat through the transfer prompts, validating each answer,
quoting the transfer at confirmation and submitting it to the backend.
"""

import logging
from typing import Dict, List, Optional, Sequence

from ...errors import BackendError, QuoteError, ValidationError
from ...services.auth import AuthService, chat_id_to_number
from ...services.backend import BackendClient
from ...services.exchange_rate import ExchangeRateResolver
from ...services.polling import StatusPoller
from ...services.quote import calculate_quote
from ...types import CardDetails, CreateTransactionRequest
from . import prompts
from .models import (
    CARD_STEPS,
    SENDER_CURRENCY_CLASS,
    ConversationSession,
    CurrencyClass,
    PaymentMethod,
    TransferDraft,
    WizardOutcome,
    WizardReply,
    WizardStep,
)
from .validators import (
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

BACK = "back"
CONFIRM = "confirm"
CANCEL = "cancel"


class TransferWizard:
    """
    Per-chat transfer conversation.

    Flow:
    - payment_method -> recipient_name -> recipient_currency -> recipient_bank
      -> recipient_account -> sender_currency
    - MASTERCARD adds card_number -> card_cvc -> card_expiry
    - amount -> confirmation

    "back" is checked before the step's validator. It cancels from the first
    two steps; elsewhere it returns to the previous step and clears that
    step's field.
    """

    # Next step on the card branch; the wallet branch skips CARD_STEPS
    TRANSITIONS: Dict[WizardStep, Optional[WizardStep]] = {
        WizardStep.PAYMENT_METHOD: WizardStep.RECIPIENT_NAME,
        WizardStep.RECIPIENT_NAME: WizardStep.RECIPIENT_CURRENCY,
        WizardStep.RECIPIENT_CURRENCY: WizardStep.RECIPIENT_BANK,
        WizardStep.RECIPIENT_BANK: WizardStep.RECIPIENT_ACCOUNT,
        WizardStep.RECIPIENT_ACCOUNT: WizardStep.SENDER_CURRENCY,
        WizardStep.SENDER_CURRENCY: WizardStep.CARD_NUMBER,
        WizardStep.CARD_NUMBER: WizardStep.CARD_CVC,
        WizardStep.CARD_CVC: WizardStep.CARD_EXPIRY,
        WizardStep.CARD_EXPIRY: WizardStep.AMOUNT,
        WizardStep.AMOUNT: WizardStep.CONFIRMATION,
        WizardStep.CONFIRMATION: None,
    }

    # Draft attribute written by each step
    STEP_FIELDS: Dict[WizardStep, str] = {
        WizardStep.PAYMENT_METHOD: "payment_method",
        WizardStep.RECIPIENT_NAME: "recipient_name",
        WizardStep.RECIPIENT_CURRENCY: "recipient_currency",
        WizardStep.RECIPIENT_BANK: "recipient_bank",
        WizardStep.RECIPIENT_ACCOUNT: "recipient_account",
        WizardStep.SENDER_CURRENCY: "sender_currency",
        WizardStep.CARD_NUMBER: "card_number",
        WizardStep.CARD_CVC: "card_cvc",
        WizardStep.CARD_EXPIRY: "card_expiry",
        WizardStep.AMOUNT: "amount",
    }

    # "back" from these steps cancels the whole transfer
    CANCEL_ON_BACK = frozenset({WizardStep.PAYMENT_METHOD, WizardStep.RECIPIENT_NAME})

    def __init__(
        self,
        resolver: ExchangeRateResolver,
        backend: BackendClient,
        auth: AuthService,
        poller: StatusPoller,
        *,
        fee_rate: float,
        supported_fiat: Sequence[str],
        wallet_tokens: Sequence[str],
        recipient_currencies: Sequence[str],
        logger: Optional[logging.Logger] = None,
    ):
        self.resolver = resolver
        self.backend = backend
        self.auth = auth
        self.poller = poller
        self.fee_rate = fee_rate
        self.supported_fiat = [code.upper() for code in supported_fiat]
        self.wallet_tokens = [code.upper() for code in wallet_tokens]
        self.recipient_currencies = [code.upper() for code in recipient_currencies]
        self.logger = logger or logging.getLogger(__name__)

    # ---------------------------
    # Step graph
    # ---------------------------
    def next_step(self, step: WizardStep, method: Optional[PaymentMethod]) -> Optional[WizardStep]:
        following = self.TRANSITIONS[step]
        while following in CARD_STEPS and method is not PaymentMethod.MASTERCARD:
            following = self.TRANSITIONS[following]
        return following

    def steps_for(self, method: Optional[PaymentMethod]) -> List[WizardStep]:
        steps = [WizardStep.PAYMENT_METHOD]
        while True:
            following = self.next_step(steps[-1], method)
            if following is None:
                return steps
            steps.append(following)

    def previous_step(self, step: WizardStep, method: Optional[PaymentMethod]) -> Optional[WizardStep]:
        steps = self.steps_for(method)
        index = steps.index(step)
        return steps[index - 1] if index > 0 else None

    def sender_currencies(self, method: Optional[PaymentMethod]) -> List[str]:
        currency_class = SENDER_CURRENCY_CLASS.get(method, CurrencyClass.TOKEN)
        if currency_class is CurrencyClass.FIAT:
            return self.supported_fiat
        return self.wallet_tokens

    # ---------------------------
    # Entry points
    # ---------------------------
    def start(self, session: ConversationSession) -> WizardReply:
        session.reset()
        session.step = WizardStep.PAYMENT_METHOD
        self.logger.info("Chat %s started transfer flow", session.chat_id)
        return WizardReply([prompts.payment_method_prompt()], step=session.step)

    def cancel_session(self, session: ConversationSession) -> WizardReply:
        self.logger.info("Chat %s cancelled transfer at %s", session.chat_id, session.step)
        session.reset()
        return WizardReply([prompts.cancelled()], outcome=WizardOutcome.CANCELLED)

    async def handle(self, session: ConversationSession, text: str) -> WizardReply:
        """Apply one chat message to the session's current step."""
        step = session.step
        if step is None:
            return WizardReply()

        user_input = text.strip()
        if user_input.lower() == BACK:
            return self._back(session)

        if step is WizardStep.CONFIRMATION:
            return await self._handle_confirmation(session, user_input)

        try:
            self._apply(session.draft, step, user_input)
        except ValidationError as exc:
            self.logger.info("Chat %s rejected input at %s: %s", session.chat_id, step.value, exc.message)
            return WizardReply([prompts.validation_error(exc.message)], step=step)

        self.logger.info("Chat %s completed step %s", session.chat_id, step.value)
        return await self._enter(session, self.next_step(step, session.draft.payment_method))

    # ---------------------------
    # Steps
    # ---------------------------
    def _apply(self, draft: TransferDraft, step: WizardStep, text: str) -> None:
        if step is WizardStep.PAYMENT_METHOD:
            draft.payment_method = validate_payment_method(text)
        elif step is WizardStep.RECIPIENT_NAME:
            draft.recipient_name = validate_recipient_name(text)
        elif step is WizardStep.RECIPIENT_CURRENCY:
            draft.recipient_currency = validate_currency(text, self.recipient_currencies, field=step.value)
        elif step is WizardStep.RECIPIENT_BANK:
            draft.recipient_bank = validate_bank_name(text)
        elif step is WizardStep.RECIPIENT_ACCOUNT:
            draft.recipient_account = validate_account_number(text)
        elif step is WizardStep.SENDER_CURRENCY:
            allowed = self.sender_currencies(draft.payment_method)
            draft.sender_currency = validate_currency(text, allowed, field=step.value)
        elif step is WizardStep.CARD_NUMBER:
            draft.card_number = validate_card_number(text)
        elif step is WizardStep.CARD_CVC:
            draft.card_cvc = validate_cvc(text)
        elif step is WizardStep.CARD_EXPIRY:
            draft.card_expiry = validate_expiry(text)
        elif step is WizardStep.AMOUNT:
            draft.amount = validate_amount(text)
        else:
            raise ValueError(f"No input handler for step {step}")

    def _prompt_for(self, step: WizardStep, draft: TransferDraft) -> str:
        if step is WizardStep.PAYMENT_METHOD:
            return prompts.payment_method_prompt()
        if step is WizardStep.RECIPIENT_NAME:
            return prompts.recipient_name_prompt()
        if step is WizardStep.RECIPIENT_CURRENCY:
            return prompts.recipient_currency_prompt(self.recipient_currencies)
        if step is WizardStep.RECIPIENT_BANK:
            return prompts.recipient_bank_prompt()
        if step is WizardStep.RECIPIENT_ACCOUNT:
            return prompts.recipient_account_prompt()
        if step is WizardStep.SENDER_CURRENCY:
            method = draft.payment_method or PaymentMethod.WALLET
            return prompts.sender_currency_prompt(method, self.sender_currencies(method))
        if step is WizardStep.CARD_NUMBER:
            return prompts.card_number_prompt(draft.sender_currency or "")
        if step is WizardStep.CARD_CVC:
            return prompts.card_cvc_prompt()
        if step is WizardStep.CARD_EXPIRY:
            return prompts.card_expiry_prompt()
        if step is WizardStep.AMOUNT:
            return prompts.amount_prompt(draft)
        raise ValueError(f"No prompt for step {step}")

    async def _enter(self, session: ConversationSession, step: Optional[WizardStep]) -> WizardReply:
        if step is WizardStep.CONFIRMATION:
            return await self._enter_confirmation(session)
        session.step = step
        return WizardReply([self._prompt_for(step, session.draft)], step=step)

    async def _enter_confirmation(self, session: ConversationSession) -> WizardReply:
        draft = session.draft
        try:
            rate = await self.resolver.resolve(draft.sender_currency, draft.recipient_currency)
            quote = calculate_quote(draft.amount, rate.rate, self.fee_rate)
        except QuoteError as exc:
            self.logger.warning("Quote rejected for chat %s: %s", session.chat_id, exc.message)
            return self._abort_quote(session)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("Quote failed for chat %s: %s", session.chat_id, exc, exc_info=True)
            return self._abort_quote(session)

        draft.rate_result = rate
        draft.quote = quote
        session.step = WizardStep.CONFIRMATION
        if rate.degraded:
            self.logger.warning(
                "Quoting chat %s with degraded %s rate for %s -> %s",
                session.chat_id,
                rate.source.value,
                rate.from_currency,
                rate.to_currency,
            )
        return WizardReply([prompts.confirmation_summary(draft, quote, rate)], step=session.step)

    def _abort_quote(self, session: ConversationSession) -> WizardReply:
        session.reset()
        return WizardReply([prompts.quote_failed()], outcome=WizardOutcome.ABORTED)

    def _back(self, session: ConversationSession) -> WizardReply:
        step = session.step
        if step in self.CANCEL_ON_BACK:
            return self.cancel_session(session)

        draft = session.draft
        previous = self.previous_step(step, draft.payment_method)
        setattr(draft, self.STEP_FIELDS[previous], None)
        if step is WizardStep.CONFIRMATION:
            draft.quote = None
            draft.rate_result = None

        session.step = previous
        self.logger.info("Chat %s went back to %s", session.chat_id, previous.value)
        return WizardReply([prompts.went_back(self._prompt_for(previous, draft))], step=previous)

    # ---------------------------
    # Confirmation
    # ---------------------------
    async def _handle_confirmation(self, session: ConversationSession, user_input: str) -> WizardReply:
        choice = user_input.lower()
        if choice == CANCEL:
            return self.cancel_session(session)
        if choice != CONFIRM:
            return WizardReply([prompts.confirmation_reprompt()], step=session.step)

        draft = session.draft
        self.logger.info("Chat %s confirmed transfer: %s", session.chat_id, draft.to_dict())
        session.reset()
        return await self._submit(session.chat_id, draft)

    def build_request(self, chat_id: str, draft: TransferDraft) -> CreateTransactionRequest:
        number = chat_id_to_number(chat_id)
        card = None
        if draft.payment_method is PaymentMethod.MASTERCARD:
            card = CardDetails(
                number=draft.card_number or "",
                cvc=draft.card_cvc or "",
                expiry=draft.card_expiry or "",
            )
        return CreateTransactionRequest(
            recipient_phone=f"+{number}",
            source_currency=draft.sender_currency,
            target_currency=draft.recipient_currency,
            source_amount=draft.amount,
            recipient_bank_account=draft.recipient_account,
            recipient_bank=draft.recipient_bank,
            recipient_name=draft.recipient_name,
            payment_method=draft.payment_method.value,
            card=card,
        )

    async def _submit(self, chat_id: str, draft: TransferDraft) -> WizardReply:
        number = chat_id_to_number(chat_id)
        try:
            await self.auth.ensure_authenticated(number)
            transaction = await self.backend.initiate_transfer(number, self.build_request(chat_id, draft))
        except BackendError as exc:
            self.logger.error("Create transaction failed for chat %s: %s", chat_id, exc)
            return WizardReply([prompts.submission_failed(str(exc))], outcome=WizardOutcome.ABORTED)

        self.poller.start_polling(transaction.id, chat_id)
        return WizardReply(
            [prompts.submitted(transaction)],
            outcome=WizardOutcome.COMMITTED,
            transaction=transaction,
        )
