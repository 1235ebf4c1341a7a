from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class TransactionStatusValue(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset(
    {
        TransactionStatusValue.COMPLETED.value,
        TransactionStatusValue.FAILED.value,
        TransactionStatusValue.CANCELLED.value,
    }
)


def is_terminal_status(status: str) -> bool:
    return (status or "").upper() in TERMINAL_STATUSES


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class User(_CamelModel):
    id: str
    whatsapp_number: str = Field(default="", alias="whatsappNumber")
    country_code: str = Field(default="", alias="countryCode")
    status: str = Field(default="PENDING_KYC", description="PENDING_KYC, VERIFIED or SUSPENDED")
    kyc_nft_token_id: Optional[str] = Field(default=None, alias="kycNftTokenId")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")


class AuthTokens(_CamelModel):
    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(default="", alias="refreshToken")


class AuthResponse(_CamelModel):
    message: str = ""
    user: User
    tokens: AuthTokens


class CardDetails(_CamelModel):
    number: str
    cvc: str
    expiry: str


class CreateTransactionRequest(_CamelModel):
    recipient_phone: str = Field(alias="recipientPhone")
    source_currency: str = Field(alias="sourceCurrency")
    target_currency: str = Field(alias="targetCurrency")
    source_amount: float = Field(alias="sourceAmount")
    recipient_bank_account: Optional[str] = Field(default=None, alias="recipientBankAccount")
    recipient_bank: Optional[str] = Field(default=None, alias="recipientBank")
    recipient_name: Optional[str] = Field(default=None, alias="recipientName")
    payment_method: str = Field(default="WALLET", alias="paymentMethod")
    card: Optional[CardDetails] = None

    def to_initiate_payload(self) -> Dict[str, Any]:
        """Body for ``POST /transfer/initiate``."""
        return {
            "paymentMethod": self.payment_method,
            "senderCurrency": self.source_currency,
            "senderAmount": self.source_amount,
            "recipientName": self.recipient_name,
            "recipientCurrency": self.target_currency,
            "recipientBank": self.recipient_bank,
            "recipientAccount": self.recipient_bank_account,
            "cardDetails": self.card.model_dump() if self.card else None,
        }


class Transaction(_CamelModel):
    id: str
    sender_id: str = Field(default="", alias="senderId")
    recipient_phone: str = Field(default="", alias="recipientPhone")
    source_currency: str = Field(alias="sourceCurrency")
    target_currency: str = Field(alias="targetCurrency")
    source_amount: float = Field(alias="sourceAmount")
    target_amount: float = Field(default=0.0, alias="targetAmount")
    exchange_rate: float = Field(default=0.0, alias="exchangeRate")
    fee_amount: float = Field(default=0.0, alias="feeAmount")
    total_amount: float = Field(default=0.0, alias="totalAmount")
    status: str = TransactionStatusValue.PENDING.value
    blockchain_tx_hash: Optional[str] = Field(default=None, alias="blockchainTxHash")
    recipient_bank_account: Optional[str] = Field(default=None, alias="recipientBankAccount")
    payment_link: Optional[str] = Field(default=None, alias="paymentLink")
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    completed_at: Optional[str] = Field(default=None, alias="completedAt")


class TransactionStatus(_CamelModel):
    transfer_id: str = Field(alias="transferId")
    status: str
    blockchain_tx: Optional[str] = Field(default=None, alias="blockchainTx")


class TransferFee(_CamelModel):
    percentage: float = 0.0
    amount: float = 0.0


class TransferCalculation(_CamelModel):
    sender_amount: float = Field(alias="senderAmount")
    recipient_amount: float = Field(alias="recipientAmount")
    exchange_rate: float = Field(alias="exchangeRate")
    fee: TransferFee = Field(default_factory=TransferFee)
    total_amount: float = Field(alias="totalAmount")


class WebhookData(_CamelModel):
    source_amount: Optional[float] = Field(default=None, alias="sourceAmount")
    source_currency: Optional[str] = Field(default=None, alias="sourceCurrency")
    target_amount: Optional[float] = Field(default=None, alias="targetAmount")
    target_currency: Optional[str] = Field(default=None, alias="targetCurrency")
    recipient_name: Optional[str] = Field(default=None, alias="recipientName")
    recipient_bank: Optional[str] = Field(default=None, alias="recipientBank")
    recipient_account: Optional[str] = Field(default=None, alias="recipientAccount")
    failure_reason: Optional[str] = Field(default=None, alias="failureReason")
    blockchain_tx_hash: Optional[str] = Field(default=None, alias="blockchainTxHash")


class WebhookPayload(_CamelModel):
    transaction_id: str = Field(alias="transactionId")
    recipient_phone: str = Field(alias="recipientPhone")
    status: str
    timestamp: Optional[int] = None
    signature: Optional[str] = None
    data: Optional[WebhookData] = None
