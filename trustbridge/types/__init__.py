from .requests import ChatReply, InboundChatMessage
from .transactions import (
    TERMINAL_STATUSES,
    AuthResponse,
    AuthTokens,
    CardDetails,
    CreateTransactionRequest,
    Transaction,
    TransactionStatus,
    TransactionStatusValue,
    TransferCalculation,
    TransferFee,
    User,
    WebhookData,
    WebhookPayload,
    is_terminal_status,
)

__all__ = [
    "ChatReply",
    "InboundChatMessage",
    "TERMINAL_STATUSES",
    "AuthResponse",
    "AuthTokens",
    "CardDetails",
    "CreateTransactionRequest",
    "Transaction",
    "TransactionStatus",
    "TransactionStatusValue",
    "TransferCalculation",
    "TransferFee",
    "User",
    "WebhookData",
    "WebhookPayload",
    "is_terminal_status",
]
