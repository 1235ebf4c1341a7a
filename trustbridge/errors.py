"""
Error taxonomy

Validation errors are recovered inside the wizard, provider errors inside the
rate resolver. Backend errors are surfaced to the user and never retried.
"""

from typing import Any, Dict, Optional


class TrustBridgeError(Exception):
    """Base class for all orchestration errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TrustBridgeError):
    """Chat input rejected by a wizard step validator."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class RateProviderError(TrustBridgeError):
    """An exchange rate provider could not produce a rate."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class QuoteError(TrustBridgeError):
    """Building the confirmation quote failed."""


class BackendError(TrustBridgeError):
    """The transaction backend rejected or failed a request."""

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code
        self.payload = payload or {}

    def __str__(self) -> str:
        return self.message


class AuthenticationError(BackendError):
    """Login against the backend failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None):
        super().__init__("auth", message, status_code=status_code, payload=payload)


class WebhookSignatureError(TrustBridgeError):
    """Inbound webhook failed signature verification."""
