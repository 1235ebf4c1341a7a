"""
Backend REST client

Thin async wrapper over the transaction/authentication service. Every
response must carry ``success: true``; anything else becomes a
``BackendError``. Calls are never retried here.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..errors import AuthenticationError, BackendError
from ..types import (
    AuthResponse,
    CreateTransactionRequest,
    Transaction,
    TransactionStatus,
    TransferCalculation,
)

ModelT = TypeVar("ModelT", bound=BaseModel)


class BackendClient:
    """Client for the TrustBridge transaction backend."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        api_prefix: str = "/api",
        http_client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix.rstrip("/")
        self.logger = logger or logging.getLogger(__name__)
        self.client = http_client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )
        self._access_tokens: Dict[str, str] = {}
        self._user_ids: Dict[str, str] = {}
        self.logger.info("BackendClient initialized with baseURL: %s", self.base_url)

    def _path(self, path: str) -> str:
        return f"{self.api_prefix}{path}"

    async def close(self) -> None:
        await self.client.aclose()

    # ---------------------------
    # Request plumbing
    # ---------------------------
    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        require_success: bool = True,
    ) -> Dict[str, Any]:
        try:
            response = await self.client.request(method, self._path(path), json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            self.logger.error("%s failed: %s", operation, exc)
            raise BackendError(operation, f"{operation} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code >= 400:
            detail = _error_detail(body) or response.reason_phrase
            self.logger.error(
                "%s failed",
                operation,
                extra={"status": response.status_code, "data": body},
            )
            if response.status_code == 401:
                # Stored tokens are no longer trusted
                self.clear_auth()
            raise BackendError(
                operation,
                f"{operation} failed: {detail}",
                status_code=response.status_code,
                payload=body if isinstance(body, dict) else None,
            )

        if not isinstance(body, dict) or (require_success and body.get("success") is not True):
            raise BackendError(operation, f"Invalid response from {operation} endpoint", status_code=response.status_code)
        return body

    # ---------------------------
    # Authentication
    # ---------------------------
    async def authenticate(self, whatsapp_number: str, country_code: str = "+62") -> AuthResponse:
        """Log in (or register) a user by WhatsApp number."""
        self.logger.info("Authenticating user: %s", whatsapp_number)
        try:
            body = await self._request(
                "Authentication",
                "POST",
                "/auth/login",
                json={"whatsappNumber": whatsapp_number, "countryCode": country_code},
                require_success=False,
            )
        except BackendError as exc:
            raise AuthenticationError(exc.message, status_code=exc.status_code, payload=exc.payload) from exc

        try:
            auth = AuthResponse.model_validate(body.get("data") or body)
        except PydanticValidationError as exc:
            raise AuthenticationError("Authentication failed: response carried no tokens") from exc
        self._access_tokens[whatsapp_number] = auth.tokens.access_token
        self._user_ids[whatsapp_number] = auth.user.id
        self.logger.info("User authenticated successfully: %s", whatsapp_number)
        return auth

    async def ensure_authenticated(self, whatsapp_number: str) -> str:
        existing = self._access_tokens.get(whatsapp_number)
        if existing:
            return existing
        auth = await self.authenticate(whatsapp_number)
        return auth.tokens.access_token

    async def _auth_headers(self, whatsapp_number: str) -> Dict[str, str]:
        token = await self.ensure_authenticated(whatsapp_number)
        return {"Authorization": f"Bearer {token}"}

    def clear_auth(self, whatsapp_number: Optional[str] = None) -> None:
        if whatsapp_number:
            self._access_tokens.pop(whatsapp_number, None)
            self._user_ids.pop(whatsapp_number, None)
            self.logger.info("Cleared auth cache for %s", whatsapp_number)
        else:
            self._access_tokens.clear()
            self._user_ids.clear()
            self.logger.info("Cleared all auth cache")

    # ---------------------------
    # Transfers
    # ---------------------------
    async def calculate_transfer(
        self,
        sender_currency: str,
        recipient_currency: str,
        amount: float,
        payment_method: str,
    ) -> TransferCalculation:
        self.logger.info("Calculating transfer: %s %s -> %s", amount, sender_currency, recipient_currency)
        body = await self._request(
            "Transfer calculation",
            "POST",
            "/transfer/calculate",
            json={
                "senderCurrency": sender_currency,
                "recipientCurrency": recipient_currency,
                "amount": amount,
                "paymentMethod": payment_method,
            },
        )
        return _parse(TransferCalculation, body.get("data") or {}, "Transfer calculation")

    async def initiate_transfer(self, whatsapp_number: str, request: CreateTransactionRequest) -> Transaction:
        """Create a transaction; returns it with ``PENDING`` status and optional payment link."""
        self.logger.info(
            "Creating transaction for %s: %s %s -> %s (%s)",
            whatsapp_number,
            request.source_amount,
            request.source_currency,
            request.target_currency,
            request.payment_method,
        )
        headers = await self._auth_headers(whatsapp_number)
        body = await self._request(
            "Transaction creation",
            "POST",
            "/transfer/initiate",
            json=request.to_initiate_payload(),
            headers=headers,
        )

        data = body.get("data") or {}
        if not data.get("id"):
            raise BackendError("Transaction creation", "Invalid response from initiate endpoint")

        try:
            transaction = Transaction(
                id=data["id"],
                sender_id=self._user_ids.get(whatsapp_number, ""),
                recipient_phone=request.recipient_phone,
                source_currency=request.source_currency,
                target_currency=request.target_currency,
                source_amount=request.source_amount,
                target_amount=(data.get("recipient") or {}).get("expectedAmount") or 0.0,
                exchange_rate=(data.get("conversion") or {}).get("exchangeRate") or 0.0,
                fee_amount=(data.get("fees") or {}).get("amount") or 0.0,
                total_amount=(data.get("sender") or {}).get("totalAmount") or 0.0,
                status="PENDING",
                recipient_bank_account=request.recipient_bank_account,
                payment_link=data.get("paymentLink"),
                created_at=data.get("createdAt"),
            )
        except PydanticValidationError as exc:
            self.logger.error("Unexpected transaction payload: %s", data)
            raise BackendError("Transaction creation", "Invalid response from initiate endpoint") from exc
        self.logger.info("Transaction created successfully: %s", transaction.id)
        return transaction

    async def get_transaction_status(self, transfer_id: str) -> TransactionStatus:
        body = await self._request("Transaction status", "GET", f"/transfer/status/{transfer_id}")
        data = dict(body.get("data") or {})
        data.setdefault("transferId", transfer_id)
        return _parse(TransactionStatus, data, "Transaction status")

    async def get_transaction_details(self, transfer_id: str) -> Dict[str, Any]:
        body = await self._request("Transaction details", "GET", f"/transfer/details/{transfer_id}")
        return body.get("data") or {}

    async def get_transaction_history(self, whatsapp_number: str, limit: int = 10) -> List[Dict[str, Any]]:
        self.logger.info("Fetching transaction history for %s", whatsapp_number)
        headers = await self._auth_headers(whatsapp_number)
        body = await self._request(
            "Transaction history",
            "GET",
            "/transactions/history",
            params={"limit": limit},
            headers=headers,
        )
        return list(body.get("transactions") or (body.get("data") or []))


def _parse(model: Type[ModelT], data: Dict[str, Any], operation: str) -> ModelT:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise BackendError(operation, f"Invalid response from {operation} endpoint") from exc


def _error_detail(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    error = body.get("error") or body.get("message")
    details = body.get("details")
    if error and details:
        return f"{error} ({details})"
    return error or details
