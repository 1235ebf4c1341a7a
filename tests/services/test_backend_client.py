"""
Tests for the backend REST client, using httpx.MockTransport.
"""

import json
from typing import Callable, List

import httpx
import pytest

from trustbridge.errors import AuthenticationError, BackendError
from trustbridge.services.backend import BackendClient
from trustbridge.types import CardDetails, CreateTransactionRequest

BASE_URL = "https://backend.test"

AUTH_BODY = {
    "success": True,
    "data": {
        "message": "ok",
        "user": {"id": "user-1", "whatsappNumber": "628111", "countryCode": "+62"},
        "tokens": {"accessToken": "access-1", "refreshToken": "refresh-1"},
    },
}


def make_client(handler: Callable[[httpx.Request], httpx.Response]) -> BackendClient:
    http_client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return BackendClient(BASE_URL, http_client=http_client)


def transfer_request(**overrides) -> CreateTransactionRequest:
    fields = dict(
        recipient_phone="+628111",
        source_currency="USD",
        target_currency="IDR",
        source_amount=100.0,
        recipient_bank_account="1234567890",
        recipient_bank="BCA",
        recipient_name="Budi",
        payment_method="MASTERCARD",
        card=CardDetails(number="4111111111111111", cvc="123", expiry="12/30"),
    )
    fields.update(overrides)
    return CreateTransactionRequest(**fields)


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_login_stores_token(self):
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=AUTH_BODY)

        client = make_client(handler)
        auth = await client.authenticate("628111")

        assert auth.user.id == "user-1"
        assert await client.ensure_authenticated("628111") == "access-1"
        assert len(seen) == 1
        assert seen[0].url.path == "/api/auth/login"
        assert json.loads(seen[0].content) == {"whatsappNumber": "628111", "countryCode": "+62"}

    @pytest.mark.asyncio
    async def test_login_error_raises_authentication_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "Invalid number", "details": "too short"})

        client = make_client(handler)

        with pytest.raises(AuthenticationError) as exc_info:
            await client.authenticate("1")

        assert "Invalid number (too short)" in str(exc_info.value)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_login_without_tokens_rejected(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "data": {"user": {"id": "u"}}})

        client = make_client(handler)

        with pytest.raises(AuthenticationError):
            await client.authenticate("628111")


class TestTransfers:

    @pytest.mark.asyncio
    async def test_initiate_transfer_maps_response(self):
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/api/auth/login":
                return httpx.Response(200, json=AUTH_BODY)
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "id": "tx-1",
                        "paymentLink": "https://pay.test/tx-1",
                        "recipient": {"expectedAmount": 1550000},
                        "conversion": {"exchangeRate": 15500},
                        "fees": {"amount": 1.5},
                        "sender": {"totalAmount": 101.5},
                    },
                },
            )

        client = make_client(handler)
        transaction = await client.initiate_transfer("628111", transfer_request())

        assert transaction.id == "tx-1"
        assert transaction.status == "PENDING"
        assert transaction.payment_link == "https://pay.test/tx-1"
        assert transaction.target_amount == 1550000
        assert transaction.total_amount == 101.5
        assert transaction.sender_id == "user-1"

        initiate = seen[-1]
        assert initiate.url.path == "/api/transfer/initiate"
        assert initiate.headers["Authorization"] == "Bearer access-1"
        body = json.loads(initiate.content)
        assert body["paymentMethod"] == "MASTERCARD"
        assert body["senderAmount"] == 100.0
        assert body["recipientAccount"] == "1234567890"
        assert body["cardDetails"] == {"number": "4111111111111111", "cvc": "123", "expiry": "12/30"}

    @pytest.mark.asyncio
    async def test_malformed_transaction_payload_is_backend_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/auth/login":
                return httpx.Response(200, json=AUTH_BODY)
            return httpx.Response(200, json={"success": True, "data": {"id": 42}})

        client = make_client(handler)

        with pytest.raises(BackendError, match="Invalid response from initiate endpoint") as exc_info:
            await client.initiate_transfer("628111", transfer_request())

        assert exc_info.value.operation == "Transaction creation"

    @pytest.mark.asyncio
    async def test_malformed_status_payload_is_backend_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"success": True, "data": {"status": None}})

        client = make_client(handler)

        with pytest.raises(BackendError):
            await client.get_transaction_status("tx-1")

    @pytest.mark.asyncio
    async def test_response_without_success_flag_is_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": {"status": "PAID"}})

        client = make_client(handler)

        with pytest.raises(BackendError, match="Invalid response from Transaction status endpoint"):
            await client.get_transaction_status("tx-1")

    @pytest.mark.asyncio
    async def test_status_defaults_transfer_id(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/transfer/status/tx-1"
            return httpx.Response(200, json={"success": True, "data": {"status": "PROCESSING"}})

        client = make_client(handler)
        status = await client.get_transaction_status("tx-1")

        assert status.transfer_id == "tx-1"
        assert status.status == "PROCESSING"

    @pytest.mark.asyncio
    async def test_unauthorized_clears_tokens(self):
        calls = {"login": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/auth/login":
                calls["login"] += 1
                return httpx.Response(200, json=AUTH_BODY)
            return httpx.Response(401, json={"error": "Token expired"})

        client = make_client(handler)
        await client.authenticate("628111")

        with pytest.raises(BackendError) as exc_info:
            await client.get_transaction_history("628111")

        assert exc_info.value.status_code == 401
        await client.ensure_authenticated("628111")
        assert calls["login"] == 2

    @pytest.mark.asyncio
    async def test_network_error_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler)

        with pytest.raises(BackendError, match="Transaction details failed"):
            await client.get_transaction_details("tx-1")

    @pytest.mark.asyncio
    async def test_history_passes_limit(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/auth/login":
                return httpx.Response(200, json=AUTH_BODY)
            assert request.url.params["limit"] == "5"
            return httpx.Response(200, json={"success": True, "transactions": [{"id": "tx-1"}]})

        client = make_client(handler)

        assert await client.get_transaction_history("628111", limit=5) == [{"id": "tx-1"}]

    @pytest.mark.asyncio
    async def test_calculate_transfer(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/transfer/calculate"
            assert json.loads(request.content) == {
                "senderCurrency": "USDT",
                "recipientCurrency": "IDR",
                "amount": 100.0,
                "paymentMethod": "WALLET",
            }
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "senderAmount": 100.0,
                        "recipientAmount": 1600000.0,
                        "exchangeRate": 16000.0,
                        "fee": {"percentage": 1.5, "amount": 1.5},
                        "totalAmount": 101.5,
                    },
                },
            )

        client = make_client(handler)
        calculation = await client.calculate_transfer("USDT", "IDR", 100.0, "WALLET")

        assert calculation.recipient_amount == 1600000.0
        assert calculation.fee.amount == 1.5
        assert calculation.total_amount == 101.5
