from unittest.mock import AsyncMock, MagicMock

import pytest

from trustbridge.errors import AuthenticationError, BackendError
from trustbridge.services.auth import AuthService, chat_id_to_number, number_to_chat_id
from trustbridge.types import AuthResponse


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def auth_response(user_id: str = "user-1") -> AuthResponse:
    return AuthResponse.model_validate(
        {"user": {"id": user_id}, "tokens": {"accessToken": "access", "refreshToken": "refresh"}}
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> MagicMock:
    backend = MagicMock()
    backend.authenticate = AsyncMock(return_value=auth_response())
    return backend


@pytest.fixture
def auth(backend, clock) -> AuthService:
    return AuthService(backend, session_ttl_seconds=3600, expiry_buffer_seconds=300, clock=clock)


def test_chat_id_conversions():
    assert chat_id_to_number("6281234567890@c.us") == "6281234567890"
    assert number_to_chat_id("+6281234567890") == "6281234567890@c.us"


@pytest.mark.asyncio
async def test_session_reused_until_expiry_buffer(auth, backend, clock):
    await auth.ensure_authenticated("628111")
    clock.now = 3299
    await auth.ensure_authenticated("628111")
    assert backend.authenticate.await_count == 1

    clock.now = 3300
    assert auth.get_session("628111") is None
    await auth.ensure_authenticated("628111")
    assert backend.authenticate.await_count == 2


@pytest.mark.asyncio
async def test_backend_failure_becomes_authentication_error(auth, backend):
    backend.authenticate.side_effect = BackendError("Authentication", "service down")

    with pytest.raises(AuthenticationError, match="Authentication failed: service down"):
        await auth.login_or_register("628111")

    assert auth.is_authenticated("628111") is False


@pytest.mark.asyncio
async def test_logout_and_clear_all(auth, backend):
    await auth.login_or_register("628111")
    assert auth.get_access_token("628111") == "access"

    auth.logout("628111")
    assert auth.active_sessions == 0
    backend.clear_auth.assert_called_with("628111")

    await auth.login_or_register("628222")
    auth.clear_all()
    assert auth.get_user("628222") is None
