from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..errors import AuthenticationError, BackendError
from ..types import User
from .backend import BackendClient


def chat_id_to_number(chat_id: str) -> str:
    """``6281234567890@c.us`` -> ``6281234567890``."""
    return chat_id.split("@", 1)[0].lstrip("+")


def number_to_chat_id(phone: str) -> str:
    """``+6281234567890`` -> ``6281234567890@c.us``."""
    return f"{phone.strip().lstrip('+')}@c.us"


@dataclass
class UserSession:
    user: User
    access_token: str
    refresh_token: str
    expires_at: float


class AuthService:
    """Per-number backend sessions with expiry."""

    def __init__(
        self,
        backend: BackendClient,
        *,
        session_ttl_seconds: float = 3600,
        expiry_buffer_seconds: float = 300,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.backend = backend
        self.session_ttl_seconds = session_ttl_seconds
        self.expiry_buffer_seconds = expiry_buffer_seconds
        self._clock = clock or time.time
        self.logger = logger or logging.getLogger(__name__)
        self._sessions: Dict[str, UserSession] = {}

    def _is_valid(self, session: UserSession) -> bool:
        return self._clock() < session.expires_at - self.expiry_buffer_seconds

    async def login_or_register(self, whatsapp_number: str, country_code: str = "+62") -> User:
        existing = self.get_session(whatsapp_number)
        if existing:
            self.logger.info("Using existing session for %s", whatsapp_number)
            return existing.user

        # Drop any token the client still holds so login is forced
        self.backend.clear_auth(whatsapp_number)
        try:
            auth = await self.backend.authenticate(whatsapp_number, country_code)
        except AuthenticationError:
            raise
        except BackendError as exc:
            raise AuthenticationError(f"Authentication failed: {exc.message}") from exc

        self._sessions[whatsapp_number] = UserSession(
            user=auth.user,
            access_token=auth.tokens.access_token,
            refresh_token=auth.tokens.refresh_token,
            expires_at=self._clock() + self.session_ttl_seconds,
        )
        self.logger.info("Session created for %s, user ID: %s", whatsapp_number, auth.user.id)
        return auth.user

    def get_session(self, whatsapp_number: str) -> Optional[UserSession]:
        session = self._sessions.get(whatsapp_number)
        if session is None:
            return None
        if not self._is_valid(session):
            del self._sessions[whatsapp_number]
            return None
        return session

    def get_user(self, whatsapp_number: str) -> Optional[User]:
        session = self.get_session(whatsapp_number)
        return session.user if session else None

    def get_access_token(self, whatsapp_number: str) -> Optional[str]:
        session = self.get_session(whatsapp_number)
        return session.access_token if session else None

    def is_authenticated(self, whatsapp_number: str) -> bool:
        return self.get_session(whatsapp_number) is not None

    async def ensure_authenticated(self, whatsapp_number: str) -> User:
        user = self.get_user(whatsapp_number)
        if user is not None:
            return user
        return await self.login_or_register(whatsapp_number)

    def logout(self, whatsapp_number: str) -> None:
        self._sessions.pop(whatsapp_number, None)
        self.backend.clear_auth(whatsapp_number)
        self.logger.info("User logged out: %s", whatsapp_number)

    def clear_all(self) -> None:
        self._sessions.clear()
        self.backend.clear_auth()

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)
