"""Outbound chat messaging collaborators."""

import logging
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class Messenger(ABC):
    """Delivers text to a chat identity."""

    @abstractmethod
    async def send_message(self, chat_id: str, text: str) -> None:
        pass

    async def close(self) -> None:
        return None


class HttpMessenger(Messenger):
    """Pushes messages to a chat gateway (the process owning the chat transport)."""

    def __init__(
        self,
        gateway_url: str,
        *,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.gateway_url = gateway_url.rstrip("/")
        self.client = http_client or httpx.AsyncClient(timeout=timeout)

    async def send_message(self, chat_id: str, text: str) -> None:
        response = await self.client.post(
            f"{self.gateway_url}/messages",
            json={"chatId": chat_id, "message": text},
        )
        response.raise_for_status()
        logger.info("Message delivered to %s", chat_id)

    async def close(self) -> None:
        await self.client.aclose()


class LoggingMessenger(Messenger):
    """Records messages instead of delivering them; used when no gateway is configured.

    Only the most recent ``history_size`` messages are kept.
    """

    def __init__(self, echo: bool = False, history_size: int = 100):
        self.echo = echo
        self.sent: Deque[Tuple[str, str]] = deque(maxlen=history_size)

    async def send_message(self, chat_id: str, text: str) -> None:
        self.sent.append((chat_id, text))
        logger.info("Outbound message for %s (%d chars)", chat_id, len(text))
        if self.echo:
            print(f"\n📨 [{chat_id}]\n{text}")
