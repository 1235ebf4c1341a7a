"""
Tests for outbound chat messengers
"""

import json

import httpx
import pytest

from trustbridge.services.messaging import HttpMessenger, LoggingMessenger


class TestHttpMessenger:

    @pytest.mark.asyncio
    async def test_posts_to_gateway(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        messenger = HttpMessenger(
            "https://gateway.test/",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        await messenger.send_message("628111@c.us", "hello")
        await messenger.close()

        assert str(seen[0].url) == "https://gateway.test/messages"
        assert json.loads(seen[0].content) == {"chatId": "628111@c.us", "message": "hello"}

    @pytest.mark.asyncio
    async def test_gateway_error_raises(self):
        messenger = HttpMessenger(
            "https://gateway.test",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(503))),
        )

        with pytest.raises(httpx.HTTPStatusError):
            await messenger.send_message("628111@c.us", "hello")


class TestLoggingMessenger:

    @pytest.mark.asyncio
    async def test_records_messages(self):
        messenger = LoggingMessenger()

        await messenger.send_message("628111@c.us", "one")
        await messenger.send_message("628111@c.us", "two")

        assert list(messenger.sent) == [("628111@c.us", "one"), ("628111@c.us", "two")]

    @pytest.mark.asyncio
    async def test_keeps_only_recent_messages(self):
        messenger = LoggingMessenger(history_size=2)

        for text in ["one", "two", "three"]:
            await messenger.send_message("628111@c.us", text)

        assert [text for _, text in messenger.sent] == ["two", "three"]
