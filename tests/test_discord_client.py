from __future__ import annotations

import asyncio
import json
from collections.abc import Callable

import httpx
import pytest

from claim_pipeline.domain.entities import MessageAttachment
from claim_pipeline.infrastructure.messaging import DiscordClient, MessagingClientError

BASE_URL = "https://discord.example.com/api/v10"


def _client(handler: Callable[[httpx.Request], httpx.Response]) -> DiscordClient:
    return DiscordClient(
        bot_token="token-123",
        base_url=f"{BASE_URL}/",
        transport=httpx.MockTransport(handler),
    )


def test_start_resolves_readiness_once() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code=200, json={"id": "bot"})

    async def scenario() -> None:
        client = _client(handler)
        assert await client.wait_until_ready(timeout_seconds=0.01) is False

        assert await client.start() is True
        assert await client.start() is True
        assert await client.wait_until_ready(timeout_seconds=0.01) is True
        assert client.is_ready

    asyncio.run(scenario())

    assert len(requests) == 1
    assert str(requests[0].url) == f"{BASE_URL}/users/@me"
    assert requests[0].headers["Authorization"] == "Bot token-123"


def test_failed_login_resolves_not_ready() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=401, json={"message": "401: Unauthorized"})

    async def scenario() -> None:
        client = _client(handler)

        assert await client.start() is False
        assert await client.wait_until_ready(timeout_seconds=0.01) is False

    asyncio.run(scenario())


def test_channel_message_without_attachment_posts_json() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code=200, json={"id": "m1"})

    asyncio.run(_client(handler).send_channel_message("chan-1", "x" * 2500))

    request = requests[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE_URL}/channels/chan-1/messages"
    payload = json.loads(request.content.decode())
    assert len(payload["content"]) == 2000


def test_channel_message_with_attachment_posts_multipart() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code=200, json={"id": "m1"})

    attachment = MessageAttachment(filename="confirmation-1.png", content=b"PNGDATA")
    asyncio.run(_client(handler).send_channel_message("chan-1", "hello", attachment))

    request = requests[0]
    assert request.headers["Content-Type"].startswith("multipart/form-data")
    body = request.content.decode("latin-1")
    assert 'name="payload_json"' in body
    assert '"filename": "confirmation-1.png"' in body
    assert 'name="files[0]"; filename="confirmation-1.png"' in body
    assert "PNGDATA" in body


def test_direct_message_opens_dm_channel_once_per_user() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path.endswith("/users/@me/channels"):
            return httpx.Response(status_code=200, json={"id": "dm-42"})
        return httpx.Response(status_code=200, json={"id": "m1"})

    async def scenario() -> None:
        client = _client(handler)
        await client.send_direct_message("user-42", "first")
        await client.send_direct_message("user-42", "second")

    asyncio.run(scenario())

    paths = [request.url.path for request in requests]
    assert paths == [
        "/api/v10/users/@me/channels",
        "/api/v10/channels/dm-42/messages",
        "/api/v10/channels/dm-42/messages",
    ]
    assert json.loads(requests[0].content.decode()) == {"recipient_id": "user-42"}


def test_error_detail_is_surfaced() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code=403,
            json={"message": "Cannot send messages to this user"},
        )

    with pytest.raises(MessagingClientError, match="403 Cannot send messages to this user"):
        asyncio.run(_client(handler).send_channel_message("chan-1", "hello"))


def test_transport_errors_become_messaging_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(MessagingClientError, match="connection refused"):
        asyncio.run(_client(handler).send_channel_message("chan-1", "hello"))


def test_empty_token_is_rejected() -> None:
    with pytest.raises(MessagingClientError):
        DiscordClient(bot_token="  ")
