"""Discord REST client for channel posts and direct messages."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import quote

import httpx

from claim_pipeline.domain.entities import MessageAttachment
from claim_pipeline.domain.ports import MessagingClient

logger = logging.getLogger(__name__)

_MAX_CONTENT_LENGTH = 2000


class MessagingClientError(RuntimeError):
    """Raised when messaging API calls fail."""


class DiscordClient(MessagingClient):
    """Thin wrapper around the Discord bot REST endpoints used by the pipeline."""

    def __init__(
        self,
        bot_token: str,
        base_url: str = "https://discord.com/api/v10",
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not bot_token.strip():
            raise MessagingClientError("Discord bot token cannot be empty.")
        self._bot_token = bot_token.strip()
        self._base_url = self._normalize_base_url(base_url)
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._ready_event = asyncio.Event()
        self._ready: bool | None = None
        self._dm_channels: dict[str, str] = {}

    @property
    def is_ready(self) -> bool:
        return self._ready is True

    async def start(self) -> bool:
        """Validate the bot token once and resolve the readiness signal."""

        if self._ready is not None:
            return self._ready
        try:
            await self._request("GET", "/users/@me")
        except MessagingClientError as exc:
            logger.warning("Discord readiness check failed: %s", exc)
            self._resolve_ready(False)
        else:
            logger.info("Discord client ready.")
            self._resolve_ready(True)
        return self._ready is True

    async def wait_until_ready(self, timeout_seconds: float | None = None) -> bool:
        """Wait for the readiness signal; False on timeout or failed login."""

        try:
            await asyncio.wait_for(self._ready_event.wait(), timeout=timeout_seconds)
        except TimeoutError:
            return False
        return self._ready is True

    async def send_channel_message(
        self,
        channel_id: str,
        content: str,
        attachment: MessageAttachment | None = None,
    ) -> None:
        """Call `POST /channels/{channelId}/messages`."""

        channel_path = quote(channel_id, safe="")
        await self._post_message(f"/channels/{channel_path}/messages", content, attachment)

    async def send_direct_message(
        self,
        user_id: str,
        content: str,
        attachment: MessageAttachment | None = None,
    ) -> None:
        """Open (or reuse) a DM channel with the user and post into it."""

        dm_channel_id = await self._dm_channel_id(user_id)
        await self.send_channel_message(dm_channel_id, content, attachment)

    async def _dm_channel_id(self, user_id: str) -> str:
        cached = self._dm_channels.get(user_id)
        if cached is not None:
            return cached
        payload = await self._request(
            "POST",
            "/users/@me/channels",
            json_body={"recipient_id": user_id},
        )
        channel_id = payload.get("id") if isinstance(payload, dict) else None
        if not isinstance(channel_id, str) or not channel_id:
            raise MessagingClientError(f"Could not open DM channel with user '{user_id}'.")
        self._dm_channels[user_id] = channel_id
        return channel_id

    async def _post_message(
        self,
        path: str,
        content: str,
        attachment: MessageAttachment | None,
    ) -> None:
        if len(content) > _MAX_CONTENT_LENGTH:
            logger.warning(
                "Message for %s is %s chars; cutting to %s.",
                path,
                len(content),
                _MAX_CONTENT_LENGTH,
            )
        message: dict[str, Any] = {"content": content[:_MAX_CONTENT_LENGTH]}
        if attachment is None:
            await self._request("POST", path, json_body=message)
            return

        message["attachments"] = [{"id": 0, "filename": attachment.filename}]
        await self._request(
            "POST",
            path,
            data={"payload_json": json.dumps(message)},
            files={
                "files[0]": (attachment.filename, attachment.content, attachment.content_type)
            },
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        data: dict[str, str] | None = None,
        files: dict[str, tuple[str, bytes, str]] | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
                headers={"Authorization": f"Bot {self._bot_token}"},
            ) as http_client:
                response = await http_client.request(
                    method,
                    url,
                    json=json_body,
                    data=data,
                    files=files,
                )
        except httpx.HTTPError as exc:
            raise MessagingClientError(f"{method} {url} failed: {exc}") from exc
        self._ensure_success(response)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def _resolve_ready(self, ready: bool) -> None:
        if self._ready is not None:
            return
        self._ready = ready
        self._ready_event.set()

    def _ensure_success(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        message = self._detail_from_response(response)
        raise MessagingClientError(
            f"{response.request.method} {response.request.url} failed: "
            f"{response.status_code} {message}"
        )

    def _detail_from_response(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            text = response.text.strip()
            return text or "<no response body>"

        if isinstance(payload, dict):
            detail = payload.get("message")
            if isinstance(detail, str):
                return detail
        return str(payload)

    def _normalize_base_url(self, base_url: str) -> str:
        normalized = base_url.strip().rstrip("/")
        if not normalized:
            raise MessagingClientError("Discord API base URL cannot be empty.")
        return normalized


__all__ = ["DiscordClient", "MessagingClientError"]
