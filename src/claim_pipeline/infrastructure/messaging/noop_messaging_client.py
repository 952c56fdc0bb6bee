"""No-op messaging client for deployments without bot credentials."""

from __future__ import annotations

import logging

from claim_pipeline.domain.entities import MessageAttachment
from claim_pipeline.domain.ports import MessagingClient

logger = logging.getLogger(__name__)


class NoopMessagingClient(MessagingClient):
    """Drop outbound messages, logging what would have been sent."""

    async def send_channel_message(
        self,
        channel_id: str,
        content: str,
        attachment: MessageAttachment | None = None,
    ) -> None:
        logger.info(
            "Messaging disabled; skipped channel message to %s (attachment=%s).",
            channel_id,
            None if attachment is None else attachment.filename,
        )

    async def send_direct_message(
        self,
        user_id: str,
        content: str,
        attachment: MessageAttachment | None = None,
    ) -> None:
        logger.info(
            "Messaging disabled; skipped direct message to %s (attachment=%s).",
            user_id,
            None if attachment is None else attachment.filename,
        )


__all__ = ["NoopMessagingClient"]
