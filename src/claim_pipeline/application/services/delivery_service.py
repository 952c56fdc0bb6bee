"""Confirmation delivery to the results channel and privileged owners."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from collections.abc import Awaitable
from datetime import UTC, datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from claim_pipeline.application.services.message_text import ERROR_TEXT_LIMIT, clip_text
from claim_pipeline.application.services.messaging_readiness import messaging_ready
from claim_pipeline.domain.claim_types import ClaimOutcome
from claim_pipeline.domain.entities import ClaimResult, DeliveryReport, MessageAttachment
from claim_pipeline.domain.ports import AccountRepository, MessagingClient

logger = logging.getLogger(__name__)

ALREADY_CLAIMED_NOTICE = (
    "**Status:** No new items available to claim (may have already been claimed today)"
)
_TIME_FORMAT = "%d/%m/%Y, %H:%M:%S"


def build_confirmation_message(
    result: ClaimResult,
    *,
    owner_id: str | None,
    timestamp: datetime,
    timezone_name: str = "Europe/London",
    has_image: bool = False,
) -> str:
    """Render the chat message for one claim result."""

    local_time = timestamp.astimezone(ZoneInfo(timezone_name)).strftime(_TIME_FORMAT)
    if result.outcome is ClaimOutcome.FAILED:
        lines = ["❌ **8 Ball Pool Reward Claim Failed**", ""]
    else:
        lines = ["🎱 **8 Ball Pool Reward Claimed!**", ""]
    lines.append(f"**Account:** {result.account_id}")
    lines.append(f"**User:** {result.username or 'Unknown User'}")
    if owner_id:
        lines.append(f"**Owner:** <@{owner_id}>")
    lines.append(f"**Time:** {local_time}")
    lines.append("")

    if result.outcome is ClaimOutcome.FAILED:
        error = clip_text(result.error or "Unknown error occurred", ERROR_TEXT_LIMIT)
        lines.append(f"**Error:** {error}")
    elif result.claimed_items:
        lines.append("**Claimed Items:**")
        lines.extend(f"• {item}" for item in result.claimed_items)
    else:
        lines.append(ALREADY_CLAIMED_NOTICE)

    if has_image:
        lines.append("")
        lines.append("🖼️ See attached image for details.")
    return "\n".join(lines)


class ConfirmationDeliveryService:
    """Fan one confirmation out to the results channel and, for privileged owners, a DM."""

    def __init__(
        self,
        account_repository: AccountRepository,
        messaging_client: MessagingClient,
        *,
        results_channel_id: str | None = None,
        timezone_name: str = "Europe/London",
        ready_timeout_seconds: float = 10.0,
    ) -> None:
        self._account_repository = account_repository
        self._messaging_client = messaging_client
        self._results_channel_id = results_channel_id
        self._timezone_name = timezone_name
        self._ready_timeout_seconds = ready_timeout_seconds

    async def deliver(self, result: ClaimResult, image_path: str | None = None) -> DeliveryReport:
        """Send the confirmation everywhere it belongs; never raises on send failures."""

        account = await self._account_repository.get_account(result.account_id)
        owner_id = account.owner_id if account is not None else result.owner_id
        privileged = account is not None and account.is_privileged_owner
        dm_attempted = privileged and bool(owner_id)

        if not await messaging_ready(self._messaging_client, self._ready_timeout_seconds):
            logger.warning(
                "Skipping confirmation for account %s; messaging is not ready.",
                result.account_id,
            )
            return DeliveryReport(
                account_id=result.account_id,
                channel_sent=False,
                direct_message_attempted=False,
                direct_message_sent=False,
                image_path=image_path,
                image_deleted=False,
            )

        attachment = await self._load_attachment(image_path)
        content = build_confirmation_message(
            result,
            owner_id=owner_id,
            timestamp=datetime.now(tz=UTC),
            timezone_name=self._timezone_name,
            has_image=attachment is not None,
        )

        channel_send: Awaitable[bool]
        if self._results_channel_id:
            channel_send = self._send_safely(
                "channel",
                self._messaging_client.send_channel_message(
                    self._results_channel_id,
                    content,
                    attachment,
                ),
                result.account_id,
            )
        else:
            logger.info(
                "No results channel configured; skipping channel post for account %s.",
                result.account_id,
            )
            channel_send = self._skipped()

        dm_send: Awaitable[bool]
        if dm_attempted:
            assert owner_id is not None
            dm_send = self._send_safely(
                "direct message",
                self._messaging_client.send_direct_message(owner_id, content, attachment),
                result.account_id,
            )
        else:
            dm_send = self._skipped()

        channel_sent, dm_sent = await asyncio.gather(channel_send, dm_send)

        image_deleted = False
        if image_path and (channel_sent or dm_sent):
            image_deleted = self._delete_image(image_path)

        return DeliveryReport(
            account_id=result.account_id,
            channel_sent=channel_sent,
            direct_message_attempted=dm_attempted,
            direct_message_sent=dm_sent,
            image_path=image_path,
            image_deleted=image_deleted,
        )

    async def _send_safely(self, destination: str, send: Awaitable[None], account_id: str) -> bool:
        try:
            await send
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Confirmation %s send failed for account %s: %s",
                destination,
                account_id,
                exc,
            )
            return False
        return True

    async def _skipped(self) -> bool:
        return False

    async def _load_attachment(self, image_path: str | None) -> MessageAttachment | None:
        if not image_path:
            return None
        path = Path(image_path)
        try:
            content = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            logger.warning("Could not read confirmation image %s: %s", image_path, exc)
            return None
        content_type, _ = mimetypes.guess_type(path.name)
        if content_type is None or not content_type.startswith("image/"):
            content_type = "image/png"
        return MessageAttachment(filename=path.name, content=content, content_type=content_type)

    def _delete_image(self, image_path: str) -> bool:
        try:
            Path(image_path).unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete delivered image %s: %s", image_path, exc)
            return False
        return True


__all__ = ["ALREADY_CLAIMED_NOTICE", "ConfirmationDeliveryService", "build_confirmation_message"]
