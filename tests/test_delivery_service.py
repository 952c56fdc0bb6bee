from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from pathlib import Path

from claim_pipeline.application.services import ConfirmationDeliveryService
from claim_pipeline.application.services.delivery_service import (
    ALREADY_CLAIMED_NOTICE,
    build_confirmation_message,
)
from claim_pipeline.domain.claim_types import ClaimOutcome
from claim_pipeline.domain.entities import Account, ClaimResult, MessageAttachment
from claim_pipeline.infrastructure.messaging import MessagingClientError
from claim_pipeline.infrastructure.repositories import InMemoryAccountRepository


class FakeMessagingClient:
    def __init__(
        self,
        *,
        channel_error: bool = False,
        dm_error: bool = False,
        ready: bool = True,
    ) -> None:
        self.channel_calls: list[tuple[str, str, MessageAttachment | None]] = []
        self.dm_calls: list[tuple[str, str, MessageAttachment | None]] = []
        self._channel_error = channel_error
        self._dm_error = dm_error
        self._ready = ready

    async def wait_until_ready(self, timeout_seconds: float | None = None) -> bool:
        return self._ready

    async def send_channel_message(
        self,
        channel_id: str,
        content: str,
        attachment: MessageAttachment | None = None,
    ) -> None:
        self.channel_calls.append((channel_id, content, attachment))
        if self._channel_error:
            raise MessagingClientError("503 channel")

    async def send_direct_message(
        self,
        user_id: str,
        content: str,
        attachment: MessageAttachment | None = None,
    ) -> None:
        self.dm_calls.append((user_id, content, attachment))
        if self._dm_error:
            raise MessagingClientError("403 cannot DM")


def _repository(privileged: bool) -> InMemoryAccountRepository:
    return InMemoryAccountRepository(
        [
            Account(
                account_id="123",
                owner_id="owner-1",
                username="alice",
                is_privileged_owner=privileged,
            )
        ]
    )


def _result(outcome: ClaimOutcome = ClaimOutcome.SUCCESS, **kwargs: object) -> ClaimResult:
    return ClaimResult(
        account_id="123",
        outcome=outcome,
        owner_id="owner-1",
        username="alice",
        **kwargs,  # type: ignore[arg-type]
    )


def _image(tmp_path: Path) -> str:
    path = tmp_path / "confirmation-123.png"
    path.write_bytes(b"\x89PNG fake")
    return str(path)


def test_channel_success_deletes_image_and_skips_dm_for_regular_owner(tmp_path: Path) -> None:
    client = FakeMessagingClient()
    service = ConfirmationDeliveryService(
        _repository(privileged=False),
        client,
        results_channel_id="results",
    )
    image = _image(tmp_path)

    report = asyncio.run(service.deliver(_result(claimed_items=("gold",)), image))

    assert report.channel_sent is True
    assert report.direct_message_attempted is False
    assert report.image_deleted is True
    assert not Path(image).exists()
    assert client.dm_calls == []
    channel_id, content, attachment = client.channel_calls[0]
    assert channel_id == "results"
    assert "<@owner-1>" in content
    assert attachment is not None
    assert attachment.filename == "confirmation-123.png"
    assert attachment.content == b"\x89PNG fake"


def test_privileged_owner_receives_dm_even_when_channel_fails(tmp_path: Path) -> None:
    client = FakeMessagingClient(channel_error=True)
    service = ConfirmationDeliveryService(
        _repository(privileged=True),
        client,
        results_channel_id="results",
    )
    image = _image(tmp_path)

    report = asyncio.run(service.deliver(_result(), image))

    assert report.channel_sent is False
    assert report.direct_message_attempted is True
    assert report.direct_message_sent is True
    assert report.image_deleted is True
    assert [user_id for user_id, _, _ in client.dm_calls] == ["owner-1"]


def test_image_is_kept_when_every_send_fails(tmp_path: Path) -> None:
    client = FakeMessagingClient(channel_error=True, dm_error=True)
    service = ConfirmationDeliveryService(
        _repository(privileged=True),
        client,
        results_channel_id="results",
    )
    image = _image(tmp_path)

    report = asyncio.run(service.deliver(_result(), image))

    assert report.delivered is False
    assert report.image_deleted is False
    assert Path(image).exists()


def test_missing_results_channel_skips_channel_post(tmp_path: Path) -> None:
    client = FakeMessagingClient()
    service = ConfirmationDeliveryService(_repository(privileged=False), client)
    image = _image(tmp_path)

    report = asyncio.run(service.deliver(_result(), image))

    assert client.channel_calls == []
    assert report.channel_sent is False
    assert report.image_deleted is False
    assert Path(image).exists()


def test_messaging_not_ready_sends_nothing_and_keeps_image(tmp_path: Path) -> None:
    client = FakeMessagingClient(ready=False)
    service = ConfirmationDeliveryService(
        _repository(privileged=True),
        client,
        results_channel_id="results",
        ready_timeout_seconds=0.01,
    )
    image = _image(tmp_path)

    report = asyncio.run(service.deliver(_result(), image))

    assert client.channel_calls == []
    assert client.dm_calls == []
    assert report.image_deleted is False
    assert Path(image).exists()


def test_text_only_delivery_without_image() -> None:
    client = FakeMessagingClient()
    service = ConfirmationDeliveryService(
        _repository(privileged=False),
        client,
        results_channel_id="results",
    )

    report = asyncio.run(
        service.deliver(_result(ClaimOutcome.FAILED, error="login wall"), None)
    )

    assert report.channel_sent is True
    assert report.image_path is None
    _, content, attachment = client.channel_calls[0]
    assert attachment is None
    assert "**Error:** login wall" in content
    assert "See attached image" not in content


def test_confirmation_message_uses_local_time_and_item_bullets() -> None:
    message = build_confirmation_message(
        _result(claimed_items=("gold", "cue piece")),
        owner_id="owner-1",
        timestamp=datetime(2026, 7, 1, 12, 0, 0, tzinfo=UTC),
        has_image=True,
    )

    assert message.startswith("🎱 **8 Ball Pool Reward Claimed!**")
    assert "**Account:** 123" in message
    assert "**User:** alice" in message
    assert "**Owner:** <@owner-1>" in message
    assert "**Time:** 01/07/2026, 13:00:00" in message
    assert "• gold\n• cue piece" in message
    assert message.endswith("🖼️ See attached image for details.")


def test_confirmation_message_without_items_reports_already_claimed() -> None:
    message = build_confirmation_message(
        _result(),
        owner_id=None,
        timestamp=datetime(2026, 1, 15, 9, 30, 0, tzinfo=UTC),
    )

    assert ALREADY_CLAIMED_NOTICE in message
    assert "**Owner:**" not in message
    assert "**Time:** 15/01/2026, 09:30:00" in message


def test_confirmation_message_clips_long_errors() -> None:
    message = build_confirmation_message(
        _result(ClaimOutcome.FAILED, error="page crashed " * 300),
        owner_id="owner-1",
        timestamp=datetime(2026, 1, 15, 9, 30, 0, tzinfo=UTC),
        has_image=True,
    )

    assert len(message) < 2000
    assert "…" in message
    assert message.endswith("🖼️ See attached image for details.")


def test_jpeg_confirmation_is_sent_with_jpeg_content_type(tmp_path: Path) -> None:
    client = FakeMessagingClient()
    service = ConfirmationDeliveryService(
        _repository(privileged=False),
        client,
        results_channel_id="results",
    )
    image = tmp_path / "confirmation-123.jpg"
    image.write_bytes(b"\xff\xd8\xff fake jpeg")

    asyncio.run(service.deliver(_result(claimed_items=("gold",)), str(image)))

    _, _, attachment = client.channel_calls[0]
    assert attachment is not None
    assert attachment.filename == "confirmation-123.jpg"
    assert attachment.content_type == "image/jpeg"
