"""Domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

from claim_pipeline.domain.claim_types import (
    TERMINAL_JOB_STATUSES,
    ClaimJobStatus,
    ClaimOutcome,
    ClaimTrigger,
)


@dataclass(slots=True)
class Account:
    """Linked reward account as seen by the claim pipeline."""

    account_id: str
    owner_id: str
    username: str
    is_privileged_owner: bool = False
    is_blocked: bool = False
    last_claimed_at: datetime | None = None
    total_claims: int = 0

    @property
    def is_eligible(self) -> bool:
        """Blocked accounts are never claimed."""

        return not self.is_blocked


@dataclass(slots=True, frozen=True)
class ClaimExecution:
    """Raw outcome reported by a claim executor for one account."""

    success: bool
    claimed_items: tuple[str, ...] = ()
    screenshot_path: str | None = None
    error: str | None = None


@dataclass(slots=True, frozen=True)
class ClaimResult:
    """Terminal per-account outcome recorded on a claim job."""

    account_id: str
    outcome: ClaimOutcome
    owner_id: str | None = None
    username: str | None = None
    claimed_items: tuple[str, ...] = ()
    screenshot_path: str | None = None
    error: str | None = None
    completed_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


@dataclass(slots=True, frozen=True)
class ClaimRecord:
    """Stored history entry for one claim attempt."""

    account_id: str
    status: ClaimOutcome
    process_id: str | None = None
    username: str | None = None
    claimed_items: tuple[str, ...] = ()
    error: str | None = None
    claimed_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def utc_day_start(self) -> datetime:
        return self.claimed_at.astimezone(UTC).replace(hour=0, minute=0, second=0, microsecond=0)


@dataclass(slots=True)
class ClaimJob:
    """Mutable batch execution over a set of accounts."""

    process_id: str
    total_users: int
    trigger: ClaimTrigger = ClaimTrigger.MANUAL_USERS
    status: ClaimJobStatus = ClaimJobStatus.RUNNING
    completed_users: int = 0
    failed_users: int = 0
    results: list[ClaimResult] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    finished_at: datetime | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        """Return whether the job reached a final state."""

        return self.status in TERMINAL_JOB_STATUSES

    @property
    def processed_users(self) -> int:
        return self.completed_users + self.failed_users

    def snapshot(self) -> ClaimJob:
        """Return a copy that does not share the results list."""

        return replace(self, results=list(self.results))


@dataclass(slots=True, frozen=True)
class ConfirmationRequest:
    """Input for composing one confirmation image."""

    account_id: str
    username: str
    claimed_items: tuple[str, ...] = ()
    screenshot_path: str | None = None


@dataclass(slots=True, frozen=True)
class DeliveryReport:
    """What happened to one confirmation across delivery destinations."""

    account_id: str
    channel_sent: bool
    direct_message_attempted: bool
    direct_message_sent: bool
    image_path: str | None
    image_deleted: bool

    @property
    def delivered(self) -> bool:
        return self.channel_sent or self.direct_message_sent


@dataclass(slots=True, frozen=True)
class MessageAttachment:
    """File attached to an outbound chat message."""

    filename: str
    content: bytes
    content_type: str = "image/png"


__all__ = [
    "Account",
    "ClaimExecution",
    "ClaimJob",
    "ClaimRecord",
    "ClaimResult",
    "ConfirmationRequest",
    "DeliveryReport",
    "MessageAttachment",
]
