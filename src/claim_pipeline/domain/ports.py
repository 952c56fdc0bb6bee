"""Ports for accounts, job registry, claim execution, imaging and messaging."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from claim_pipeline.domain.claim_types import ClaimJobStatus
from claim_pipeline.domain.entities import (
    Account,
    ClaimExecution,
    ClaimJob,
    ClaimRecord,
    ClaimResult,
    ConfirmationRequest,
    MessageAttachment,
)


class AccountRepository(Protocol):
    """Read/stat-update port onto the registration store."""

    async def get_account(self, account_id: str) -> Account | None:
        """Return one registered account."""

    async def get_accounts(self, account_ids: Sequence[str]) -> dict[str, Account]:
        """Return registered accounts keyed by id; unknown ids are omitted."""

    async def list_accounts(self) -> list[Account]:
        """Return every registered account."""

    async def record_successful_claim(self, account_id: str, claimed_at: datetime) -> None:
        """Set `last_claimed_at` and increment `total_claims` for one account."""

    async def record_claim(self, record: ClaimRecord) -> bool:
        """Store one attempt; False when skipped as a same-UTC-day duplicate success."""

    async def list_claim_records(
        self,
        account_id: str | None = None,
        limit: int = 50,
    ) -> list[ClaimRecord]:
        """Return stored attempts, newest first."""


class ClaimJobRegistry(Protocol):
    """Process registry holding claim job state for polling."""

    async def create(self, job: ClaimJob) -> None:
        """Register a new running job."""

    async def get(self, process_id: str) -> ClaimJob | None:
        """Return a consistent snapshot of one job."""

    async def list_active(self) -> list[ClaimJob]:
        """Return snapshots of all running jobs."""

    async def record_result(self, process_id: str, result: ClaimResult) -> ClaimJob:
        """Append one terminal account result and return the updated snapshot."""

    async def finish(
        self,
        process_id: str,
        status: ClaimJobStatus,
        error: str | None = None,
    ) -> ClaimJob:
        """Move a running job to a terminal status and return the final snapshot."""

    async def prune_finished(self, finished_before: datetime) -> int:
        """Drop terminal jobs finished before the cutoff and return how many."""

    async def count(self) -> int:
        """Return number of tracked jobs."""


class ClaimExecutor(Protocol):
    """External automation that performs one account's claim."""

    async def claim(self, account_id: str) -> ClaimExecution:
        """Claim rewards for one account."""


class ConfirmationComposer(Protocol):
    """Builds a confirmation image for one claim result."""

    def compose(self, request: ConfirmationRequest) -> str | None:
        """Write a new confirmation image and return its path, or None."""


class MessagingClient(Protocol):
    """Outbound chat delivery port."""

    async def send_channel_message(
        self,
        channel_id: str,
        content: str,
        attachment: MessageAttachment | None = None,
    ) -> None:
        """Post a message to a shared channel."""

    async def send_direct_message(
        self,
        user_id: str,
        content: str,
        attachment: MessageAttachment | None = None,
    ) -> None:
        """Send a private message to one user."""


class ClaimJobEventPublisher(Protocol):
    """Outbound publisher for claim job progress/state updates."""

    async def publish_progress(self, job: ClaimJob, result: ClaimResult) -> None:
        """Publish that one account reached a terminal result."""

    async def publish_state(self, job: ClaimJob) -> None:
        """Publish job lifecycle state."""


__all__ = [
    "AccountRepository",
    "ClaimExecutor",
    "ClaimJobEventPublisher",
    "ClaimJobRegistry",
    "ConfirmationComposer",
    "MessagingClient",
]
