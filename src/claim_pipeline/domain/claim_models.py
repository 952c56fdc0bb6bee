"""Claim job API models and run summaries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from claim_pipeline.domain.claim_types import ClaimJobStatus, ClaimOutcome, ClaimTrigger
from claim_pipeline.domain.entities import ClaimJob, ClaimResult

SUMMARY_DETAIL_LIMIT = 10


@dataclass(slots=True, frozen=True)
class ClaimSummary:
    """Aggregate outcome of one finished claim job."""

    process_id: str
    status: ClaimJobStatus
    total_attempted: int
    total_succeeded: int
    total_failed: int
    total_skipped: int
    per_user: tuple[ClaimResult, ...]
    overflow_count: int
    timestamp_utc: str

    @classmethod
    def from_job(cls, job: ClaimJob, limit: int = SUMMARY_DETAIL_LIMIT) -> ClaimSummary:
        """Summarize a terminal job, keeping at most `limit` per-user entries."""

        results = job.results
        finished_at = job.finished_at or job.created_at
        return cls(
            process_id=job.process_id,
            status=job.status,
            total_attempted=job.total_users,
            total_succeeded=sum(1 for r in results if r.outcome is ClaimOutcome.SUCCESS),
            total_failed=sum(1 for r in results if r.outcome is ClaimOutcome.FAILED),
            total_skipped=sum(1 for r in results if r.outcome is ClaimOutcome.SKIPPED),
            per_user=tuple(results[:limit]),
            overflow_count=max(len(results) - limit, 0),
            timestamp_utc=finished_at.isoformat(),
        )


class ApiModel(BaseModel):
    """Base model for admin claim routes."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class ClaimUsersRequest(ApiModel):
    """Body of `/admin/claim-users`."""

    user_ids: list[str] = Field(alias="userIds", min_length=1)

    @field_validator("user_ids")
    @classmethod
    def strip_blank_ids(cls, value: list[str]) -> list[str]:
        """Reject requests that only carry blank ids."""

        cleaned = [item.strip() for item in value if item.strip()]
        if not cleaned:
            raise ValueError("userIds must contain at least one non-empty id.")
        return cleaned


class ClaimJobStartedResponse(ApiModel):
    """Response for claim trigger routes."""

    process_id: str = Field(alias="processId")


class ClaimResultResponse(ApiModel):
    """One per-account result in a job snapshot."""

    account_id: str = Field(alias="accountId")
    owner_id: str | None = Field(default=None, alias="ownerId")
    username: str | None = None
    outcome: ClaimOutcome
    claimed_items: list[str] = Field(default_factory=list, alias="claimedItems")
    screenshot_path: str | None = Field(default=None, alias="screenshotPath")
    error: str | None = None
    completed_at: datetime = Field(alias="completedAt")

    @classmethod
    def from_result(cls, result: ClaimResult) -> ClaimResultResponse:
        return cls(
            account_id=result.account_id,
            owner_id=result.owner_id,
            username=result.username,
            outcome=result.outcome,
            claimed_items=list(result.claimed_items),
            screenshot_path=result.screenshot_path,
            error=result.error,
            completed_at=result.completed_at,
        )


class ClaimJobResponse(ApiModel):
    """Pollable claim job snapshot."""

    process_id: str = Field(alias="processId")
    status: ClaimJobStatus
    trigger: ClaimTrigger
    total_users: int = Field(alias="totalUsers")
    completed_users: int = Field(alias="completedUsers")
    failed_users: int = Field(alias="failedUsers")
    results: list[ClaimResultResponse] = Field(default_factory=list)
    created_at: datetime = Field(alias="createdAt")
    finished_at: datetime | None = Field(default=None, alias="finishedAt")
    error: str | None = None

    @classmethod
    def from_job(cls, job: ClaimJob) -> ClaimJobResponse:
        return cls(
            process_id=job.process_id,
            status=job.status,
            trigger=job.trigger,
            total_users=job.total_users,
            completed_users=job.completed_users,
            failed_users=job.failed_users,
            results=[ClaimResultResponse.from_result(result) for result in job.results],
            created_at=job.created_at,
            finished_at=job.finished_at,
            error=job.error,
        )


class ClaimJobListResponse(ApiModel):
    """Collection wrapper for active job listing."""

    jobs: list[ClaimJobResponse]


class ClaimProgressCleanupResponse(ApiModel):
    """Result of pruning finished jobs from the registry."""

    removed: int
    remaining: int


class SchedulerStatusResponse(ApiModel):
    """Scheduled claim loop status."""

    enabled: bool
    is_running: bool = Field(alias="isRunning")
    schedule_hours_utc: list[int] = Field(alias="scheduleHoursUtc")
    last_run: datetime | None = Field(default=None, alias="lastRun")
    next_run: datetime | None = Field(default=None, alias="nextRun")
    last_process_id: str | None = Field(default=None, alias="lastProcessId")


__all__ = [
    "ClaimJobListResponse",
    "ClaimJobResponse",
    "ClaimJobStartedResponse",
    "ClaimProgressCleanupResponse",
    "ClaimResultResponse",
    "ClaimSummary",
    "ClaimUsersRequest",
    "SUMMARY_DETAIL_LIMIT",
    "SchedulerStatusResponse",
]
