"""Claim job status and outcome helpers."""

from enum import StrEnum


class ClaimJobStatus(StrEnum):
    """Lifecycle states of a claim job."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ClaimOutcome(StrEnum):
    """Per-account outcome of one claim attempt."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class ClaimTrigger(StrEnum):
    """Entry point that started a claim job."""

    SCHEDULED = "scheduled"
    MANUAL_ALL = "manual_all"
    MANUAL_USERS = "manual_users"


TERMINAL_JOB_STATUSES = frozenset({ClaimJobStatus.COMPLETED, ClaimJobStatus.FAILED})


__all__ = [
    "ClaimJobStatus",
    "ClaimOutcome",
    "ClaimTrigger",
    "TERMINAL_JOB_STATUSES",
]
