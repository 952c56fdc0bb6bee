"""Domain public API."""

from claim_pipeline.domain.claim_models import (
    ClaimJobListResponse,
    ClaimJobResponse,
    ClaimJobStartedResponse,
    ClaimProgressCleanupResponse,
    ClaimResultResponse,
    ClaimSummary,
    ClaimUsersRequest,
    SchedulerStatusResponse,
)
from claim_pipeline.domain.claim_types import (
    TERMINAL_JOB_STATUSES,
    ClaimJobStatus,
    ClaimOutcome,
    ClaimTrigger,
)
from claim_pipeline.domain.entities import (
    Account,
    ClaimExecution,
    ClaimJob,
    ClaimResult,
    ConfirmationRequest,
    DeliveryReport,
    MessageAttachment,
)
from claim_pipeline.domain.errors import (
    ClaimExecutorError,
    ClaimExecutorUnavailableError,
    ClaimJobNotFoundError,
    ClaimJobStateError,
    ClaimPipelineError,
    ClaimQueueClosedError,
    ClaimValidationError,
)
from claim_pipeline.domain.ports import (
    AccountRepository,
    ClaimExecutor,
    ClaimJobEventPublisher,
    ClaimJobRegistry,
    ConfirmationComposer,
    MessagingClient,
)

__all__ = [
    "Account",
    "AccountRepository",
    "ClaimExecution",
    "ClaimExecutor",
    "ClaimExecutorError",
    "ClaimExecutorUnavailableError",
    "ClaimJob",
    "ClaimJobEventPublisher",
    "ClaimJobListResponse",
    "ClaimJobNotFoundError",
    "ClaimJobRegistry",
    "ClaimJobResponse",
    "ClaimJobStartedResponse",
    "ClaimJobStateError",
    "ClaimJobStatus",
    "ClaimOutcome",
    "ClaimPipelineError",
    "ClaimProgressCleanupResponse",
    "ClaimQueueClosedError",
    "ClaimResult",
    "ClaimResultResponse",
    "ClaimSummary",
    "ClaimTrigger",
    "ClaimUsersRequest",
    "ClaimValidationError",
    "ConfirmationComposer",
    "ConfirmationRequest",
    "DeliveryReport",
    "MessageAttachment",
    "MessagingClient",
    "SchedulerStatusResponse",
    "TERMINAL_JOB_STATUSES",
]
