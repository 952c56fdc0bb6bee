"""Background schedulers for claim runs and artifact retention."""

from claim_pipeline.infrastructure.scheduling.claim_artifact_sweeper import (
    ClaimArtifactSweeper,
)
from claim_pipeline.infrastructure.scheduling.claim_scheduler import (
    ClaimScheduler,
    SchedulerStatus,
    next_run_after,
)

__all__ = ["ClaimArtifactSweeper", "ClaimScheduler", "SchedulerStatus", "next_run_after"]
