"""No-op claim job event publisher."""

from __future__ import annotations

from claim_pipeline.domain.entities import ClaimJob, ClaimResult
from claim_pipeline.domain.ports import ClaimJobEventPublisher


class NoopClaimJobEventPublisher(ClaimJobEventPublisher):
    """No-op implementation for environments without event streaming."""

    async def publish_progress(self, job: ClaimJob, result: ClaimResult) -> None:
        _ = (job, result)

    async def publish_state(self, job: ClaimJob) -> None:
        _ = job


__all__ = ["NoopClaimJobEventPublisher"]
