"""Fallback executor used when no automation worker is configured."""

from claim_pipeline.domain.entities import ClaimExecution
from claim_pipeline.domain.errors import ClaimExecutorUnavailableError
from claim_pipeline.domain.ports import ClaimExecutor


class UnconfiguredClaimExecutor(ClaimExecutor):
    """Report every attempt as an executor outage."""

    async def claim(self, account_id: str) -> ClaimExecution:
        raise ClaimExecutorUnavailableError(
            f"No claim executor configured; cannot claim account '{account_id}'."
        )


__all__ = ["UnconfiguredClaimExecutor"]
