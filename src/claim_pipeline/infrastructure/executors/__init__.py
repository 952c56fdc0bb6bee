"""Claim executor adapters."""

from claim_pipeline.infrastructure.executors.http_claim_executor import HttpClaimExecutor
from claim_pipeline.infrastructure.executors.unconfigured_claim_executor import (
    UnconfiguredClaimExecutor,
)

__all__ = ["HttpClaimExecutor", "UnconfiguredClaimExecutor"]
