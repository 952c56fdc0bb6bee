"""Claim job registry implementations."""

from claim_pipeline.infrastructure.registry.in_memory_claim_job_registry import (
    InMemoryClaimJobRegistry,
)

__all__ = ["InMemoryClaimJobRegistry"]
