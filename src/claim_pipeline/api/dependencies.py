"""Dependency providers for FastAPI routes."""

from functools import lru_cache

from claim_pipeline.application.services import ClaimJobService, ClaimRequestQueue
from claim_pipeline.bootstrap import ClaimPipeline, build_claim_pipeline
from claim_pipeline.config import Settings
from claim_pipeline.infrastructure.scheduling import ClaimScheduler


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings."""

    return Settings()


@lru_cache(maxsize=1)
def get_claim_pipeline() -> ClaimPipeline:
    """Return singleton service graph."""

    return build_claim_pipeline(get_settings())


def get_claim_job_service() -> ClaimJobService:
    return get_claim_pipeline().service


def get_claim_request_queue() -> ClaimRequestQueue:
    return get_claim_pipeline().request_queue


def get_claim_scheduler() -> ClaimScheduler:
    return get_claim_pipeline().scheduler


__all__ = [
    "get_claim_job_service",
    "get_claim_pipeline",
    "get_claim_request_queue",
    "get_claim_scheduler",
    "get_settings",
]
