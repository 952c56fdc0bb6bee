"""Application services public API."""

from claim_pipeline.application.services.claim_job_service import ClaimJobService
from claim_pipeline.application.services.claim_request_queue import (
    ClaimJobRequest,
    ClaimRequestQueue,
)
from claim_pipeline.application.services.delivery_service import ConfirmationDeliveryService
from claim_pipeline.application.services.summary_service import ClaimSummaryService

__all__ = [
    "ClaimJobRequest",
    "ClaimJobService",
    "ClaimRequestQueue",
    "ClaimSummaryService",
    "ConfirmationDeliveryService",
]
