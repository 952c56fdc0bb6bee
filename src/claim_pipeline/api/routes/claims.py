"""Admin routes for triggering and polling claim jobs."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Path

from claim_pipeline.api.dependencies import (
    get_claim_job_service,
    get_claim_request_queue,
    get_claim_scheduler,
)
from claim_pipeline.application.services import ClaimJobService, ClaimRequestQueue
from claim_pipeline.domain.claim_models import (
    ClaimJobListResponse,
    ClaimJobResponse,
    ClaimJobStartedResponse,
    ClaimProgressCleanupResponse,
    ClaimUsersRequest,
    SchedulerStatusResponse,
)
from claim_pipeline.domain.claim_types import ClaimTrigger
from claim_pipeline.domain.errors import (
    ClaimJobNotFoundError,
    ClaimQueueClosedError,
    ClaimValidationError,
)
from claim_pipeline.infrastructure.scheduling import ClaimScheduler

router = APIRouter(prefix="/admin", tags=["claims"])


def _raise_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, ClaimJobNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, ClaimValidationError):
        raise HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, ClaimQueueClosedError):
        raise HTTPException(status_code=503, detail=str(exc))
    raise HTTPException(status_code=500, detail="Unexpected claim job error")


@router.post("/claim-all", response_model=ClaimJobStartedResponse, status_code=202)
async def claim_all(
    queue: ClaimRequestQueue = Depends(get_claim_request_queue),
) -> ClaimJobStartedResponse:
    """Start a claim job over every registered account."""

    try:
        process_id = await queue.submit_claim_all(ClaimTrigger.MANUAL_ALL)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return ClaimJobStartedResponse(process_id=process_id)


@router.post("/claim-users", response_model=ClaimJobStartedResponse, status_code=202)
async def claim_users(
    request: ClaimUsersRequest,
    queue: ClaimRequestQueue = Depends(get_claim_request_queue),
) -> ClaimJobStartedResponse:
    """Start a claim job for the listed account ids."""

    try:
        process_id = await queue.submit_claim_users(request.user_ids)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return ClaimJobStartedResponse(process_id=process_id)


@router.get("/claim-progress", response_model=ClaimJobListResponse, status_code=200)
async def list_claim_progress(
    service: ClaimJobService = Depends(get_claim_job_service),
) -> ClaimJobListResponse:
    """List running claim jobs."""

    try:
        jobs = await service.list_active_jobs()
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return ClaimJobListResponse(jobs=[ClaimJobResponse.from_job(job) for job in jobs])


@router.delete(
    "/claim-progress/cleanup",
    response_model=ClaimProgressCleanupResponse,
    status_code=200,
)
async def cleanup_claim_progress(
    service: ClaimJobService = Depends(get_claim_job_service),
) -> ClaimProgressCleanupResponse:
    """Drop finished jobs older than the retention window."""

    try:
        removed, remaining = await service.cleanup_finished_jobs()
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return ClaimProgressCleanupResponse(removed=removed, remaining=remaining)


@router.get(
    "/claim-progress/{process_id}",
    response_model=ClaimJobResponse,
    status_code=200,
)
async def get_claim_progress(
    process_id: str = Path(...),
    service: ClaimJobService = Depends(get_claim_job_service),
) -> ClaimJobResponse:
    """Poll one claim job."""

    try:
        job = await service.get_job_status(process_id)
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return ClaimJobResponse.from_job(job)


@router.get("/scheduler/status", response_model=SchedulerStatusResponse, status_code=200)
async def scheduler_status(
    scheduler: ClaimScheduler = Depends(get_claim_scheduler),
) -> SchedulerStatusResponse:
    """Report the scheduled claim loop state."""

    status = scheduler.status()
    return SchedulerStatusResponse(
        enabled=status.enabled,
        is_running=status.is_running,
        schedule_hours_utc=list(status.schedule_hours_utc),
        last_run=status.last_run,
        next_run=status.next_run,
        last_process_id=status.last_process_id,
    )


__all__ = ["router"]
