"""In-memory process registry for claim jobs."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

from claim_pipeline.domain.claim_types import ClaimJobStatus, ClaimOutcome
from claim_pipeline.domain.entities import ClaimJob, ClaimResult
from claim_pipeline.domain.errors import ClaimJobNotFoundError, ClaimJobStateError
from claim_pipeline.domain.ports import ClaimJobRegistry


class InMemoryClaimJobRegistry(ClaimJobRegistry):
    """Keep claim jobs in process memory and hand out snapshots to readers."""

    def __init__(self) -> None:
        self._jobs: dict[str, ClaimJob] = {}
        self._lock = asyncio.Lock()

    async def create(self, job: ClaimJob) -> None:
        """Register a new running job."""

        async with self._lock:
            if job.process_id in self._jobs:
                raise ClaimJobStateError(f"Claim job '{job.process_id}' already exists.")
            if job.status is not ClaimJobStatus.RUNNING:
                raise ClaimJobStateError("New claim jobs must start in running state.")
            self._jobs[job.process_id] = job.snapshot()

    async def get(self, process_id: str) -> ClaimJob | None:
        async with self._lock:
            job = self._jobs.get(process_id)
            return None if job is None else job.snapshot()

    async def list_active(self) -> list[ClaimJob]:
        """Return running jobs in creation order."""

        async with self._lock:
            return [job.snapshot() for job in self._jobs.values() if not job.is_terminal]

    async def record_result(self, process_id: str, result: ClaimResult) -> ClaimJob:
        """Append one account result and bump the matching counter."""

        async with self._lock:
            job = self._require_running(process_id)
            if job.processed_users >= job.total_users:
                raise ClaimJobStateError(
                    f"Claim job '{process_id}' already holds {job.total_users} results."
                )
            job.results.append(result)
            if result.outcome is ClaimOutcome.FAILED:
                job.failed_users += 1
            else:
                job.completed_users += 1
            return job.snapshot()

    async def finish(
        self,
        process_id: str,
        status: ClaimJobStatus,
        error: str | None = None,
    ) -> ClaimJob:
        """Move a running job to `completed` or `failed`."""

        if status is ClaimJobStatus.RUNNING:
            raise ClaimJobStateError("Claim jobs can only finish as completed or failed.")
        async with self._lock:
            job = self._require_running(process_id)
            job.status = status
            job.error = error
            job.finished_at = datetime.now(tz=UTC)
            return job.snapshot()

    async def prune_finished(self, finished_before: datetime) -> int:
        async with self._lock:
            stale = [
                process_id
                for process_id, job in self._jobs.items()
                if job.is_terminal
                and job.finished_at is not None
                and job.finished_at <= finished_before
            ]
            for process_id in stale:
                del self._jobs[process_id]
            return len(stale)

    async def count(self) -> int:
        async with self._lock:
            return len(self._jobs)

    def _require_running(self, process_id: str) -> ClaimJob:
        job = self._jobs.get(process_id)
        if job is None:
            raise ClaimJobNotFoundError(f"Claim job '{process_id}' not found.")
        if job.is_terminal:
            raise ClaimJobStateError(
                f"Claim job '{process_id}' is already {job.status.value}."
            )
        return job


__all__ = ["InMemoryClaimJobRegistry"]
