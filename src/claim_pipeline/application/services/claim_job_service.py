"""Claim job orchestration use-case service."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from contextlib import suppress
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from claim_pipeline.application.services.claim_request_queue import ClaimJobRequest
from claim_pipeline.application.services.delivery_service import ConfirmationDeliveryService
from claim_pipeline.application.services.summary_service import ClaimSummaryService
from claim_pipeline.domain.claim_types import ClaimJobStatus, ClaimOutcome, ClaimTrigger
from claim_pipeline.domain.entities import (
    Account,
    ClaimJob,
    ClaimRecord,
    ClaimResult,
    ConfirmationRequest,
)
from claim_pipeline.domain.errors import (
    ClaimExecutorUnavailableError,
    ClaimJobNotFoundError,
    ClaimValidationError,
)
from claim_pipeline.domain.ports import (
    AccountRepository,
    ClaimExecutor,
    ClaimJobEventPublisher,
    ClaimJobRegistry,
    ConfirmationComposer,
)

_DEFAULT_MAX_CONCURRENT_CLAIMS = 3
_DEFAULT_CLAIM_ATTEMPT_TIMEOUT_SECONDS = 120.0
_DEFAULT_FINISHED_JOB_RETENTION_SECONDS = 3600.0
SKIPPED_IN_FLIGHT_REASON = "Claim already in progress for this account."

logger = logging.getLogger(__name__)


class ClaimJobService:
    """Run claim batches: bounded concurrency, per-account isolation, fan-out, summary."""

    def __init__(
        self,
        account_repository: AccountRepository,
        job_registry: ClaimJobRegistry,
        claim_executor: ClaimExecutor,
        composer: ConfirmationComposer,
        delivery_service: ConfirmationDeliveryService,
        summary_service: ClaimSummaryService,
        event_publisher: ClaimJobEventPublisher,
        *,
        max_concurrent_claims: int = _DEFAULT_MAX_CONCURRENT_CLAIMS,
        claim_attempt_timeout_seconds: float = _DEFAULT_CLAIM_ATTEMPT_TIMEOUT_SECONDS,
        finished_job_retention_seconds: float = _DEFAULT_FINISHED_JOB_RETENTION_SECONDS,
    ) -> None:
        self._account_repository = account_repository
        self._job_registry = job_registry
        self._claim_executor = claim_executor
        self._composer = composer
        self._delivery_service = delivery_service
        self._summary_service = summary_service
        self._event_publisher = event_publisher
        self._claim_attempt_timeout_seconds = max(claim_attempt_timeout_seconds, 0.001)
        self._finished_job_retention = timedelta(
            seconds=max(finished_job_retention_seconds, 0.0)
        )
        self._semaphore = asyncio.Semaphore(max(max_concurrent_claims, 1))
        self._in_flight: set[str] = set()
        self._job_tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def in_flight_accounts(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    async def startup(self) -> None:
        logger.info("Claim job service started.")

    async def shutdown(self) -> None:
        """Cancel running batches and wait for them to unwind."""

        tasks = list(self._job_tasks.values())
        self._job_tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task

    async def handle_request(self, request: ClaimJobRequest) -> str:
        """Entry point for the claim request queue."""

        if request.account_ids is None:
            return await self.start_claim_all(request.trigger)
        return await self.start_claim_job(request.account_ids, request.trigger)

    async def start_claim_job(
        self,
        account_ids: Sequence[str],
        trigger: ClaimTrigger = ClaimTrigger.MANUAL_USERS,
    ) -> str:
        """Register a job for the given accounts and run it in the background."""

        unique_ids = list(dict.fromkeys(item.strip() for item in account_ids if item.strip()))
        if not unique_ids:
            raise ClaimValidationError("At least one account id is required.")
        return await self._start(unique_ids, trigger)

    async def start_claim_all(self, trigger: ClaimTrigger = ClaimTrigger.MANUAL_ALL) -> str:
        """Start a job over every registered account."""

        accounts = await self._account_repository.list_accounts()
        return await self._start([account.account_id for account in accounts], trigger)

    async def get_job_status(self, process_id: str) -> ClaimJob:
        job = await self._job_registry.get(process_id)
        if job is None:
            raise ClaimJobNotFoundError(f"Claim job '{process_id}' not found.")
        return job

    async def list_active_jobs(self) -> list[ClaimJob]:
        return await self._job_registry.list_active()

    async def cleanup_finished_jobs(
        self,
        older_than_seconds: float | None = None,
    ) -> tuple[int, int]:
        """Drop finished jobs past retention; return (removed, remaining)."""

        retention = (
            self._finished_job_retention
            if older_than_seconds is None
            else timedelta(seconds=max(older_than_seconds, 0.0))
        )
        removed = await self._job_registry.prune_finished(datetime.now(tz=UTC) - retention)
        remaining = await self._job_registry.count()
        if removed:
            logger.info("Removed %s finished claim job(s); %s remain.", removed, remaining)
        return removed, remaining

    async def wait_for_job(self, process_id: str) -> ClaimJob:
        """Wait until a background batch has finished and return its final snapshot."""

        task = self._job_tasks.get(process_id)
        if task is not None:
            with suppress(asyncio.CancelledError):
                await asyncio.shield(task)
        return await self.get_job_status(process_id)

    async def _start(self, account_ids: list[str], trigger: ClaimTrigger) -> str:
        accounts = await self._account_repository.get_accounts(account_ids)
        eligible: list[Account] = []
        for account_id in account_ids:
            account = accounts.get(account_id)
            if account is None:
                logger.info("Skipping account %s: not registered.", account_id)
                continue
            if not account.is_eligible:
                logger.info("Skipping account %s: blocked.", account_id)
                continue
            eligible.append(account)

        process_id = f"claim-{uuid4()}"
        job = ClaimJob(process_id=process_id, total_users=len(eligible), trigger=trigger)
        await self._job_registry.create(job)

        # Check-and-reserve must not await between membership test and add.
        reserved: list[Account] = []
        overlapping: list[Account] = []
        for account in eligible:
            if account.account_id in self._in_flight:
                overlapping.append(account)
                continue
            self._in_flight.add(account.account_id)
            reserved.append(account)

        task = asyncio.create_task(
            self._run_job(process_id, reserved, overlapping),
            name=f"claim-job-{process_id}",
        )
        self._job_tasks[process_id] = task
        task.add_done_callback(lambda _: self._job_tasks.pop(process_id, None))
        logger.info(
            "Claim job %s started (%s): %s account(s), %s already in flight.",
            process_id,
            trigger.value,
            len(eligible),
            len(overlapping),
        )
        await self._publish_state(job)
        return process_id

    async def _run_job(
        self,
        process_id: str,
        reserved: list[Account],
        overlapping: list[Account],
    ) -> None:
        held = {account.account_id for account in reserved}
        try:
            for account in overlapping:
                await self._record_result(
                    process_id,
                    ClaimResult(
                        account_id=account.account_id,
                        outcome=ClaimOutcome.SKIPPED,
                        owner_id=account.owner_id,
                        username=account.username,
                        error=SKIPPED_IN_FLIGHT_REASON,
                    ),
                )

            outcomes = await asyncio.gather(
                *(self._claim_account(process_id, account, held) for account in reserved),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
            if reserved and all(outcomes):
                final = await self._job_registry.finish(
                    process_id,
                    ClaimJobStatus.FAILED,
                    f"Claim executor unreachable for all {len(reserved)} attempted account(s).",
                )
            else:
                final = await self._job_registry.finish(process_id, ClaimJobStatus.COMPLETED)
        except Exception as exc:
            logger.exception("Claim job %s failed unexpectedly.", process_id)
            try:
                final = await self._fail_job(
                    process_id,
                    reserved + overlapping,
                    f"Internal error: {exc}",
                )
            except Exception:
                logger.exception("Could not close claim job %s after failure.", process_id)
                return
        finally:
            for account_id in held:
                self._in_flight.discard(account_id)

        logger.info(
            "Claim job %s finished %s: %s completed, %s failed of %s.",
            process_id,
            final.status.value,
            final.completed_users,
            final.failed_users,
            final.total_users,
        )
        await self._publish_state(final)
        try:
            await self._summary_service.publish(final)
        except Exception:
            logger.exception("Summary for claim job %s failed.", process_id)

    async def _claim_account(self, process_id: str, account: Account, held: set[str]) -> bool:
        """Claim one account and return whether the executor was unreachable."""

        unavailable = False
        try:
            async with self._semaphore:
                execution = await asyncio.wait_for(
                    self._claim_executor.claim(account.account_id),
                    timeout=self._claim_attempt_timeout_seconds,
                )
        except TimeoutError:
            result = self._failed_result(
                account,
                f"Claim timed out after {self._claim_attempt_timeout_seconds:g}s.",
            )
        except ClaimExecutorUnavailableError as exc:
            unavailable = True
            result = self._failed_result(account, str(exc) or "Claim executor unavailable.")
        except Exception as exc:
            result = self._failed_result(account, str(exc) or type(exc).__name__)
        else:
            if execution.success:
                result = ClaimResult(
                    account_id=account.account_id,
                    outcome=ClaimOutcome.SUCCESS,
                    owner_id=account.owner_id,
                    username=account.username,
                    claimed_items=execution.claimed_items,
                    screenshot_path=execution.screenshot_path,
                )
            else:
                result = self._failed_result(
                    account,
                    execution.error or "Claim executor reported failure.",
                    screenshot_path=execution.screenshot_path,
                )
        finally:
            held.discard(account.account_id)
            self._in_flight.discard(account.account_id)

        if result.outcome is ClaimOutcome.FAILED:
            logger.warning("Claim failed for account %s: %s", account.account_id, result.error)
        else:
            await self._update_account_stats(result)

        await self._record_claim(process_id, result)
        await self._record_result(process_id, result)
        await self._confirm(result)
        return unavailable

    def _failed_result(
        self,
        account: Account,
        error: str,
        *,
        screenshot_path: str | None = None,
    ) -> ClaimResult:
        return ClaimResult(
            account_id=account.account_id,
            outcome=ClaimOutcome.FAILED,
            owner_id=account.owner_id,
            username=account.username,
            screenshot_path=screenshot_path,
            error=error,
        )

    async def _update_account_stats(self, result: ClaimResult) -> None:
        try:
            await self._account_repository.record_successful_claim(
                result.account_id,
                result.completed_at,
            )
        except Exception:
            logger.exception("Could not update claim stats for account %s.", result.account_id)

    async def _record_claim(self, process_id: str, result: ClaimResult) -> None:
        record = ClaimRecord(
            account_id=result.account_id,
            status=result.outcome,
            process_id=process_id,
            username=result.username,
            claimed_items=result.claimed_items,
            error=result.error,
            claimed_at=result.completed_at,
        )
        try:
            stored = await self._account_repository.record_claim(record)
        except Exception:
            logger.exception("Could not store claim record for account %s.", result.account_id)
            return
        if not stored:
            logger.info(
                "Claim record for account %s not stored; already succeeded today.",
                result.account_id,
            )

    async def _record_result(self, process_id: str, result: ClaimResult) -> None:
        job = await self._job_registry.record_result(process_id, result)
        try:
            await self._event_publisher.publish_progress(job, result)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Progress event for %s failed: %s", process_id, exc)

    async def _confirm(self, result: ClaimResult) -> None:
        """Compose (successes only) and deliver one confirmation."""

        image_path: str | None = None
        if result.outcome is ClaimOutcome.SUCCESS:
            request = ConfirmationRequest(
                account_id=result.account_id,
                username=result.username or result.account_id,
                claimed_items=result.claimed_items,
                screenshot_path=result.screenshot_path,
            )
            try:
                image_path = await asyncio.to_thread(self._composer.compose, request)
            except Exception:
                logger.exception("Composer raised for account %s.", result.account_id)
        try:
            await self._delivery_service.deliver(result, image_path)
        except Exception:
            logger.exception("Delivery failed for account %s.", result.account_id)

    async def _fail_job(self, process_id: str, accounts: list[Account], error: str) -> ClaimJob:
        """Fill missing results as failed and close the job."""

        job = await self.get_job_status(process_id)
        if job.is_terminal:
            return job
        recorded = {result.account_id for result in job.results}
        for account in accounts:
            if account.account_id in recorded:
                continue
            await self._job_registry.record_result(
                process_id,
                self._failed_result(account, error),
            )
        return await self._job_registry.finish(process_id, ClaimJobStatus.FAILED, error)

    async def _publish_state(self, job: ClaimJob) -> None:
        try:
            await self._event_publisher.publish_state(job)
        except Exception as exc:  # noqa: BLE001
            logger.warning("State event for %s failed: %s", job.process_id, exc)


__all__ = ["ClaimJobService", "SKIPPED_IN_FLIGHT_REASON"]
