"""Queue decoupling claim entry points from the job orchestrator."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from contextlib import suppress
from dataclasses import dataclass

from claim_pipeline.domain.claim_types import ClaimTrigger
from claim_pipeline.domain.errors import ClaimQueueClosedError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ClaimJobRequest:
    """Request to start one claim job; `account_ids=None` means every account."""

    trigger: ClaimTrigger
    account_ids: tuple[str, ...] | None = None


ClaimJobHandler = Callable[[ClaimJobRequest], Awaitable[str]]


class ClaimRequestQueue:
    """Single-consumer queue that hands each request to the orchestrator in order."""

    def __init__(self, handler: ClaimJobHandler) -> None:
        self._handler = handler
        self._queue: asyncio.Queue[tuple[ClaimJobRequest, asyncio.Future[str]]] = (
            asyncio.Queue()
        )
        self._task: asyncio.Task[None] | None = None
        self._lifecycle_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the consumer task if not already running."""

        async with self._lifecycle_lock:
            if self.is_running:
                return
            self._task = asyncio.create_task(self._run_loop(), name="claim-request-queue")

    async def stop(self) -> None:
        """Stop consuming and fail requests still waiting in the queue."""

        async with self._lifecycle_lock:
            task = self._task
            if task is None:
                return
            self._task = None
            task.cancel()

        with suppress(asyncio.CancelledError):
            await task

        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            if not future.done():
                future.set_exception(ClaimQueueClosedError("Claim request queue stopped."))

    async def submit(self, request: ClaimJobRequest) -> str:
        """Enqueue a request and wait for the process id of the started job."""

        if not self.is_running:
            raise ClaimQueueClosedError("Claim request queue is not running.")
        future: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        await self._queue.put((request, future))
        return await future

    async def submit_claim_all(self, trigger: ClaimTrigger = ClaimTrigger.MANUAL_ALL) -> str:
        return await self.submit(ClaimJobRequest(trigger=trigger))

    async def submit_claim_users(
        self,
        account_ids: Sequence[str],
        trigger: ClaimTrigger = ClaimTrigger.MANUAL_USERS,
    ) -> str:
        return await self.submit(ClaimJobRequest(trigger=trigger, account_ids=tuple(account_ids)))

    async def _run_loop(self) -> None:
        while True:
            request, future = await self._queue.get()
            try:
                if future.done():
                    continue
                try:
                    process_id = await self._handler(request)
                except asyncio.CancelledError:
                    if not future.done():
                        future.set_exception(ClaimQueueClosedError("Claim request queue stopped."))
                    raise
                except Exception as exc:
                    logger.warning("Claim request (%s) was rejected: %s", request.trigger, exc)
                    if not future.done():
                        future.set_exception(exc)
                    continue
                if not future.done():
                    future.set_result(process_id)
            finally:
                self._queue.task_done()


__all__ = ["ClaimJobHandler", "ClaimJobRequest", "ClaimRequestQueue"]
