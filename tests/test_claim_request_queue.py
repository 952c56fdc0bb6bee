from __future__ import annotations

import asyncio

import pytest

from claim_pipeline.application.services import ClaimJobRequest, ClaimRequestQueue
from claim_pipeline.domain.claim_types import ClaimTrigger
from claim_pipeline.domain.errors import ClaimQueueClosedError, ClaimValidationError


class RecordingHandler:
    def __init__(self, delay_seconds: float = 0.0) -> None:
        self.requests: list[ClaimJobRequest] = []
        self.active = 0
        self.max_active = 0
        self._delay_seconds = delay_seconds

    async def __call__(self, request: ClaimJobRequest) -> str:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self._delay_seconds)
            if request.account_ids == ():
                raise ClaimValidationError("At least one account id is required.")
            self.requests.append(request)
            return f"claim-{len(self.requests)}"
        finally:
            self.active -= 1


def test_submit_before_start_is_rejected() -> None:
    async def scenario() -> None:
        queue = ClaimRequestQueue(RecordingHandler())

        with pytest.raises(ClaimQueueClosedError):
            await queue.submit_claim_all()

    asyncio.run(scenario())


def test_requests_are_handled_one_at_a_time_in_order() -> None:
    async def scenario() -> None:
        handler = RecordingHandler(delay_seconds=0.01)
        queue = ClaimRequestQueue(handler)
        await queue.start()
        try:
            process_ids = await asyncio.gather(
                queue.submit_claim_all(ClaimTrigger.SCHEDULED),
                queue.submit_claim_users(["1", "2"]),
                queue.submit_claim_all(),
            )
        finally:
            await queue.stop()

        assert process_ids == ["claim-1", "claim-2", "claim-3"]
        assert handler.max_active == 1
        assert [request.trigger for request in handler.requests] == [
            ClaimTrigger.SCHEDULED,
            ClaimTrigger.MANUAL_USERS,
            ClaimTrigger.MANUAL_ALL,
        ]
        assert handler.requests[0].account_ids is None
        assert handler.requests[1].account_ids == ("1", "2")

    asyncio.run(scenario())


def test_handler_errors_reach_the_submitter_and_queue_keeps_running() -> None:
    async def scenario() -> None:
        queue = ClaimRequestQueue(RecordingHandler())
        await queue.start()
        try:
            with pytest.raises(ClaimValidationError):
                await queue.submit_claim_users([])
            assert queue.is_running
            assert await queue.submit_claim_users(["1"]) == "claim-1"
        finally:
            await queue.stop()

    asyncio.run(scenario())


def test_stop_fails_waiting_submitters() -> None:
    async def scenario() -> None:
        queue = ClaimRequestQueue(RecordingHandler(delay_seconds=10))
        await queue.start()
        first = asyncio.create_task(queue.submit_claim_all())
        second = asyncio.create_task(queue.submit_claim_all())
        await asyncio.sleep(0.01)

        await queue.stop()

        for task in (first, second):
            with pytest.raises(ClaimQueueClosedError):
                await task
        assert not queue.is_running

    asyncio.run(scenario())
