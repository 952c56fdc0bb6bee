"""Background loop that starts claim-all runs at fixed UTC hours."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from contextlib import suppress
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

logger = logging.getLogger(__name__)

ClaimAllTrigger = Callable[[], Awaitable[str]]


def next_run_after(now: datetime, hours_utc: Sequence[int]) -> datetime:
    """Return the first top-of-hour strictly after `now` whose UTC hour is scheduled."""

    if not hours_utc:
        raise ValueError("hours_utc must not be empty.")
    current = now.astimezone(UTC)
    candidate = current.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    scheduled = set(hours_utc)
    for _ in range(24):
        if candidate.hour in scheduled:
            return candidate
        candidate += timedelta(hours=1)
    raise ValueError(f"No valid UTC hour in {sorted(scheduled)}.")


@dataclass(slots=True, frozen=True)
class SchedulerStatus:
    """Point-in-time view of the scheduled claim loop."""

    enabled: bool
    is_running: bool
    schedule_hours_utc: tuple[int, ...]
    last_run: datetime | None
    next_run: datetime | None
    last_process_id: str | None


class ClaimScheduler:
    """Fire a claim-all request at each configured UTC hour."""

    def __init__(
        self,
        trigger_claim_all: ClaimAllTrigger,
        hours_utc: Sequence[int] = (0, 6, 12, 18),
        *,
        enabled: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._trigger_claim_all = trigger_claim_all
        self._hours_utc = tuple(sorted(set(hours_utc)))
        self._enabled = enabled
        self._clock = clock or (lambda: datetime.now(tz=UTC))

        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self._lifecycle_lock = asyncio.Lock()
        self._last_run: datetime | None = None
        self._next_run: datetime | None = None
        self._last_process_id: str | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the schedule loop if enabled and not already running."""

        if not self._enabled:
            logger.info("Scheduled claims disabled.")
            return
        async with self._lifecycle_lock:
            if self.is_running:
                return
            self._stopping.clear()
            self._next_run = next_run_after(self._clock(), self._hours_utc)
            self._task = asyncio.create_task(self._run_loop(), name="claim-scheduler")
        logger.info(
            "Claim scheduler started for UTC hours %s; next run at %s.",
            list(self._hours_utc),
            self._next_run.isoformat(),
        )

    async def stop(self) -> None:
        """Stop the schedule loop."""

        async with self._lifecycle_lock:
            task = self._task
            if task is None:
                return
            self._task = None
            self._stopping.set()
            task.cancel()

        with suppress(asyncio.CancelledError):
            await task

    async def run_once(self) -> str:
        """Submit one scheduled claim-all run now and return its process id."""

        self._last_run = self._clock()
        process_id = await self._trigger_claim_all()
        self._last_process_id = process_id
        logger.info("Scheduled claim run started with process id %s.", process_id)
        return process_id

    def status(self) -> SchedulerStatus:
        return SchedulerStatus(
            enabled=self._enabled,
            is_running=self.is_running,
            schedule_hours_utc=self._hours_utc,
            last_run=self._last_run,
            next_run=self._next_run if self.is_running else None,
            last_process_id=self._last_process_id,
        )

    async def _run_loop(self) -> None:
        fired_slot: datetime | None = None
        while not self._stopping.is_set():
            now = self._clock()
            if fired_slot is not None and now < fired_slot:
                # Timers can wake before the clock reaches the slot.
                now = fired_slot
            next_run = next_run_after(now, self._hours_utc)
            self._next_run = next_run
            delay_seconds = max((next_run - self._clock()).total_seconds(), 0.0)
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=delay_seconds)
            except TimeoutError:
                pass
            else:
                return

            fired_slot = next_run
            try:
                await self.run_once()
            except Exception:
                logger.exception("Scheduled claim run failed to start.")


__all__ = ["ClaimScheduler", "SchedulerStatus", "next_run_after"]
