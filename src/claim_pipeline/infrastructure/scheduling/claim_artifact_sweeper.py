"""Retention sweep for confirmation images and raw screenshots."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from contextlib import suppress
from datetime import UTC, datetime, timedelta
from pathlib import Path

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = frozenset({".png", ".jpg", ".jpeg"})


class ClaimArtifactSweeper:
    """Periodically delete image files older than the retention window."""

    def __init__(
        self,
        directories: Iterable[str | Path],
        *,
        retention_hours: float = 24.0,
        interval_seconds: float = 3600.0,
    ) -> None:
        self._directories = tuple(Path(directory) for directory in directories)
        self._retention = timedelta(hours=max(retention_hours, 0.0))
        self._interval_seconds = max(interval_seconds, 0.01)

        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self._lifecycle_lock = asyncio.Lock()

    async def start(self) -> None:
        """Start sweep loop if not already running."""

        async with self._lifecycle_lock:
            task = self._task
            if task is not None and not task.done():
                return
            self._stopping.clear()
            self._task = asyncio.create_task(self._run_loop(), name="claim-artifact-sweeper")

    async def stop(self) -> None:
        async with self._lifecycle_lock:
            task = self._task
            if task is None:
                return
            self._task = None
            self._stopping.set()
            task.cancel()

        with suppress(asyncio.CancelledError):
            await task

    def sweep_once(self, now: datetime | None = None) -> int:
        """Delete expired images and return how many were removed."""

        cutoff = (now or datetime.now(tz=UTC)) - self._retention
        cutoff_timestamp = cutoff.timestamp()
        removed = 0
        for directory in self._directories:
            if not directory.is_dir():
                continue
            for path in directory.iterdir():
                if path.suffix.lower() not in IMAGE_SUFFIXES or not path.is_file():
                    continue
                try:
                    if path.stat().st_mtime >= cutoff_timestamp:
                        continue
                    path.unlink()
                except OSError as exc:
                    logger.warning("Could not delete expired artifact %s: %s", path, exc)
                    continue
                removed += 1
        if removed:
            logger.info("Artifact sweep removed %s expired image(s).", removed)
        return removed

    async def _run_loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.to_thread(self.sweep_once)
            except Exception:
                logger.exception("Artifact sweep failed.")

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._interval_seconds)
            except TimeoutError:
                pass


__all__ = ["ClaimArtifactSweeper", "IMAGE_SUFFIXES"]
