"""End-of-run summary posting and admin failure alerts."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from claim_pipeline.application.services.message_text import (
    ERROR_TEXT_LIMIT,
    MAX_MESSAGE_LENGTH,
    RESULT_DETAIL_LIMIT,
    clip_text,
)
from claim_pipeline.application.services.messaging_readiness import messaging_ready
from claim_pipeline.domain.claim_models import SUMMARY_DETAIL_LIMIT, ClaimSummary
from claim_pipeline.domain.claim_types import ClaimJobStatus, ClaimOutcome
from claim_pipeline.domain.entities import ClaimJob, ClaimResult
from claim_pipeline.domain.ports import MessagingClient

logger = logging.getLogger(__name__)

OUTCOME_ICONS = {
    ClaimOutcome.SUCCESS: "✅",
    ClaimOutcome.FAILED: "❌",
    ClaimOutcome.SKIPPED: "⏭️",
}


def format_result_line(result: ClaimResult, detail_limit: int = RESULT_DETAIL_LIMIT) -> str:
    """`<icon> <accountId> (<ownerId>): <items-or-error>`, detail capped at `detail_limit`."""

    if result.outcome is ClaimOutcome.SUCCESS:
        detail = ", ".join(result.claimed_items) or "no new items"
    elif result.outcome is ClaimOutcome.FAILED:
        detail = result.error or "unknown error"
    else:
        detail = result.error or "skipped"
    owner = result.owner_id or "unknown"
    detail = clip_text(detail, detail_limit)
    return f"{OUTCOME_ICONS[result.outcome]} {result.account_id} ({owner}): {detail}"


def format_summary_message(summary: ClaimSummary, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """Render the run summary within `max_length` characters.

    Per-user lines absorb any shortening; the counts, the overflow notice and
    the finish timestamp are always kept whole.
    """

    header = [
        "📊 **Claim Run Summary**",
        f"**Process:** `{summary.process_id}` ({summary.status.value})",
        (
            f"**Attempted:** {summary.total_attempted} | "
            f"✅ {summary.total_succeeded} | "
            f"❌ {summary.total_failed} | "
            f"⏭️ {summary.total_skipped}"
        ),
        "",
    ]
    footer: list[str] = []
    if summary.overflow_count > 0:
        footer.append(f"…and {summary.overflow_count} more users")
    footer.append("")
    footer.append(f"**Finished (UTC):** {summary.timestamp_utc}")

    details = [format_result_line(result) for result in summary.per_user]
    message = "\n".join([*header, *details, *footer])
    if len(message) <= max_length or not details:
        return message

    fixed_length = len("\n".join([*header, *footer])) + len(details)
    line_budget = max((max_length - fixed_length) // len(details), 0)
    details = [clip_text(line, line_budget) for line in details]
    return "\n".join([*header, *details, *footer])


def format_admin_alert(summary: ClaimSummary, error: str | None) -> str:
    return "\n".join(
        [
            "🚨 **Claim run failed**",
            f"**Process:** `{summary.process_id}`",
            f"**Error:** {clip_text(error or 'Unknown error', ERROR_TEXT_LIMIT)}",
            f"**Time (UTC):** {summary.timestamp_utc}",
        ]
    )


class ClaimSummaryService:
    """Publish one summary per finished job and alert admins when a job fails."""

    def __init__(
        self,
        messaging_client: MessagingClient,
        *,
        operations_channel_id: str | None = None,
        admin_user_ids: Sequence[str] = (),
        detail_limit: int = SUMMARY_DETAIL_LIMIT,
        ready_timeout_seconds: float = 10.0,
    ) -> None:
        self._messaging_client = messaging_client
        self._operations_channel_id = operations_channel_id
        self._admin_user_ids = tuple(admin_user_ids)
        self._detail_limit = max(detail_limit, 1)
        self._ready_timeout_seconds = ready_timeout_seconds

    async def publish(self, job: ClaimJob) -> ClaimSummary | None:
        """Post the run summary and, for failed jobs, admin alerts."""

        if job.total_users == 0:
            logger.info("Claim job %s had no accounts; no summary posted.", job.process_id)
            return None

        summary = ClaimSummary.from_job(job, self._detail_limit)
        if not await messaging_ready(self._messaging_client, self._ready_timeout_seconds):
            logger.warning("Skipping summary for %s; messaging is not ready.", job.process_id)
            return summary

        if self._operations_channel_id:
            try:
                await self._messaging_client.send_channel_message(
                    self._operations_channel_id,
                    format_summary_message(summary),
                )
            except Exception as exc:  # noqa: BLE001
                logger.warning("Summary post for %s failed: %s", job.process_id, exc)
        else:
            logger.info(
                "No operations channel configured; summary for %s not posted.",
                job.process_id,
            )

        if job.status is ClaimJobStatus.FAILED:
            await self._alert_admins(summary, job.error)
        return summary

    async def _alert_admins(self, summary: ClaimSummary, error: str | None) -> int:
        if not self._admin_user_ids:
            logger.warning(
                "Claim job %s failed but no admin users are configured.",
                summary.process_id,
            )
            return 0

        message = format_admin_alert(summary, error)
        delivered = 0
        for admin_id in self._admin_user_ids:
            try:
                await self._messaging_client.send_direct_message(admin_id, message)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Admin alert to %s failed: %s", admin_id, exc)
                continue
            delivered += 1
        return delivered


__all__ = [
    "ClaimSummaryService",
    "OUTCOME_ICONS",
    "format_admin_alert",
    "format_result_line",
    "format_summary_message",
]
