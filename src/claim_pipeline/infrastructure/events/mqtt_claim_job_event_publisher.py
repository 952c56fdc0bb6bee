"""MQTT claim job event publisher."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import UTC, datetime
from typing import Any

from claim_pipeline.domain.entities import ClaimJob, ClaimResult
from claim_pipeline.domain.ports import ClaimJobEventPublisher

logger = logging.getLogger(__name__)

_MAX_BACKOFF_SECONDS = 3.0


class MqttClaimJobEventPublisher(ClaimJobEventPublisher):
    """Push per-account progress and job lifecycle state to MQTT.

    Topics are `<prefix>/<service_id>/claim-jobs/<processId>/progress` and
    `.../state`. Publishing is best-effort: broker faults are logged and never
    reach the claim pipeline.
    """

    def __init__(
        self,
        service_id: str,
        broker_host: str,
        broker_port: int = 1883,
        topic_prefix: str = "rewards/claims",
        qos: int = 0,
        username: str | None = None,
        password: str | None = None,
        connect_attempts: int = 20,
    ) -> None:
        if not broker_host.strip():
            raise ValueError("broker_host cannot be empty.")
        if qos not in {0, 1, 2}:
            raise ValueError("qos must be one of 0, 1, 2.")
        if connect_attempts < 1:
            raise ValueError("connect_attempts must be >= 1.")

        self._service_id = service_id
        self._topic_prefix = topic_prefix.strip().strip("/")
        self._qos = qos
        self._connect_attempts = connect_attempts

        try:
            import paho.mqtt.client as mqtt  # type: ignore[import-untyped]
        except ModuleNotFoundError as exc:
            raise RuntimeError(
                "paho-mqtt is required for MQTT claim job events. "
                "Install project dependencies first."
            ) from exc

        client = mqtt.Client(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=f"claim-pipeline-{service_id}",
        )
        if username is not None:
            client.username_pw_set(username=username, password=password)
        self._connect_with_retry(client, broker_host, broker_port)
        client.loop_start()
        self._client = client

    async def publish_progress(self, job: ClaimJob, result: ClaimResult) -> None:
        payload = self._event("progress", job)
        payload["result"] = {
            "accountId": result.account_id,
            "outcome": result.outcome.value,
            "claimedItems": list(result.claimed_items),
            "error": result.error,
        }
        await self._publish(self._topic(job, "progress"), payload)

    async def publish_state(self, job: ClaimJob) -> None:
        payload = self._event("state", job)
        payload["error"] = job.error
        await self._publish(self._topic(job, "state"), payload)

    async def close(self) -> None:
        """Stop the network loop and disconnect."""

        await asyncio.to_thread(self._client.loop_stop)
        await asyncio.to_thread(self._client.disconnect)

    async def _publish(self, topic: str, payload: dict[str, object]) -> None:
        message = json.dumps(payload, separators=(",", ":"))
        try:
            await asyncio.to_thread(self._client.publish, topic, message, self._qos)
        except Exception as exc:  # noqa: BLE001
            logger.warning("MQTT publish to %s failed: %s", topic, exc)

    def _topic(self, job: ClaimJob, kind: str) -> str:
        return f"{self._topic_prefix}/{self._service_id}/claim-jobs/{job.process_id}/{kind}"

    def _event(self, event_type: str, job: ClaimJob) -> dict[str, object]:
        return {
            "eventType": event_type,
            "timestamp": datetime.now(tz=UTC).isoformat(),
            "serviceId": self._service_id,
            "processId": job.process_id,
            "trigger": job.trigger.value,
            "status": job.status.value,
            "totalUsers": job.total_users,
            "completedUsers": job.completed_users,
            "failedUsers": job.failed_users,
        }

    def _connect_with_retry(self, client: Any, broker_host: str, broker_port: int) -> None:
        """Connect with capped exponential backoff, logging each failed attempt."""

        delay_seconds = 0.5
        for attempt in range(1, self._connect_attempts + 1):
            try:
                client.connect(host=broker_host, port=broker_port, keepalive=60)
            except Exception as exc:  # noqa: BLE001
                if attempt == self._connect_attempts:
                    raise RuntimeError(
                        f"MQTT broker {broker_host}:{broker_port} unreachable "
                        f"after {attempt} attempt(s)."
                    ) from exc
                logger.warning(
                    "MQTT connect attempt %s/%s to %s:%s failed: %s",
                    attempt,
                    self._connect_attempts,
                    broker_host,
                    broker_port,
                    exc,
                )
                time.sleep(delay_seconds)
                delay_seconds = min(_MAX_BACKOFF_SECONDS, delay_seconds * 1.5)
            else:
                logger.info("Connected to MQTT broker %s:%s.", broker_host, broker_port)
                return


__all__ = ["MqttClaimJobEventPublisher"]
