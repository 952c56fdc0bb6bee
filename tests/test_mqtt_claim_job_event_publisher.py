from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from claim_pipeline.domain.claim_types import ClaimJobStatus, ClaimOutcome, ClaimTrigger
from claim_pipeline.domain.entities import ClaimJob, ClaimResult
from claim_pipeline.infrastructure.events import MqttClaimJobEventPublisher


class RecordingMqttClient:
    def __init__(self, fail: bool = False) -> None:
        self.published: list[tuple[str, str, int]] = []
        self._fail = fail

    def publish(self, topic: str, payload: str, qos: int) -> Any:
        if self._fail:
            raise OSError("broker gone")
        self.published.append((topic, payload, qos))


@pytest.fixture
def publisher(monkeypatch: pytest.MonkeyPatch) -> MqttClaimJobEventPublisher:
    monkeypatch.setattr(
        MqttClaimJobEventPublisher,
        "_connect_with_retry",
        lambda self, client, broker_host, broker_port: None,
    )
    monkeypatch.setattr("paho.mqtt.client.Client.loop_start", lambda self: None)
    return MqttClaimJobEventPublisher(
        service_id="svc-1",
        broker_host="localhost",
        topic_prefix="/rewards/claims/",
        qos=1,
    )


def _job() -> ClaimJob:
    return ClaimJob(
        process_id="claim-1",
        total_users=2,
        trigger=ClaimTrigger.SCHEDULED,
        completed_users=1,
    )


def test_progress_events_use_per_job_topic(publisher: MqttClaimJobEventPublisher) -> None:
    client = RecordingMqttClient()
    publisher._client = client

    asyncio.run(
        publisher.publish_progress(
            _job(),
            ClaimResult(account_id="a", outcome=ClaimOutcome.SUCCESS, claimed_items=("gold",)),
        )
    )

    topic, payload, qos = client.published[0]
    assert topic == "rewards/claims/svc-1/claim-jobs/claim-1/progress"
    assert qos == 1
    body = json.loads(payload)
    assert body["eventType"] == "progress"
    assert body["trigger"] == "scheduled"
    assert body["completedUsers"] == 1
    assert body["result"] == {
        "accountId": "a",
        "outcome": "success",
        "claimedItems": ["gold"],
        "error": None,
    }


def test_state_events_carry_status_and_error(publisher: MqttClaimJobEventPublisher) -> None:
    client = RecordingMqttClient()
    publisher._client = client
    job = _job()
    job.status = ClaimJobStatus.FAILED
    job.error = "executor unreachable"

    asyncio.run(publisher.publish_state(job))

    topic, payload, _ = client.published[0]
    assert topic.endswith("/claim-jobs/claim-1/state")
    body = json.loads(payload)
    assert body["status"] == "failed"
    assert body["error"] == "executor unreachable"


def test_publish_failures_are_logged_not_raised(
    publisher: MqttClaimJobEventPublisher,
    caplog: pytest.LogCaptureFixture,
) -> None:
    publisher._client = RecordingMqttClient(fail=True)

    asyncio.run(publisher.publish_state(_job()))

    assert "MQTT publish" in caplog.text


def test_invalid_qos_is_rejected() -> None:
    with pytest.raises(ValueError):
        MqttClaimJobEventPublisher(service_id="svc-1", broker_host="localhost", qos=3)


def test_connect_retries_then_gives_up(monkeypatch: pytest.MonkeyPatch) -> None:
    attempts: list[str] = []

    def _refuse(self: Any, host: str, port: int, keepalive: int) -> None:
        attempts.append(host)
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr("paho.mqtt.client.Client.connect", _refuse)
    monkeypatch.setattr(
        "claim_pipeline.infrastructure.events.mqtt_claim_job_event_publisher.time.sleep",
        lambda _seconds: None,
    )

    with pytest.raises(RuntimeError, match="after 3 attempt"):
        MqttClaimJobEventPublisher(
            service_id="svc-1",
            broker_host="broker.local",
            connect_attempts=3,
        )

    assert attempts == ["broker.local"] * 3
