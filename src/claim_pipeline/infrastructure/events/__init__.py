"""Claim job event publisher implementations."""

from claim_pipeline.infrastructure.events.mqtt_claim_job_event_publisher import (
    MqttClaimJobEventPublisher,
)
from claim_pipeline.infrastructure.events.noop_claim_job_event_publisher import (
    NoopClaimJobEventPublisher,
)

__all__ = ["MqttClaimJobEventPublisher", "NoopClaimJobEventPublisher"]
