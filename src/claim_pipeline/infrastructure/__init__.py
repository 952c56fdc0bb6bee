"""Infrastructure layer public API."""

from claim_pipeline.infrastructure.events import (
    MqttClaimJobEventPublisher,
    NoopClaimJobEventPublisher,
)
from claim_pipeline.infrastructure.executors import HttpClaimExecutor, UnconfiguredClaimExecutor
from claim_pipeline.infrastructure.imaging import ConfirmationImageComposer
from claim_pipeline.infrastructure.messaging import (
    DiscordClient,
    MessagingClientError,
    NoopMessagingClient,
)
from claim_pipeline.infrastructure.registry import InMemoryClaimJobRegistry
from claim_pipeline.infrastructure.repositories import (
    InMemoryAccountRepository,
    PostgresAccountRepository,
)
from claim_pipeline.infrastructure.scheduling import ClaimArtifactSweeper, ClaimScheduler

__all__ = [
    "ClaimArtifactSweeper",
    "ClaimScheduler",
    "ConfirmationImageComposer",
    "DiscordClient",
    "HttpClaimExecutor",
    "InMemoryAccountRepository",
    "InMemoryClaimJobRegistry",
    "MessagingClientError",
    "MqttClaimJobEventPublisher",
    "NoopClaimJobEventPublisher",
    "NoopMessagingClient",
    "PostgresAccountRepository",
    "UnconfiguredClaimExecutor",
]
