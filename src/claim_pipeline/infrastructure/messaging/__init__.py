"""Messaging adapter implementations."""

from claim_pipeline.infrastructure.messaging.discord_client import (
    DiscordClient,
    MessagingClientError,
)
from claim_pipeline.infrastructure.messaging.noop_messaging_client import NoopMessagingClient

__all__ = ["DiscordClient", "MessagingClientError", "NoopMessagingClient"]
