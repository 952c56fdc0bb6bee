"""Readiness gate for messaging clients that need a login handshake."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ReadinessAwareMessagingClient(Protocol):
    """Optional messaging-client extension exposing a one-shot ready signal."""

    async def wait_until_ready(self, timeout_seconds: float | None = None) -> bool:
        """Wait until the client is ready to send."""


async def messaging_ready(client: object, timeout_seconds: float) -> bool:
    """Return whether the client can send now; clients without a handshake always can."""

    if not isinstance(client, ReadinessAwareMessagingClient):
        return True
    ready = await client.wait_until_ready(timeout_seconds)
    if not ready:
        logger.warning("Messaging client not ready after %.1fs.", timeout_seconds)
    return ready


__all__ = ["ReadinessAwareMessagingClient", "messaging_ready"]
