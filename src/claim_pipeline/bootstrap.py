"""Application bootstrap/wiring."""

import logging
from dataclasses import dataclass

from claim_pipeline.application.services import (
    ClaimJobService,
    ClaimRequestQueue,
    ClaimSummaryService,
    ConfirmationDeliveryService,
)
from claim_pipeline.config import RepositoryBackend, Settings
from claim_pipeline.domain.claim_types import ClaimTrigger
from claim_pipeline.domain.ports import (
    AccountRepository,
    ClaimExecutor,
    ClaimJobEventPublisher,
    MessagingClient,
)
from claim_pipeline.infrastructure.events import (
    MqttClaimJobEventPublisher,
    NoopClaimJobEventPublisher,
)
from claim_pipeline.infrastructure.executors import HttpClaimExecutor, UnconfiguredClaimExecutor
from claim_pipeline.infrastructure.imaging import ConfirmationImageComposer
from claim_pipeline.infrastructure.messaging import DiscordClient, NoopMessagingClient
from claim_pipeline.infrastructure.registry import InMemoryClaimJobRegistry
from claim_pipeline.infrastructure.repositories import (
    InMemoryAccountRepository,
    PostgresAccountRepository,
)
from claim_pipeline.infrastructure.scheduling import ClaimArtifactSweeper, ClaimScheduler

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ClaimPipeline:
    """Wired service graph plus the background workers around it."""

    settings: Settings
    account_repository: AccountRepository
    job_registry: InMemoryClaimJobRegistry
    messaging_client: MessagingClient
    event_publisher: ClaimJobEventPublisher
    service: ClaimJobService
    request_queue: ClaimRequestQueue
    scheduler: ClaimScheduler
    sweeper: ClaimArtifactSweeper

    async def startup(self) -> None:
        """Start messaging login and background workers."""

        if isinstance(self.messaging_client, DiscordClient):
            await self.messaging_client.start()
        await self.service.startup()
        await self.request_queue.start()
        await self.scheduler.start()
        await self.sweeper.start()

    async def shutdown(self) -> None:
        """Stop workers in reverse order and release pools/connections."""

        await self.sweeper.stop()
        await self.scheduler.stop()
        await self.request_queue.stop()
        await self.service.shutdown()
        if isinstance(self.event_publisher, MqttClaimJobEventPublisher):
            await self.event_publisher.close()
        if isinstance(self.account_repository, PostgresAccountRepository):
            await self.account_repository.close()


def _build_repository(settings: Settings) -> AccountRepository:
    if settings.repository_backend == RepositoryBackend.POSTGRES:
        if settings.postgres_dsn is None:
            raise ValueError(
                "CLAIM_POSTGRES_DSN is required when CLAIM_REPOSITORY_BACKEND=postgres."
            )
        return PostgresAccountRepository(
            dsn=settings.postgres_dsn,
            min_pool_size=settings.postgres_pool_min_size,
            max_pool_size=settings.postgres_pool_max_size,
        )
    return InMemoryAccountRepository()


def _build_claim_executor(settings: Settings) -> ClaimExecutor:
    if settings.claim_executor_endpoint is None:
        logger.warning(
            "CLAIM_CLAIM_EXECUTOR_ENDPOINT is not set. Every claim attempt will fail "
            "as executor-unavailable."
        )
        return UnconfiguredClaimExecutor()
    return HttpClaimExecutor(
        base_url=settings.claim_executor_endpoint,
        timeout_seconds=settings.claim_executor_timeout_seconds,
        connect_timeout_seconds=settings.claim_executor_connect_timeout_seconds,
    )


def _build_messaging_client(settings: Settings) -> MessagingClient:
    if not settings.discord_bot_token:
        logger.warning("CLAIM_DISCORD_BOT_TOKEN is not set. Falling back to noop messaging.")
        return NoopMessagingClient()
    if settings.results_channel_id is None:
        logger.warning("CLAIM_RESULTS_CHANNEL_ID is not set; confirmations go to DMs only.")
    if settings.operations_channel_id is None:
        logger.warning("CLAIM_OPERATIONS_CHANNEL_ID is not set; run summaries are not posted.")
    return DiscordClient(
        bot_token=settings.discord_bot_token,
        base_url=settings.discord_api_base_url,
        timeout_seconds=settings.discord_timeout_seconds,
    )


def _build_event_publisher(settings: Settings) -> ClaimJobEventPublisher:
    if settings.job_events_mqtt_enabled:
        if settings.job_events_mqtt_host is None:
            raise ValueError(
                "CLAIM_JOB_EVENTS_MQTT_HOST is required when CLAIM_JOB_EVENTS_MQTT_ENABLED=true."
            )
        return MqttClaimJobEventPublisher(
            service_id=settings.service_id,
            broker_host=settings.job_events_mqtt_host,
            broker_port=settings.job_events_mqtt_port,
            topic_prefix=settings.job_events_mqtt_topic_prefix,
            qos=settings.job_events_mqtt_qos,
            username=settings.job_events_mqtt_username,
            password=settings.job_events_mqtt_password,
            connect_attempts=settings.job_events_mqtt_connect_attempts,
        )
    return NoopClaimJobEventPublisher()


def build_claim_pipeline(
    settings: Settings,
    *,
    account_repository: AccountRepository | None = None,
    claim_executor: ClaimExecutor | None = None,
    messaging_client: MessagingClient | None = None,
) -> ClaimPipeline:
    """Compose service graph."""

    repository = account_repository or _build_repository(settings)
    executor = claim_executor or _build_claim_executor(settings)
    messaging = messaging_client or _build_messaging_client(settings)
    event_publisher = _build_event_publisher(settings)
    job_registry = InMemoryClaimJobRegistry()

    service = ClaimJobService(
        account_repository=repository,
        job_registry=job_registry,
        claim_executor=executor,
        composer=ConfirmationImageComposer(settings.confirmation_dir),
        delivery_service=ConfirmationDeliveryService(
            account_repository=repository,
            messaging_client=messaging,
            results_channel_id=settings.results_channel_id,
            timezone_name=settings.confirmation_timezone,
            ready_timeout_seconds=settings.discord_ready_timeout_seconds,
        ),
        summary_service=ClaimSummaryService(
            messaging_client=messaging,
            operations_channel_id=settings.operations_channel_id,
            admin_user_ids=settings.admin_user_ids,
            ready_timeout_seconds=settings.discord_ready_timeout_seconds,
        ),
        event_publisher=event_publisher,
        max_concurrent_claims=settings.max_concurrent_claims,
        claim_attempt_timeout_seconds=settings.claim_attempt_timeout_seconds,
        finished_job_retention_seconds=settings.finished_job_retention_seconds,
    )
    request_queue = ClaimRequestQueue(service.handle_request)

    async def trigger_scheduled_run() -> str:
        return await request_queue.submit_claim_all(ClaimTrigger.SCHEDULED)

    return ClaimPipeline(
        settings=settings,
        account_repository=repository,
        job_registry=job_registry,
        messaging_client=messaging,
        event_publisher=event_publisher,
        service=service,
        request_queue=request_queue,
        scheduler=ClaimScheduler(
            trigger_claim_all=trigger_scheduled_run,
            hours_utc=settings.schedule_hours_utc,
            enabled=settings.schedule_enabled,
        ),
        sweeper=ClaimArtifactSweeper(
            directories=(settings.confirmation_dir, settings.screenshot_dir),
            retention_hours=settings.artifact_retention_hours,
            interval_seconds=settings.artifact_sweep_interval_seconds,
        ),
    )


__all__ = ["ClaimPipeline", "build_claim_pipeline"]
