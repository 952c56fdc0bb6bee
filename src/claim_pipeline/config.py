"""Application settings."""

import json
from enum import StrEnum
from typing import Annotated

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class RepositoryBackend(StrEnum):
    """Available persistence adapters for registered accounts."""

    IN_MEMORY = "in_memory"
    POSTGRES = "postgres"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Reward Claim Pipeline"
    api_prefix: str = ""
    service_id: str = "claim-pipeline-local"
    host: str = "0.0.0.0"
    port: int = 8080
    max_concurrent_claims: int = 3
    claim_attempt_timeout_seconds: float = 120.0
    claim_executor_endpoint: str | None = None
    claim_executor_timeout_seconds: float = 150.0
    claim_executor_connect_timeout_seconds: float = 10.0
    schedule_enabled: bool = True
    schedule_hours_utc: Annotated[list[int], NoDecode] = Field(
        default_factory=lambda: [0, 6, 12, 18]
    )
    confirmation_dir: str = "confirmations"
    screenshot_dir: str = "screenshots"
    confirmation_timezone: str = "Europe/London"
    artifact_retention_hours: float = 24.0
    artifact_sweep_interval_seconds: float = 3600.0
    finished_job_retention_seconds: float = 3600.0
    repository_backend: RepositoryBackend = RepositoryBackend.IN_MEMORY
    postgres_dsn: str | None = None
    postgres_pool_min_size: int = 1
    postgres_pool_max_size: int = 10
    discord_bot_token: str | None = None
    discord_api_base_url: str = "https://discord.com/api/v10"
    discord_timeout_seconds: float = 15.0
    discord_ready_timeout_seconds: float = 10.0
    results_channel_id: str | None = None
    operations_channel_id: str | None = None
    admin_user_ids: Annotated[list[str], NoDecode] = Field(default_factory=list)
    job_events_mqtt_enabled: bool = False
    job_events_mqtt_host: str | None = None
    job_events_mqtt_port: int = 1883
    job_events_mqtt_username: str | None = None
    job_events_mqtt_password: str | None = None
    job_events_mqtt_topic_prefix: str = "rewards/claims"
    job_events_mqtt_qos: int = 0
    job_events_mqtt_connect_attempts: int = 20

    @field_validator("schedule_hours_utc", "admin_user_ids", mode="before")
    @classmethod
    def parse_csv_list(cls, value: object) -> object:
        """Support comma-separated env var values in addition to JSON arrays."""

        if not isinstance(value, str):
            return value
        stripped = value.strip()
        if stripped.startswith("["):
            return json.loads(stripped)
        return [item.strip() for item in value.split(",") if item.strip()]

    @model_validator(mode="after")
    def validate_runtime_settings(self) -> "Settings":
        """Ensure limits and backend-specific settings are valid."""

        if self.repository_backend == RepositoryBackend.POSTGRES and not self.postgres_dsn:
            raise ValueError(
                "CLAIM_POSTGRES_DSN is required when CLAIM_REPOSITORY_BACKEND=postgres."
            )
        if self.postgres_pool_min_size < 1:
            raise ValueError("CLAIM_POSTGRES_POOL_MIN_SIZE must be >= 1.")
        if self.postgres_pool_max_size < self.postgres_pool_min_size:
            raise ValueError(
                "CLAIM_POSTGRES_POOL_MAX_SIZE must be >= CLAIM_POSTGRES_POOL_MIN_SIZE."
            )
        if self.max_concurrent_claims < 1:
            raise ValueError("CLAIM_MAX_CONCURRENT_CLAIMS must be >= 1.")
        if self.claim_attempt_timeout_seconds <= 0:
            raise ValueError("CLAIM_CLAIM_ATTEMPT_TIMEOUT_SECONDS must be > 0.")
        if self.claim_executor_timeout_seconds <= 0:
            raise ValueError("CLAIM_CLAIM_EXECUTOR_TIMEOUT_SECONDS must be > 0.")
        connect_timeout = self.claim_executor_connect_timeout_seconds
        if not 0 < connect_timeout < self.claim_attempt_timeout_seconds:
            raise ValueError(
                "CLAIM_CLAIM_EXECUTOR_CONNECT_TIMEOUT_SECONDS must be > 0 and below "
                "CLAIM_CLAIM_ATTEMPT_TIMEOUT_SECONDS."
            )
        if self.schedule_enabled and not self.schedule_hours_utc:
            raise ValueError(
                "CLAIM_SCHEDULE_HOURS_UTC must not be empty when CLAIM_SCHEDULE_ENABLED=true."
            )
        if any(hour < 0 or hour > 23 for hour in self.schedule_hours_utc):
            raise ValueError("CLAIM_SCHEDULE_HOURS_UTC values must be between 0 and 23.")
        if self.artifact_retention_hours <= 0:
            raise ValueError("CLAIM_ARTIFACT_RETENTION_HOURS must be > 0.")
        if self.artifact_sweep_interval_seconds <= 0:
            raise ValueError("CLAIM_ARTIFACT_SWEEP_INTERVAL_SECONDS must be > 0.")
        if self.finished_job_retention_seconds < 0:
            raise ValueError("CLAIM_FINISHED_JOB_RETENTION_SECONDS must be >= 0.")
        if self.discord_timeout_seconds <= 0:
            raise ValueError("CLAIM_DISCORD_TIMEOUT_SECONDS must be > 0.")
        if self.job_events_mqtt_enabled and not self.job_events_mqtt_host:
            raise ValueError(
                "CLAIM_JOB_EVENTS_MQTT_HOST is required when CLAIM_JOB_EVENTS_MQTT_ENABLED=true."
            )
        if self.job_events_mqtt_port < 1:
            raise ValueError("CLAIM_JOB_EVENTS_MQTT_PORT must be >= 1.")
        if self.job_events_mqtt_connect_attempts < 1:
            raise ValueError("CLAIM_JOB_EVENTS_MQTT_CONNECT_ATTEMPTS must be >= 1.")
        if self.job_events_mqtt_qos not in {0, 1, 2}:
            raise ValueError("CLAIM_JOB_EVENTS_MQTT_QOS must be one of 0, 1, 2.")
        return self

    model_config = SettingsConfigDict(env_prefix="CLAIM_", extra="ignore")


__all__ = ["RepositoryBackend", "Settings"]
