"""Configuration models for the Akeneo migrator."""

from typing import Any

from pydantic import BaseModel, Field, HttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

from akeneo_migrator.models.node import DEFAULT_VOLATILE_FIELDS


class AkeneoConnectionConfig(BaseModel):
    """Connection settings for one Akeneo instance."""

    url: HttpUrl = Field(default=..., description="Akeneo instance URL")
    client_id: str = Field(default=..., min_length=1, description="API connection client id")
    secret: str = Field(default=..., min_length=1, description="API connection secret")
    username: str = Field(default=..., min_length=1, description="API user name")
    password: str = Field(default=..., min_length=1, description="API user password")
    timeout_seconds: float = Field(
        default=30.0, gt=0, le=600, description="Timeout for a single HTTP request"
    )

    @property
    def host(self) -> str:
        """URL without trailing slash, suitable for building endpoint paths."""
        return str(self.url).rstrip("/")


class SyncConfig(BaseModel):
    """Configuration for the synchronization engine."""

    batch_size: int = Field(
        default=100, ge=1, le=100, description="Nodes fetched per change-feed page"
    )
    max_parent_depth: int = Field(
        default=50, ge=1, le=1000, description="Maximum parent hops when resolving a root"
    )
    volatile_fields: list[str] = Field(
        default_factory=lambda: list(DEFAULT_VOLATILE_FIELDS),
        description="Attributes stripped from payloads before they are written",
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        description="If True, output JSON logs. If False, use console format.",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional path to log file. If None, logs only to stdout.",
    )


class AppConfig(BaseSettings):
    """Main application configuration.

    This class uses pydantic-settings to load configuration from environment
    variables with the APP_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    source: AkeneoConnectionConfig
    destination: AkeneoConnectionConfig
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def with_sync_overrides(self, **overrides: Any) -> "AppConfig":
        """Return a copy whose ``sync`` section has ``overrides`` applied and re-validated.

        Raises:
            pydantic.ValidationError: If an override breaks a ``SyncConfig`` constraint
        """
        sync = SyncConfig.model_validate({**self.sync.model_dump(), **overrides})
        return self.model_copy(update={"sync": sync})
