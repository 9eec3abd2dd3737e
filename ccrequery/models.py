"""Pydantic models for ccrequery.

Provides validated configuration models for the requery scheduler.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class RequeryConfig(BaseModel):
    """Requery scheduling configuration."""

    enabled: bool = Field(
        default=False,
        description="Allow activated downloads to send broadcast requeries",
    )
    cooldown_seconds: float = Field(
        default=300.0,
        gt=0.0,
        le=86400.0,
        description="Time a sent query waits for results before another may follow",
    )
    connect_retry_delay: float = Field(
        default=0.75,
        gt=0.0,
        le=60.0,
        description="Suggested retry delay when connections are not yet stable",
    )
    min_stable_connections: int = Field(
        default=2,
        ge=0,
        le=1000,
        description="Connections that must have exchanged enough messages",
    )
    min_messages_per_connection: int = Field(
        default=6,
        ge=0,
        le=100000,
        description="Messages a connection must have exchanged to count as stable",
    )
    min_total_messages: int = Field(
        default=45,
        ge=0,
        le=10000000,
        description="Messages exchanged across all active connections",
    )
    dht_lookup_timeout: float = Field(
        default=60.0,
        gt=0.0,
        le=3600.0,
        description="Timeout for a single DHT alternate-location lookup in seconds",
    )
    dht_max_peers: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Maximum sources requested per DHT lookup",
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(
        default=False,
        description="Write JSON log lines instead of Rich console output",
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )
    enable_metrics: bool = Field(default=True, description="Enable metrics collection")

    @model_validator(mode="after")
    def validate_log_file(self) -> ObservabilityConfig:
        """Reject an empty log file path."""
        if self.log_file is not None and not self.log_file.strip():
            msg = "log_file must not be empty when set"
            raise ValueError(msg)
        return self


class Config(BaseModel):
    """Main configuration model."""

    requery: RequeryConfig = Field(
        default_factory=RequeryConfig,
        description="Requery scheduling configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )
