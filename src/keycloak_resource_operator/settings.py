"""Centralized operator settings using pydantic-settings.

This module provides a single source of truth for all operator configuration
loaded from environment variables. Uses pydantic for automatic validation,
type coercion, and documentation.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from keycloak_resource_operator.constants import DEFAULT_CONNECTION_RETRY_PERIOD


class Settings(BaseSettings):
    """Operator configuration loaded from environment variables.

    All settings have sensible defaults for production use. Override via
    environment variables as documented per field.
    """

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    json_logs: bool = Field(
        default=True,
        validation_alias="JSON_LOGS",
        description="Enable JSON formatted logging for structured log aggregation",
    )
    correlation_ids: bool = Field(
        default=True,
        validation_alias="CORRELATION_IDS",
        description="Enable correlation IDs in logs for request tracing",
    )

    # Namespace watching
    namespaces: str = Field(
        default="",
        validation_alias="KEYCLOAK_OPERATOR_NAMESPACES",
        description="Comma-separated list of namespaces to watch (empty = all namespaces)",
    )

    # Metrics and observability
    metrics_enabled: bool = Field(
        default=True,
        validation_alias="METRICS_ENABLED",
        description="Serve Prometheus metrics and health endpoints",
    )
    metrics_port: int = Field(
        default=8081,
        validation_alias="METRICS_PORT",
        description="Port for Prometheus metrics endpoint",
    )
    metrics_host: str = Field(
        default="0.0.0.0",
        validation_alias="METRICS_HOST",
        description="Host address to bind metrics server",
    )

    # Reconciliation behavior
    connection_retry_seconds: int = Field(
        default=DEFAULT_CONNECTION_RETRY_PERIOD,
        validation_alias="CONNECTION_RETRY_SECONDS",
        description="Fixed delay before revisiting a resource whose Keycloak is unreachable",
    )
    failure_backoff_base_seconds: int = Field(
        default=10,
        validation_alias="FAILURE_BACKOFF_BASE_SECONDS",
        description="Retry delay after the first consecutive reconciliation failure",
    )
    failure_backoff_max_seconds: int = Field(
        default=600,
        validation_alias="FAILURE_BACKOFF_MAX_SECONDS",
        description="Upper bound for the failure-aware retry delay",
    )
    conflict_retry_attempts: int = Field(
        default=3,
        validation_alias="CONFLICT_RETRY_ATTEMPTS",
        description="Immediate re-fetch attempts after a resourceVersion conflict",
    )

    # Keycloak Admin API
    keycloak_request_timeout_seconds: float = Field(
        default=60.0,
        validation_alias="KEYCLOAK_REQUEST_TIMEOUT_SECONDS",
        description="Timeout for a single Keycloak Admin API request",
    )

    @property
    def watched_namespaces(self) -> list[str] | None:
        """Parse watched namespaces from comma-separated string.

        Returns:
            List of namespace names, or None to watch all namespaces
        """
        if self.namespaces:
            return [ns.strip() for ns in self.namespaces.split(",") if ns.strip()]
        return None


# Global settings instance - initialized once at module import
settings = Settings()
