"""Server configuration resolved from CLI arguments, environment variables and defaults."""

from dataclasses import dataclass
from typing import Any, Optional

from .base import EnvVars, get_config_value


def _mask(secret: Optional[str]) -> str:
    if not secret:
        return "Not set"
    return f"{secret[:2]}***" if len(secret) > 6 else "***"


@dataclass
class Config:
    """Application configuration."""

    # === API ===
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_title: str = "Address Relay"
    api_version: str = "1.0.0"
    api_bearer_token: Optional[str] = None
    metrics_enabled: bool = True
    graphql_enabled: bool = True

    # === Logging ===
    log_level: str = "INFO"
    log_format: str = "json"  # json|text

    # === Webhook ingestion ===
    webhook_signing_key: Optional[str] = None

    # === Pub/Sub ===
    pubsub_backend: str = "gcp"  # gcp|memory
    gcp_project_id: Optional[str] = None
    pubsub_topic: str = "blockchain-notifications"
    pubsub_subscription: str = "address_updated"
    pubsub_timeout_seconds: float = 10.0
    pubsub_max_delivery_attempts: int = 5
    channel_queue_size: int = 100

    # === Address watch list ===
    notify_api_url: str = "https://dashboard.alchemyapi.io/api"
    notify_webhook_id: Optional[str] = None
    notify_auth_token: Optional[str] = None

    # === Activity forwarding ===
    forward_url: Optional[str] = None
    forward_access_key: Optional[str] = None

    # === Outbound HTTP ===
    http_timeout: int = 5
    http_retry_count: int = 3

    @classmethod
    def from_args_and_env(cls, cli_args: Optional[dict[str, Any]] = None) -> "Config":
        """
        Load configuration from CLI arguments, environment variables, and defaults.

        Priority: CLI args > Environment variables > Defaults

        Args:
            cli_args: Mapping of CLI option names to values; None values are ignored

        Returns:
            Config instance
        """
        args = {k: v for k, v in (cli_args or {}).items() if v is not None}
        config = cls()

        def resolve(field: str, env_var: str, type_converter: type = str, fallback: Optional[str] = None):
            return get_config_value(
                args.get(field), env_var, getattr(config, field), type_converter, fallback
            )

        config.api_host = resolve("api_host", EnvVars.API_HOST)
        config.api_port = resolve("api_port", EnvVars.API_PORT, int, EnvVars.LEGACY_PORT)
        config.api_title = resolve("api_title", EnvVars.API_TITLE)
        config.api_version = resolve("api_version", EnvVars.API_VERSION)
        config.api_bearer_token = resolve("api_bearer_token", EnvVars.API_BEARER_TOKEN)
        config.metrics_enabled = resolve("metrics_enabled", EnvVars.METRICS_ENABLED, bool)
        config.graphql_enabled = resolve("graphql_enabled", EnvVars.GRAPHQL_ENABLED, bool)

        config.log_level = resolve("log_level", EnvVars.LOG_LEVEL)
        config.log_format = resolve("log_format", EnvVars.LOG_FORMAT)

        config.webhook_signing_key = resolve(
            "webhook_signing_key", EnvVars.WEBHOOK_SIGNING_KEY,
            fallback=EnvVars.LEGACY_WEBHOOK_SIGNING_KEY,
        )

        config.pubsub_backend = resolve("pubsub_backend", EnvVars.PUBSUB_BACKEND).lower()
        config.gcp_project_id = resolve(
            "gcp_project_id", EnvVars.GCP_PROJECT_ID, fallback=EnvVars.LEGACY_GCP_PROJECT_ID
        )
        config.pubsub_topic = resolve("pubsub_topic", EnvVars.PUBSUB_TOPIC)
        config.pubsub_subscription = resolve("pubsub_subscription", EnvVars.PUBSUB_SUBSCRIPTION)
        config.pubsub_timeout_seconds = resolve(
            "pubsub_timeout_seconds", EnvVars.PUBSUB_TIMEOUT_SECONDS, float
        )
        config.pubsub_max_delivery_attempts = resolve(
            "pubsub_max_delivery_attempts", EnvVars.PUBSUB_MAX_DELIVERY_ATTEMPTS, int
        )
        config.channel_queue_size = resolve("channel_queue_size", EnvVars.CHANNEL_QUEUE_SIZE, int)

        config.notify_api_url = resolve("notify_api_url", EnvVars.NOTIFY_API_URL)
        config.notify_webhook_id = resolve(
            "notify_webhook_id", EnvVars.NOTIFY_WEBHOOK_ID, fallback=EnvVars.LEGACY_NOTIFY_WEBHOOK_ID
        )
        config.notify_auth_token = resolve(
            "notify_auth_token", EnvVars.NOTIFY_AUTH_TOKEN, fallback=EnvVars.LEGACY_NOTIFY_AUTH_TOKEN
        )

        config.forward_url = resolve(
            "forward_url", EnvVars.FORWARD_URL, fallback=EnvVars.LEGACY_FORWARD_URL
        )
        config.forward_access_key = resolve(
            "forward_access_key", EnvVars.FORWARD_ACCESS_KEY, fallback=EnvVars.LEGACY_FORWARD_ACCESS_KEY
        )

        config.http_timeout = resolve("http_timeout", EnvVars.HTTP_TIMEOUT, int)
        config.http_retry_count = resolve("http_retry_count", EnvVars.HTTP_RETRY_COUNT, int)

        return config

    def display(self) -> str:
        """
        Display configuration in human-readable format with secrets masked.

        Returns:
            Formatted configuration string
        """
        lines = [
            "Configuration:",
            "  API:",
            f"    Host: {self.api_host}",
            f"    Port: {self.api_port}",
            f"    Authentication: {'Enabled (Bearer token required)' if self.api_bearer_token else 'Disabled (Public API)'}",
            f"    Metrics: {'Enabled' if self.metrics_enabled else 'Disabled'}",
            f"    GraphQL: {'Enabled' if self.graphql_enabled else 'Disabled'}",
            "  Logging:",
            f"    Level: {self.log_level}",
            f"    Format: {self.log_format}",
            "  Webhook:",
            f"    Signing Key: {_mask(self.webhook_signing_key)}",
            "  Pub/Sub:",
            f"    Backend: {self.pubsub_backend}",
        ]
        if self.pubsub_backend == "gcp":
            lines.append(f"    Project: {self.gcp_project_id or 'Not set'}")
        else:
            lines.append(f"    Max Delivery Attempts: {self.pubsub_max_delivery_attempts}")
        lines.extend([
            f"    Topic: {self.pubsub_topic}",
            f"    Subscription: {self.pubsub_subscription}",
            f"    Timeout: {self.pubsub_timeout_seconds}s",
            f"    Channel Queue Size: {self.channel_queue_size}",
        ])

        if self.forward_url:
            lines.extend([
                "  Activity Forwarding:",
                f"    URL: {self.forward_url}",
                f"    Access Key: {_mask(self.forward_access_key)}",
            ])

        lines.extend([
            "  Outbound HTTP:",
            f"    Timeout: {self.http_timeout}s",
            f"    Retry Count: {self.http_retry_count}",
        ])

        return "\n".join(lines)
