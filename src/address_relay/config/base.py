"""Shared configuration utilities and constants.

Configuration values resolve with the priority CLI argument > environment
variable > default. Environment variable names live in one place (``EnvVars``)
so the CLI, the server and the tests agree on them.
"""

import os
from typing import Any, Optional, TypeVar

T = TypeVar("T")

ENV_PREFIX = "RELAY_"


class EnvVars:
    """Centralized environment variable names for consistent access."""

    # === API ===
    API_HOST = f"{ENV_PREFIX}API_HOST"
    API_PORT = f"{ENV_PREFIX}API_PORT"
    API_TITLE = f"{ENV_PREFIX}API_TITLE"
    API_VERSION = f"{ENV_PREFIX}API_VERSION"
    API_BEARER_TOKEN = f"{ENV_PREFIX}API_BEARER_TOKEN"
    METRICS_ENABLED = f"{ENV_PREFIX}METRICS_ENABLED"
    GRAPHQL_ENABLED = f"{ENV_PREFIX}GRAPHQL_ENABLED"

    # === Logging ===
    LOG_LEVEL = f"{ENV_PREFIX}LOG_LEVEL"
    LOG_FORMAT = f"{ENV_PREFIX}LOG_FORMAT"

    # === Webhook ingestion ===
    WEBHOOK_SIGNING_KEY = f"{ENV_PREFIX}WEBHOOK_SIGNING_KEY"

    # === Pub/Sub ===
    PUBSUB_BACKEND = f"{ENV_PREFIX}PUBSUB_BACKEND"
    GCP_PROJECT_ID = f"{ENV_PREFIX}GCP_PROJECT_ID"
    PUBSUB_TOPIC = f"{ENV_PREFIX}PUBSUB_TOPIC"
    PUBSUB_SUBSCRIPTION = f"{ENV_PREFIX}PUBSUB_SUBSCRIPTION"
    PUBSUB_TIMEOUT_SECONDS = f"{ENV_PREFIX}PUBSUB_TIMEOUT_SECONDS"
    PUBSUB_MAX_DELIVERY_ATTEMPTS = f"{ENV_PREFIX}PUBSUB_MAX_DELIVERY_ATTEMPTS"
    CHANNEL_QUEUE_SIZE = f"{ENV_PREFIX}CHANNEL_QUEUE_SIZE"

    # === Address watch list ===
    NOTIFY_API_URL = f"{ENV_PREFIX}NOTIFY_API_URL"
    NOTIFY_WEBHOOK_ID = f"{ENV_PREFIX}NOTIFY_WEBHOOK_ID"
    NOTIFY_AUTH_TOKEN = f"{ENV_PREFIX}NOTIFY_AUTH_TOKEN"

    # === Activity forwarding ===
    FORWARD_URL = f"{ENV_PREFIX}FORWARD_URL"
    FORWARD_ACCESS_KEY = f"{ENV_PREFIX}FORWARD_ACCESS_KEY"

    # === Outbound HTTP ===
    HTTP_TIMEOUT = f"{ENV_PREFIX}HTTP_TIMEOUT"
    HTTP_RETRY_COUNT = f"{ENV_PREFIX}HTTP_RETRY_COUNT"

    # === Legacy names used by earlier deployments ===
    LEGACY_PORT = "PORT"
    LEGACY_WEBHOOK_SIGNING_KEY = "ALCHEMY_WEBHOOK_SIGNING_KEY"
    LEGACY_GCP_PROJECT_ID = "GCLOUD_PROJECT_ID"
    LEGACY_NOTIFY_WEBHOOK_ID = "ALCHEMY_WEBHOOK_ID"
    LEGACY_NOTIFY_AUTH_TOKEN = "ALCHEMY_WEBHOOK_AUTH_TOKEN"
    LEGACY_FORWARD_URL = "KMS_BASE_URL"
    LEGACY_FORWARD_ACCESS_KEY = "KMS_ACCESS_KEY"


def get_env_value(
    env_var: str,
    default: T,
    type_converter: type = str,
    fallback_env_var: Optional[str] = None,
) -> T:
    """
    Get a value from an environment variable with type conversion.

    Args:
        env_var: Primary environment variable name
        default: Default value if not found
        type_converter: Type to convert to (str, int, float, bool)
        fallback_env_var: Optional legacy/fallback environment variable name

    Returns:
        The environment value converted to the specified type, or the default
    """
    env_value = os.getenv(env_var)

    if env_value is None and fallback_env_var:
        env_value = os.getenv(fallback_env_var)

    if env_value is not None:
        if type_converter == bool:
            return env_value.lower() in ("true", "1", "yes", "on")  # type: ignore
        return type_converter(env_value)

    return default


def get_config_value(
    cli_arg: Optional[Any],
    env_var: str,
    default: T,
    type_converter: type = str,
    fallback_env_var: Optional[str] = None,
) -> T:
    """
    Get a configuration value with priority: CLI > Environment > Default.

    Args:
        cli_arg: CLI argument value (highest priority)
        env_var: Primary environment variable name
        default: Default value (lowest priority)
        type_converter: Type to convert to (str, int, float, bool)
        fallback_env_var: Optional legacy/fallback environment variable name

    Returns:
        The resolved configuration value
    """
    if cli_arg is not None:
        return cli_arg

    return get_env_value(env_var, default, type_converter, fallback_env_var)
