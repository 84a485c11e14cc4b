"""Configuration module for Address Relay.

Usage:
    from address_relay.config import Config
    from address_relay.config.base import EnvVars, get_config_value

All environment variables use the ``RELAY_`` prefix. Variable names of earlier
deployments (``ALCHEMY_WEBHOOK_SIGNING_KEY``, ``GCLOUD_PROJECT_ID``, ...) are
read as fallbacks.
"""

from .base import ENV_PREFIX, EnvVars, get_config_value, get_env_value
from .server import Config

__all__ = [
    "Config",
    "EnvVars",
    "get_config_value",
    "get_env_value",
    "ENV_PREFIX",
]
