"""FastAPI dependency injection for the relay and the webhook ingestor."""

from typing import Optional

from fastapi import Request

from ..metrics import MetricsCollector
from ..pubsub.relay import PubSubRelay
from ..webhook.ingest import AddressActivityIngestor


def get_relay(request: Request) -> PubSubRelay:
    """
    Dependency to get the relay attached to the application.

    Raises:
        RuntimeError: If no relay has been attached
    """
    relay = getattr(request.app.state, "relay", None)
    if relay is None:
        raise RuntimeError("Relay not initialized")
    return relay


def get_ingestor(request: Request) -> AddressActivityIngestor:
    """
    Dependency to get the webhook ingestor attached to the application.

    Raises:
        RuntimeError: If no ingestor has been attached
    """
    ingestor = getattr(request.app.state, "ingestor", None)
    if ingestor is None:
        raise RuntimeError("Webhook ingestor not initialized")
    return ingestor


def get_metrics_collector(request: Request) -> Optional[MetricsCollector]:
    """Dependency to get the metrics collector, if metrics are enabled."""
    return getattr(request.app.state, "metrics", None)
