"""Prometheus metrics collector."""

import logging
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


class MetricsCollector:
    """Collects and exposes Prometheus metrics."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics.

        Args:
            registry: Registry to register with (defaults to the global registry)
        """
        registry = registry if registry is not None else REGISTRY

        # Webhook ingestion
        self.webhooks_total = Counter(
            "relay_webhooks_total",
            "Webhook calls received, by outcome",
            ["outcome"],
            registry=registry,
        )

        self.activities_dropped_total = Counter(
            "relay_activities_dropped_total",
            "Activity entries received but not relayed (only the first entry is relayed)",
            registry=registry,
        )

        # Publishing
        self.events_published_total = Counter(
            "relay_events_published_total",
            "Events accepted by the pub/sub transport",
            ["topic"],
            registry=registry,
        )

        self.publish_latency_seconds = Histogram(
            "relay_publish_latency_seconds",
            "Time until the transport accepted a published event",
            buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=registry,
        )

        # Subscriptions
        self.deliveries_total = Counter(
            "relay_deliveries_total",
            "Messages delivered to subscription callbacks, by result",
            ["trigger", "result"],
            registry=registry,
        )

        self.active_subscriptions = Gauge(
            "relay_active_subscriptions",
            "Subscription registrations currently active",
            registry=registry,
        )

        # Outbound HTTP
        self.forwards_total = Counter(
            "relay_forwards_total",
            "Verified activities forwarded downstream, by status",
            ["status"],
            registry=registry,
        )

        # Application health
        self.errors_total = Counter(
            "relay_errors_total",
            "Total errors encountered",
            ["component", "error_type"],
            registry=registry,
        )

    def record_webhook(self, outcome: str) -> None:
        """Record a webhook call outcome."""
        self.webhooks_total.labels(outcome=outcome).inc()

    def record_dropped_activities(self, count: int) -> None:
        """Record activity entries that were not relayed."""
        if count > 0:
            self.activities_dropped_total.inc(count)

    def record_publish(self, topic: str, seconds: float) -> None:
        """Record a published event and its latency."""
        self.events_published_total.labels(topic=topic).inc()
        self.publish_latency_seconds.observe(seconds)

    def record_delivery(self, trigger: str, result: str) -> None:
        """Record a delivery to a subscription callback."""
        self.deliveries_total.labels(trigger=trigger, result=result).inc()

    def set_active_subscriptions(self, count: int) -> None:
        """Set the number of active registrations."""
        self.active_subscriptions.set(count)

    def record_forward(self, status: str) -> None:
        """Record a forwarding attempt outcome."""
        self.forwards_total.labels(status=status).inc()

    def record_error(self, component: str, error_type: str) -> None:
        """Record an error."""
        self.errors_total.labels(component=component, error_type=error_type).inc()


# Global metrics collector instance
_metrics: Optional[MetricsCollector] = None


def get_metrics() -> MetricsCollector:
    """Get or create global metrics collector."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
