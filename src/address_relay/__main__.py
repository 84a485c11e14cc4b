"""Main application entry point."""

import asyncio
import logging
import sys
from typing import Optional

import uvicorn

from .api.app import create_app
from .config import Config
from .exceptions import TransportError
from .metrics import MetricsCollector, get_metrics
from .pubsub import InMemoryTransport, PubSubRelay, PubSubTransport, SubscriptionName
from .webhook import ActivityForwarder, AddressActivityIngestor, SignatureVerifier

logger = logging.getLogger(__name__)


def build_transport(config: Config, metrics: Optional[MetricsCollector] = None) -> PubSubTransport:
    """
    Create the pub/sub transport selected by the configuration.

    Args:
        config: Resolved configuration
        metrics: Optional metrics collector for transport failures

    Raises:
        ValueError: If the backend is unknown or misconfigured
    """
    if config.pubsub_backend == "memory":
        logger.info("Using in-memory pub/sub transport")
        return InMemoryTransport(
            topics={config.pubsub_topic: [config.pubsub_subscription]},
            max_delivery_attempts=config.pubsub_max_delivery_attempts,
        )

    if config.pubsub_backend == "gcp":
        from .pubsub.gcp import GooglePubSubTransport

        logger.info(f"Using Google Cloud Pub/Sub transport (project {config.gcp_project_id})")
        return GooglePubSubTransport(
            project_id=config.gcp_project_id,
            max_outstanding_messages=config.channel_queue_size,
            metrics=metrics,
        )

    raise ValueError(f"Unknown pub/sub backend: {config.pubsub_backend}")


class Application:
    """Main application controller."""

    def __init__(self, config: Config):
        """
        Initialize application.

        Args:
            config: Application configuration
        """
        self.config = config
        self.metrics: Optional[MetricsCollector] = None
        self.transport: Optional[PubSubTransport] = None
        self.relay: Optional[PubSubRelay] = None
        self.forwarder: Optional[ActivityForwarder] = None
        self.ingestor: Optional[AddressActivityIngestor] = None
        self.api_server_task: Optional[asyncio.Task] = None
        self.running = False
        self._stopped = False

    async def start(self) -> None:
        """Start the application."""
        logger.info("Starting Address Relay")
        logger.info(f"\n{self.config.display()}")

        if not self.config.webhook_signing_key:
            logger.error("No webhook signing key configured (RELAY_WEBHOOK_SIGNING_KEY)")
            sys.exit(1)

        if self.config.metrics_enabled:
            self.metrics = get_metrics()

        try:
            self.transport = build_transport(self.config, self.metrics)
        except ValueError as e:
            logger.error(f"Cannot create pub/sub transport: {e}")
            sys.exit(1)

        self.relay = PubSubRelay(
            self.transport,
            topic_name=self.config.pubsub_topic,
            subscription_names={SubscriptionName.ADDRESS_UPDATED: self.config.pubsub_subscription},
            timeout_seconds=self.config.pubsub_timeout_seconds,
            metrics=self.metrics,
        )

        # A missing topic or subscription is a deployment error, not retried
        logger.info("Resolving pub/sub subscription...")
        try:
            subscription_path = await self.relay.get_subscription(SubscriptionName.ADDRESS_UPDATED)
        except TransportError as e:
            logger.error(f"Pub/Sub is not provisioned: {e}")
            sys.exit(1)
        logger.info(f"Subscription resolved: {subscription_path}")

        if self.config.forward_url:
            logger.info(f"Forwarding verified activity to {self.config.forward_url}")
            self.forwarder = ActivityForwarder(
                base_url=self.config.forward_url,
                access_key=self.config.forward_access_key,
                timeout=self.config.http_timeout,
                retry_count=self.config.http_retry_count,
                metrics=self.metrics,
            )

        self.ingestor = AddressActivityIngestor(
            verifier=SignatureVerifier(self.config.webhook_signing_key),
            relay=self.relay,
            forwarder=self.forwarder,
            metrics=self.metrics,
        )

        logger.info(f"Starting API server on {self.config.api_host}:{self.config.api_port}")
        self.api_server_task = asyncio.create_task(self._run_api_server())

        self.running = True
        logger.info("Application started successfully")

    async def stop(self) -> None:
        """Stop the application. Calling it again does nothing."""
        if self._stopped:
            return
        self._stopped = True

        logger.info("Stopping Address Relay...")
        self.running = False

        if self.api_server_task:
            self.api_server_task.cancel()
            try:
                await self.api_server_task
            except asyncio.CancelledError:
                pass

        if self.relay:
            logger.info(f"Removing {self.relay.active_subscriptions} active subscription(s)")
            await self.relay.close()

        if self.transport:
            try:
                await self.transport.close()
            except Exception as e:
                logger.error(f"Error closing pub/sub transport: {e}", exc_info=True)

        if self.forwarder:
            await self.forwarder.close()

        logger.info("Application stopped")

    async def _run_api_server(self) -> None:
        """Run the FastAPI server."""
        try:
            app = create_app(
                relay=self.relay,
                ingestor=self.ingestor,
                metrics=self.metrics,
                title=self.config.api_title,
                version=self.config.api_version,
                enable_metrics=self.config.metrics_enabled,
                bearer_token=self.config.api_bearer_token,
                enable_graphql=self.config.graphql_enabled,
                channel_queue_size=self.config.channel_queue_size,
            )

            config = uvicorn.Config(
                app,
                host=self.config.api_host,
                port=self.config.api_port,
                log_level="info",
                access_log=True,
            )

            server = uvicorn.Server(config)
            await server.serve()

        except asyncio.CancelledError:
            logger.info("API server shutting down...")
            raise
        except Exception as e:
            logger.error(f"API server error: {e}", exc_info=True)
            if self.metrics:
                self.metrics.record_error("api_server", "server_failed")
        finally:
            self.running = False

    async def run(self) -> None:
        """Run the application until interrupted."""
        try:
            await self.start()

            # Keep running until interrupted or the server exits
            while self.running:
                await asyncio.sleep(1)

        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        except Exception as e:
            logger.error(f"Application error: {e}", exc_info=True)
        finally:
            await self.stop()


def main() -> None:
    """Main entry point - delegates to CLI."""
    from .cli import cli
    cli()


if __name__ == "__main__":
    main()
