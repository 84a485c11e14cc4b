"""Command-line interface for Address Relay."""

import asyncio
import logging
import signal
import sys

import click

from .config import Config
from .utils.logging import setup_logging
from .webhook.notify import AddressNotifyClient
from .webhook.signature import compute_signature

logger = logging.getLogger(__name__)


@click.group()
def cli():
    """Address Relay - Signed address activity webhooks relayed over Pub/Sub."""
    pass


@cli.command()
@click.option(
    "--api-host",
    type=str,
    help="API server host (default: 0.0.0.0)",
)
@click.option(
    "--api-port",
    type=int,
    help="API server port (default: 8000)",
)
@click.option(
    "--api-bearer-token",
    type=str,
    help="Bearer token for API authentication (optional, webhooks and /metrics stay public)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (default: INFO)",
)
@click.option(
    "--log-format",
    type=click.Choice(["text", "json"], case_sensitive=False),
    help="Log format (default: json)",
)
@click.option(
    "--webhook-signing-key",
    type=str,
    help="Shared secret used to verify webhook signatures (required)",
)
@click.option(
    "--pubsub-backend",
    type=click.Choice(["gcp", "memory"], case_sensitive=False),
    help="Pub/Sub backend (default: gcp)",
)
@click.option(
    "--gcp-project-id",
    type=str,
    help="Google Cloud project owning the topic and subscription",
)
@click.option(
    "--pubsub-topic",
    type=str,
    help="Topic relayed events are published to (default: blockchain-notifications)",
)
@click.option(
    "--pubsub-subscription",
    type=str,
    help="Subscription delivering relayed events (default: address_updated)",
)
@click.option(
    "--pubsub-timeout-seconds",
    type=float,
    help="Deadline for each Pub/Sub call (default: 10)",
)
@click.option(
    "--pubsub-max-delivery-attempts",
    type=int,
    help="Deliveries before a message is dropped, memory backend only (default: 5)",
)
@click.option(
    "--channel-queue-size",
    type=int,
    help="Events buffered per GraphQL subscriber (default: 100)",
)
@click.option(
    "--forward-url",
    type=str,
    help="Base URL verified activity is forwarded to (optional)",
)
@click.option(
    "--forward-access-key",
    type=str,
    help="Access key sent with forwarded activity",
)
@click.option(
    "--http-timeout",
    type=int,
    help="Outbound HTTP timeout in seconds (default: 5)",
)
@click.option(
    "--http-retry-count",
    type=int,
    help="Outbound HTTP retry attempts (default: 3)",
)
@click.option(
    "--no-metrics",
    is_flag=True,
    help="Disable Prometheus metrics",
)
@click.option(
    "--no-graphql",
    is_flag=True,
    help="Disable the GraphQL endpoint",
)
def server(**kwargs):
    """Start the Address Relay server."""
    from .__main__ import Application

    # Flags only ever disable; unset flags defer to the environment
    if kwargs.pop("no_metrics"):
        kwargs["metrics_enabled"] = False
    if kwargs.pop("no_graphql"):
        kwargs["graphql_enabled"] = False

    # Filter out None values (unspecified options)
    cli_args = {k: v for k, v in kwargs.items() if v is not None}

    # Load configuration from args and environment
    config = Config.from_args_and_env(cli_args)

    # Setup logging
    setup_logging(level=config.log_level, format_type=config.log_format)

    # Create and run application
    app = Application(config)

    # Setup signal handlers
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def signal_handler(sig, frame):
        logger.info(f"Received signal {sig}")
        loop.create_task(app.stop())

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        loop.run_until_complete(app.run())
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt")
    finally:
        loop.close()


@cli.command()
@click.argument("body_file", type=click.File("rb"), default="-")
@click.option(
    "--signing-key",
    type=str,
    help="Signing key (default: RELAY_WEBHOOK_SIGNING_KEY)",
)
def sign(body_file, signing_key):
    """Print the webhook signature of a request body.

    Reads the body from BODY_FILE, or stdin when omitted. The body is signed
    byte for byte, so sign exactly what will be sent.

    Examples:

    \b
      # Sign a payload file and post it
      address-relay sign payload.json --signing-key secret
      curl -X POST http://localhost:8000/webhooks/address-updated \\
        -H "x-alchemy-signature: $(address-relay sign payload.json --signing-key secret)" \\
        --data-binary @payload.json
    """
    config = Config.from_args_and_env({"webhook_signing_key": signing_key})
    if not config.webhook_signing_key:
        click.echo("Error: no signing key given", err=True)
        sys.exit(1)

    click.echo(compute_signature(body_file.read(), config.webhook_signing_key))


def _notify_options(func):
    func = click.option(
        "--notify-auth-token",
        type=str,
        help="Provider auth token (default: RELAY_NOTIFY_AUTH_TOKEN)",
    )(func)
    func = click.option(
        "--notify-webhook-id",
        type=str,
        help="Provider webhook id (default: RELAY_NOTIFY_WEBHOOK_ID)",
    )(func)
    func = click.option(
        "--notify-api-url",
        type=str,
        help="Provider API base URL",
    )(func)
    return func


def _update_addresses(cli_args: dict, add: tuple, remove: tuple) -> None:
    config = Config.from_args_and_env(cli_args)
    setup_logging(level=config.log_level, format_type="text")

    async def run() -> None:
        client = AddressNotifyClient(
            webhook_id=config.notify_webhook_id,
            auth_token=config.notify_auth_token,
            api_url=config.notify_api_url,
            timeout=config.http_timeout,
            retry_count=config.http_retry_count,
        )
        try:
            await client.update_addresses(add=add, remove=remove)
        finally:
            await client.close()

    try:
        asyncio.run(run())
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command("watch-address")
@click.argument("addresses", nargs=-1, required=True)
@_notify_options
def watch_address(addresses, notify_api_url, notify_webhook_id, notify_auth_token):
    """Add ADDRESSES to the provider webhook's watch list."""
    _update_addresses(
        {
            "notify_api_url": notify_api_url,
            "notify_webhook_id": notify_webhook_id,
            "notify_auth_token": notify_auth_token,
        },
        add=addresses,
        remove=(),
    )
    click.echo(f"Watching {len(addresses)} address(es)")


@cli.command("unwatch-address")
@click.argument("addresses", nargs=-1, required=True)
@_notify_options
def unwatch_address(addresses, notify_api_url, notify_webhook_id, notify_auth_token):
    """Remove ADDRESSES from the provider webhook's watch list."""
    _update_addresses(
        {
            "notify_api_url": notify_api_url,
            "notify_webhook_id": notify_webhook_id,
            "notify_auth_token": notify_auth_token,
        },
        add=(),
        remove=addresses,
    )
    click.echo(f"Stopped watching {len(addresses)} address(es)")


if __name__ == "__main__":
    cli()
