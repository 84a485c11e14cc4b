"""Shared pytest fixtures for Address Relay tests."""

import json
from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from address_relay.config import EnvVars
from address_relay.pubsub import InMemoryTransport, PubSubRelay, SubscriptionName, TopicName
from address_relay.webhook import SignatureVerifier

SIGNING_KEY = "whsec_test_signing_key"


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every configuration environment variable."""
    for name, value in vars(EnvVars).items():
        if name.isupper() and isinstance(value, str):
            monkeypatch.delenv(value, raising=False)
    return monkeypatch


@pytest.fixture(scope="session")
def signing_key() -> str:
    return SIGNING_KEY


@pytest.fixture(scope="function")
def verifier() -> SignatureVerifier:
    return SignatureVerifier(SIGNING_KEY)


@pytest.fixture(scope="function")
def memory_transport() -> InMemoryTransport:
    """In-memory transport provisioned with the default topic and subscription."""
    return InMemoryTransport(
        topics={TopicName.BLOCKCHAIN_NOTIFICATIONS.value: [SubscriptionName.ADDRESS_UPDATED.value]},
        max_delivery_attempts=3,
    )


@pytest_asyncio.fixture
async def relay(memory_transport: InMemoryTransport) -> AsyncGenerator[PubSubRelay, None]:
    """Relay over the in-memory transport."""
    relay = PubSubRelay(memory_transport, timeout_seconds=1.0)
    yield relay
    await relay.close()
    await memory_transport.close()


@pytest.fixture(scope="function")
def mock_relay() -> AsyncMock:
    """Relay stand-in whose publish succeeds."""
    relay = AsyncMock(spec=PubSubRelay)
    relay.publish.return_value = "1"
    return relay


def make_activity(
    category: str = "external",
    from_address: str = "0xA",
    to_address: str = "0xB",
    tx_hash: str = "0x1",
) -> dict:
    return {
        "category": category,
        "fromAddress": from_address,
        "toAddress": to_address,
        "asset": "ETH",
        "rawContract": {},
        "hash": tx_hash,
    }


def make_webhook_body(activity: list[dict]) -> dict:
    return {
        "webhookId": "wh_octjglnywaupz6th",
        "id": "whevt_ogrc5v64myey69ux",
        "createdAt": "2022-02-28T17:48:53.306Z",
        "type": "ADDRESS_ACTIVITY",
        "event": {"network": "ETH_MAINNET", "activity": activity},
    }


@pytest.fixture(scope="session")
def webhook_body() -> dict:
    """Webhook body with a single external transfer from 0xA to 0xB."""
    return make_webhook_body([make_activity()])


@pytest.fixture(scope="function")
def raw_webhook_body(webhook_body: dict) -> bytes:
    """Webhook body serialized exactly as the sender would send it."""
    return json.dumps(webhook_body, indent=2).encode("utf-8")


@pytest.fixture(scope="session")
def activity_factory():
    """Build activity entries in wire format."""
    return make_activity


@pytest.fixture(scope="session")
def webhook_body_factory():
    """Build webhook bodies in wire format from activity entries."""
    return make_webhook_body
