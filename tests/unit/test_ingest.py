"""Unit tests for the webhook ingestion pipeline."""

import json
from unittest.mock import AsyncMock

import pytest

from address_relay.exceptions import AuthenticationError, ForwardError, InputError, TransportError
from address_relay.webhook.ingest import AddressActivityIngestor
from address_relay.webhook.models import ActivityCategory, NormalizedEvent


@pytest.fixture
def ingestor(verifier, mock_relay) -> AddressActivityIngestor:
    return AddressActivityIngestor(verifier=verifier, relay=mock_relay)


@pytest.mark.asyncio
class TestIngest:
    """Test AddressActivityIngestor.ingest."""

    async def test_publishes_first_activity(self, ingestor, verifier, mock_relay, raw_webhook_body):
        """Test a signed body is normalized and published once."""
        event = await ingestor.ingest(raw_webhook_body, verifier.sign(raw_webhook_body))

        expected = NormalizedEvent(event=ActivityCategory.EXTERNAL, from_address="0xA", to_address="0xB")
        assert event == expected
        mock_relay.publish.assert_awaited_once_with(expected)

    async def test_multiple_activities_publish_first_only(
        self, ingestor, verifier, mock_relay, webhook_body_factory, activity_factory
    ):
        """Test later activity entries are not published."""
        raw = json.dumps(
            webhook_body_factory([activity_factory("token", "0x1", "0x2"), activity_factory("internal", "0x3", "0x4")])
        ).encode()
        event = await ingestor.ingest(raw, verifier.sign(raw))
        assert event.from_address == "0x1"
        mock_relay.publish.assert_awaited_once()

    async def test_empty_activity_publishes_nothing(self, ingestor, verifier, mock_relay, webhook_body_factory):
        """Test a body without activity is accepted without publishing."""
        raw = json.dumps(webhook_body_factory([])).encode()
        assert await ingestor.ingest(raw, verifier.sign(raw)) is None
        mock_relay.publish.assert_not_awaited()

    @pytest.mark.parametrize("signature", [None, ""])
    async def test_missing_signature(self, ingestor, mock_relay, raw_webhook_body, signature):
        """Test a missing signature is an InputError."""
        with pytest.raises(InputError):
            await ingestor.ingest(raw_webhook_body, signature)
        mock_relay.publish.assert_not_awaited()

    async def test_missing_body(self, ingestor, mock_relay):
        """Test a missing body is an InputError."""
        with pytest.raises(InputError):
            await ingestor.ingest(b"", "abc")
        mock_relay.publish.assert_not_awaited()

    async def test_tampered_signature(self, ingestor, verifier, mock_relay, raw_webhook_body):
        """Test a mismatching signature is an AuthenticationError."""
        signature = verifier.sign(raw_webhook_body)
        tampered = ("0" if signature[0] != "0" else "1") + signature[1:]
        with pytest.raises(AuthenticationError):
            await ingestor.ingest(raw_webhook_body, tampered)
        mock_relay.publish.assert_not_awaited()

    async def test_signed_but_malformed_body(self, ingestor, verifier, mock_relay):
        """Test a correctly signed body that does not decode is an InputError."""
        raw = b'{"webhookId": "wh_1"}'
        with pytest.raises(InputError):
            await ingestor.ingest(raw, verifier.sign(raw))
        mock_relay.publish.assert_not_awaited()

    async def test_publish_failure_propagates(self, ingestor, verifier, mock_relay, raw_webhook_body):
        """Test transport errors propagate to the caller."""
        mock_relay.publish.side_effect = TransportError("No topic found: blockchain-notifications")
        with pytest.raises(TransportError):
            await ingestor.ingest(raw_webhook_body, verifier.sign(raw_webhook_body))

    async def test_forwards_raw_body(self, verifier, mock_relay, raw_webhook_body):
        """Test the verified raw body is forwarded after publishing."""
        forwarder = AsyncMock()
        ingestor = AddressActivityIngestor(verifier=verifier, relay=mock_relay, forwarder=forwarder)
        await ingestor.ingest(raw_webhook_body, verifier.sign(raw_webhook_body))
        forwarder.forward.assert_awaited_once_with(raw_webhook_body)

    async def test_forward_failure_propagates(self, verifier, mock_relay, raw_webhook_body):
        """Test forwarding errors propagate after the event was published."""
        forwarder = AsyncMock()
        forwarder.forward.side_effect = ForwardError("down")
        ingestor = AddressActivityIngestor(verifier=verifier, relay=mock_relay, forwarder=forwarder)
        with pytest.raises(ForwardError):
            await ingestor.ingest(raw_webhook_body, verifier.sign(raw_webhook_body))
        mock_relay.publish.assert_awaited_once()

    async def test_no_forward_on_rejected_call(self, verifier, mock_relay, raw_webhook_body):
        """Test rejected calls are not forwarded."""
        forwarder = AsyncMock()
        ingestor = AddressActivityIngestor(verifier=verifier, relay=mock_relay, forwarder=forwarder)
        with pytest.raises(AuthenticationError):
            await ingestor.ingest(raw_webhook_body, "0" * 64)
        forwarder.forward.assert_not_awaited()
