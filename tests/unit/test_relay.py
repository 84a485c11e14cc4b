"""Unit tests for the pub/sub relay."""

import asyncio
import json

import pytest

from address_relay.exceptions import SubscriptionNotFoundError, TopicNotFoundError, TransportError
from address_relay.pubsub import InMemoryTransport, PubSubRelay, SubscriptionName
from address_relay.webhook.models import ActivityCategory, NormalizedEvent

EVENT = NormalizedEvent(event=ActivityCategory.EXTERNAL, from_address="0xA", to_address="0xB")


async def wait_for_calls(calls: list, count: int, timeout: float = 1.0) -> None:
    async def wait() -> None:
        while len(calls) < count:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(wait(), timeout)


@pytest.mark.asyncio
class TestPublish:
    """Test PubSubRelay.publish."""

    async def test_publish_encodes_json(self, relay, memory_transport):
        """Test events are published as compact camelCase JSON."""
        message_id = await relay.publish(EVENT)
        assert message_id == "1"
        topic, data = memory_transport.published[0]
        assert topic == "blockchain-notifications"
        assert json.loads(data) == {"event": "external", "fromAddress": "0xA", "toAddress": "0xB"}

    async def test_publish_mapping(self, relay, memory_transport):
        """Test plain mappings are published as-is."""
        await relay.publish({"event": "token", "fromAddress": "0xC", "toAddress": "0xD"})
        assert json.loads(memory_transport.published[0][1])["event"] == "token"

    async def test_publish_unknown_topic(self):
        """Test publishing to a topic that does not exist raises TopicNotFoundError."""
        relay = PubSubRelay(InMemoryTransport(), topic_name="missing")
        with pytest.raises(TopicNotFoundError, match="No topic found"):
            await relay.publish(EVENT)

    async def test_publish_without_subscribers_is_queued(self, relay, memory_transport):
        """Test messages published before anyone subscribes wait on the subscription."""
        await relay.publish(EVENT)
        assert memory_transport.pending("address_updated") == 1


@pytest.mark.asyncio
class TestSubscribe:
    """Test PubSubRelay.subscribe."""

    async def test_callback_receives_decoded_payload(self, relay):
        """Test the callback is called with the decoded JSON payload."""
        received = []
        await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, received.append)
        await relay.publish(EVENT)
        await wait_for_calls(received, 1)
        assert received == [{"event": "external", "fromAddress": "0xA", "toAddress": "0xB"}]

    async def test_async_callback(self, relay):
        """Test coroutine callbacks are awaited."""
        received = []

        async def on_message(payload):
            await asyncio.sleep(0)
            received.append(payload)

        await relay.subscribe("address_updated", on_message)
        await relay.publish(EVENT)
        await wait_for_calls(received, 1)
        assert received[0]["fromAddress"] == "0xA"

    async def test_fan_out_to_every_registration(self, relay):
        """Test two registrations on one trigger both receive a single publish."""
        first, second = [], []
        first_id = await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, first.append)
        second_id = await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, second.append)
        assert first_id != second_id

        await relay.publish(EVENT)
        await wait_for_calls(first, 1)
        await wait_for_calls(second, 1)
        assert first == second

    async def test_ids_unique_under_rapid_calls(self, relay):
        """Test 1000 rapid subscriptions yield unique ids."""
        ids = [await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, lambda payload: None) for _ in range(1000)]
        assert len(set(ids)) == 1000
        assert relay.active_subscriptions == 1000

    async def test_ids_unique_under_concurrent_calls(self, relay):
        """Test concurrent subscriptions yield unique ids."""
        ids = await asyncio.gather(
            *(relay.subscribe(SubscriptionName.ADDRESS_UPDATED, lambda payload: None) for _ in range(200))
        )
        assert len(set(ids)) == 200

    async def test_failing_callback_causes_redelivery(self, relay):
        """Test a message is redelivered when the callback raises."""
        attempts = []

        def on_message(payload):
            attempts.append(payload)
            if len(attempts) == 1:
                raise RuntimeError("downstream unavailable")

        await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, on_message)
        await relay.publish(EVENT)
        await wait_for_calls(attempts, 2)
        assert attempts[0] == attempts[1]

    async def test_malformed_payload_is_dropped(self, relay, memory_transport):
        """Test bodies that are not JSON objects never reach the callback."""
        received = []
        await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, received.append)
        topic_path = await relay.get_topic()
        await memory_transport.publish(topic_path, b"[1, 2, 3]")
        await relay.publish(EVENT)
        await wait_for_calls(received, 1)
        await asyncio.sleep(0.05)
        assert received == [{"event": "external", "fromAddress": "0xA", "toAddress": "0xB"}]
        assert memory_transport.pending("address_updated") == 0

    async def test_unknown_trigger(self, relay):
        """Test unknown trigger names are rejected."""
        with pytest.raises(ValueError):
            await relay.subscribe("balance_updated", lambda payload: None)

    async def test_missing_subscription(self):
        """Test a topic without the subscription raises SubscriptionNotFoundError."""
        transport = InMemoryTransport(topics={"blockchain-notifications": []})
        relay = PubSubRelay(transport)
        with pytest.raises(SubscriptionNotFoundError, match="No subscription found"):
            await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, lambda payload: None)
        assert relay.active_subscriptions == 0

    async def test_custom_subscription_name(self):
        """Test triggers can be mapped to differently named subscriptions."""
        transport = InMemoryTransport(topics={"notifications": ["address-updated-prod"]})
        relay = PubSubRelay(
            transport,
            topic_name="notifications",
            subscription_names={SubscriptionName.ADDRESS_UPDATED: "address-updated-prod"},
        )
        assert await relay.get_subscription(SubscriptionName.ADDRESS_UPDATED) == "address-updated-prod"
        await transport.close()


@pytest.mark.asyncio
class TestUnsubscribe:
    """Test PubSubRelay.unsubscribe."""

    async def test_stops_delivery(self, relay, memory_transport):
        """Test an unsubscribed callback receives nothing further."""
        received = []
        subscription_id = await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, received.append)
        await relay.unsubscribe(subscription_id)
        assert relay.is_active(subscription_id) is False
        assert memory_transport.listener_count("address_updated") == 0

        await relay.publish(EVENT)
        await asyncio.sleep(0.05)
        assert received == []

    async def test_idempotent(self, relay):
        """Test unsubscribing twice is a no-op the second time."""
        subscription_id = await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, lambda payload: None)
        await relay.unsubscribe(subscription_id)
        await relay.unsubscribe(subscription_id)
        assert relay.active_subscriptions == 0

    async def test_never_issued_id(self, relay):
        """Test unknown ids are ignored."""
        await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, lambda payload: None)
        await relay.unsubscribe(9999)
        assert relay.active_subscriptions == 1

    async def test_other_registrations_keep_receiving(self, relay):
        """Test removing one registration leaves the others intact."""
        kept, removed = [], []
        await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, kept.append)
        removed_id = await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, removed.append)
        await relay.unsubscribe(removed_id)

        await relay.publish(EVENT)
        await wait_for_calls(kept, 1)
        assert removed == []

    async def test_close_removes_everything(self, relay):
        """Test close removes every registration."""
        for _ in range(3):
            await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, lambda payload: None)
        await relay.close()
        assert relay.active_subscriptions == 0


class SlowTransport(InMemoryTransport):
    """Transport whose topic lookups never finish in time."""

    async def get_topic(self, topic_name: str) -> str:
        await asyncio.sleep(10)
        return topic_name


@pytest.mark.asyncio
class TestTimeouts:
    """Test transport call deadlines."""

    async def test_timeout_raises_transport_error(self):
        """Test a slow transport call surfaces as TransportError."""
        relay = PubSubRelay(SlowTransport(), timeout_seconds=0.05)
        with pytest.raises(TransportError, match="timed out"):
            await relay.publish(EVENT)

    async def test_timeout_on_subscribe(self):
        """Test subscribe fails with TransportError and registers nothing."""
        relay = PubSubRelay(SlowTransport(), timeout_seconds=0.05)
        with pytest.raises(TransportError):
            await relay.subscribe(SubscriptionName.ADDRESS_UPDATED, lambda payload: None)
        assert relay.active_subscriptions == 0
