"""Pub/sub relay between the webhook ingestion path and in-process subscribers."""

import asyncio
import inspect
import itertools
import logging
import time
from typing import TYPE_CHECKING, Any, Awaitable, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel

from ..exceptions import TransportError
from .models import (
    MessageCallback,
    SubscriptionInfo,
    SubscriptionName,
    TopicName,
    decode_payload,
    encode_payload,
)
from .transport import PubSubTransport, TransportMessage

if TYPE_CHECKING:
    from ..metrics import MetricsCollector
    from .channel import MessageChannel

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PubSubRelay:
    """
    Publishes events to a durable topic and bridges subscription deliveries
    into in-process callbacks.

    One relay is created per process and handed to its consumers. It owns the
    mapping from subscription id to registration; callers only hold ids.
    Delivery is at-least-once: a message is acknowledged after the callback
    returns, and a callback that raises causes redelivery. There is no
    ordering guarantee between concurrent publishes.
    """

    def __init__(
        self,
        transport: PubSubTransport,
        topic_name: str = TopicName.BLOCKCHAIN_NOTIFICATIONS.value,
        subscription_names: Optional[Mapping[SubscriptionName, str]] = None,
        timeout_seconds: Optional[float] = 10.0,
        metrics: Optional["MetricsCollector"] = None,
    ):
        """
        Initialize the relay.

        Args:
            transport: Pub/sub transport to publish to and receive from
            topic_name: Topic every event is published to
            subscription_names: Transport subscription name per trigger
                (defaults to the trigger's own name)
            timeout_seconds: Deadline for each transport call (None disables it)
            metrics: Optional metrics collector
        """
        self.transport = transport
        self.topic_name = topic_name
        self.subscription_names = {name: name.value for name in SubscriptionName}
        if subscription_names:
            self.subscription_names.update(subscription_names)
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics

        self._ids = itertools.count(1)
        self._handlers: dict[int, SubscriptionInfo] = {}

    @property
    def active_subscriptions(self) -> int:
        """Number of registrations currently active."""
        return len(self._handlers)

    def is_active(self, subscription_id: int) -> bool:
        return subscription_id in self._handlers

    async def _call(self, awaitable: Awaitable[T]) -> T:
        """Await a transport call under the configured deadline."""
        if not self.timeout_seconds or self.timeout_seconds <= 0:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Pub/Sub call timed out after {self.timeout_seconds}s"
            ) from e

    async def get_topic(self) -> str:
        """Resolve the relay's topic."""
        return await self._call(self.transport.get_topic(self.topic_name))

    async def get_subscription(self, trigger_name: Union[SubscriptionName, str]) -> str:
        """
        Resolve the transport subscription backing a trigger.

        Raises:
            TopicNotFoundError: If the topic does not exist
            SubscriptionNotFoundError: If the subscription does not exist on the topic
        """
        trigger = SubscriptionName(trigger_name)
        topic_path = await self.get_topic()
        return await self._call(
            self.transport.get_subscription(topic_path, self.subscription_names[trigger])
        )

    async def publish(self, payload: Union[BaseModel, Mapping[str, Any]]) -> str:
        """
        Publish a payload as JSON to the relay's topic.

        Returns once the transport has accepted the message, not when
        subscribers have processed it.

        Args:
            payload: Event model or mapping to publish

        Returns:
            Transport message id

        Raises:
            TransportError: If the topic cannot be resolved or the publish fails
        """
        data = encode_payload(payload)
        started = time.monotonic()
        try:
            topic_path = await self.get_topic()
            message_id = await self._call(self.transport.publish(topic_path, data))
        except TransportError as e:
            logger.error(f"Publish to {self.topic_name} failed: {e}")
            if self.metrics:
                self.metrics.record_error("relay", "publish_failed")
            raise

        if self.metrics:
            self.metrics.record_publish(self.topic_name, time.monotonic() - started)
        logger.debug(f"Published message {message_id} to {topic_path} ({len(data)} bytes)")
        return message_id

    async def subscribe(
        self,
        trigger_name: Union[SubscriptionName, str],
        on_message: MessageCallback,
    ) -> int:
        """
        Register a callback for every message delivered on a trigger.

        Args:
            trigger_name: Trigger to listen to
            on_message: Called with the decoded payload; may be a coroutine function

        Returns:
            Process-unique subscription id

        Raises:
            ValueError: If the trigger name is unknown
            TransportError: If the subscription cannot be resolved
        """
        trigger = SubscriptionName(trigger_name)
        subscription_id = next(self._ids)
        subscription_path = await self.get_subscription(trigger)

        async def listener(message: TransportMessage) -> None:
            try:
                payload = decode_payload(message.data)
            except ValueError as e:
                # Redelivery cannot fix a malformed body
                logger.error(f"Dropping undecodable message {message.message_id} on {trigger.value}: {e}")
                self._record_delivery(trigger, "malformed")
                message.ack()
                return

            try:
                result = on_message(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(
                    f"Subscription {subscription_id} callback failed for message "
                    f"{message.message_id}: {type(e).__name__}: {e}",
                    exc_info=True,
                )
                self._record_delivery(trigger, "failed")
                message.nack()
                return

            self._record_delivery(trigger, "delivered")
            message.ack()

        self.transport.add_listener(subscription_path, listener)
        self._handlers[subscription_id] = SubscriptionInfo(
            trigger_name=trigger,
            subscription_path=subscription_path,
            listener=listener,
        )
        self._update_active_gauge()

        logger.debug(f"Subscription {subscription_id} active on {trigger.value}")
        return subscription_id

    async def unsubscribe(self, subscription_id: int) -> None:
        """
        Remove a registration. Unknown or already removed ids are ignored.

        Args:
            subscription_id: Id returned by ``subscribe``
        """
        info = self._handlers.pop(subscription_id, None)
        if info is None:
            return

        self.transport.remove_listener(info.subscription_path, info.listener)
        self._update_active_gauge()
        logger.debug(f"Subscription {subscription_id} removed from {info.trigger_name.value}")

    def channel(
        self,
        trigger_name: Union[SubscriptionName, str],
        max_queue_size: int = 100,
    ) -> "MessageChannel":
        """
        Create a pull-style channel for a trigger.

        Usage:
            async with relay.channel(SubscriptionName.ADDRESS_UPDATED) as channel:
                async for payload in channel:
                    ...
        """
        from .channel import MessageChannel

        return MessageChannel(self, trigger_name, max_queue_size=max_queue_size)

    async def close(self) -> None:
        """Remove every registration."""
        for subscription_id in list(self._handlers):
            await self.unsubscribe(subscription_id)

    def _record_delivery(self, trigger: SubscriptionName, result: str) -> None:
        if self.metrics:
            self.metrics.record_delivery(trigger.value, result)

    def _update_active_gauge(self) -> None:
        if self.metrics:
            self.metrics.set_active_subscriptions(len(self._handlers))
