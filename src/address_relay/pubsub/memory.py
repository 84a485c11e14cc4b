"""In-process pub/sub transport for development and testing."""

import asyncio
import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional

from ..exceptions import SubscriptionNotFoundError, TopicNotFoundError
from .transport import Listener, PubSubTransport, TransportMessage, deliver

logger = logging.getLogger(__name__)


@dataclass
class _PendingMessage:
    data: bytes
    message_id: str
    attempt: int = 1


@dataclass
class _MemorySubscription:
    name: str
    topic: str
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)
    listeners: list = field(default_factory=list)
    task: Optional[asyncio.Task] = None


class InMemoryTransport(PubSubTransport):
    """
    Pub/sub transport that keeps topics and subscriptions in memory.

    Mirrors the semantics the relay relies on: topics and subscriptions must be
    provisioned before use, messages published while a subscription has no
    listener wait in its queue, and a message that is not acknowledged is
    redelivered up to ``max_delivery_attempts`` times.
    """

    def __init__(
        self,
        topics: Optional[dict[str, list[str]]] = None,
        max_delivery_attempts: int = 5,
        history_size: int = 100,
    ):
        """
        Initialize the transport.

        Args:
            topics: Mapping of topic name to the subscription names to provision
            max_delivery_attempts: Deliveries of one message before it is dropped
            history_size: Most recent publishes kept in ``published``
        """
        self.max_delivery_attempts = max_delivery_attempts
        self.published: deque[tuple[str, bytes]] = deque(maxlen=history_size)
        self._topics: dict[str, set[str]] = {}
        self._subscriptions: dict[str, _MemorySubscription] = {}
        self._message_ids = itertools.count(1)

        for topic_name, subscription_names in (topics or {}).items():
            self.create_topic(topic_name)
            for subscription_name in subscription_names:
                self.create_subscription(topic_name, subscription_name)

    def create_topic(self, topic_name: str) -> None:
        """Provision a topic."""
        self._topics.setdefault(topic_name, set())

    def create_subscription(self, topic_name: str, subscription_name: str) -> None:
        """Provision a subscription on an existing topic."""
        if topic_name not in self._topics:
            raise TopicNotFoundError(topic_name)
        self._topics[topic_name].add(subscription_name)
        self._subscriptions.setdefault(
            subscription_name, _MemorySubscription(name=subscription_name, topic=topic_name)
        )

    def pending(self, subscription_name: str) -> int:
        """Number of messages waiting for delivery on a subscription."""
        subscription = self._subscriptions.get(subscription_name)
        return subscription.queue.qsize() if subscription else 0

    def listener_count(self, subscription_name: str) -> int:
        subscription = self._subscriptions.get(subscription_name)
        return len(subscription.listeners) if subscription else 0

    async def get_topic(self, topic_name: str) -> str:
        if topic_name not in self._topics:
            raise TopicNotFoundError(topic_name)
        return topic_name

    async def get_subscription(self, topic_path: str, subscription_name: str) -> str:
        subscription = self._subscriptions.get(subscription_name)
        if subscription is None or subscription.topic != topic_path:
            raise SubscriptionNotFoundError(subscription_name, topic_path)
        return subscription_name

    async def publish(self, topic_path: str, data: bytes) -> str:
        if topic_path not in self._topics:
            raise TopicNotFoundError(topic_path)

        message_id = str(next(self._message_ids))
        self.published.append((topic_path, data))
        for subscription_name in self._topics[topic_path]:
            self._subscriptions[subscription_name].queue.put_nowait(
                _PendingMessage(data=data, message_id=message_id)
            )
        logger.debug(f"Published message {message_id} to {topic_path}")
        return message_id

    def add_listener(self, subscription_path: str, listener: Listener) -> None:
        subscription = self._subscriptions.get(subscription_path)
        if subscription is None:
            raise SubscriptionNotFoundError(subscription_path, "unknown")

        subscription.listeners.append(listener)
        if subscription.task is None or subscription.task.done():
            subscription.task = asyncio.get_running_loop().create_task(self._pump(subscription))

    def remove_listener(self, subscription_path: str, listener: Listener) -> None:
        subscription = self._subscriptions.get(subscription_path)
        if subscription is None or listener not in subscription.listeners:
            return

        subscription.listeners.remove(listener)
        if not subscription.listeners and subscription.task is not None:
            subscription.task.cancel()
            subscription.task = None

    async def _pump(self, subscription: _MemorySubscription) -> None:
        """Deliver queued messages to the subscription's listeners."""
        while True:
            pending = await subscription.queue.get()
            message = TransportMessage(
                data=pending.data,
                message_id=pending.message_id,
                delivery_attempt=pending.attempt,
            )
            try:
                acked = await deliver(subscription.listeners, message)
            except asyncio.CancelledError:
                # Stream stopped mid-delivery; keep the message for the next listener
                subscription.queue.put_nowait(pending)
                raise

            if acked:
                continue

            if pending.attempt >= self.max_delivery_attempts:
                logger.error(
                    f"Dropping message {pending.message_id} on {subscription.name} "
                    f"after {pending.attempt} delivery attempts"
                )
                continue

            pending.attempt += 1
            subscription.queue.put_nowait(pending)

    async def close(self) -> None:
        tasks = []
        for subscription in self._subscriptions.values():
            subscription.listeners.clear()
            if subscription.task is not None:
                subscription.task.cancel()
                tasks.append(subscription.task)
                subscription.task = None
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    def describe(self) -> dict[str, Any]:
        return {
            "backend": "memory",
            "topics": sorted(self._topics),
            "subscriptions": sorted(self._subscriptions),
        }
