"""Abstract interface for pub/sub transports."""

import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class TransportMessage:
    """
    A message handed to listeners.

    Listeners settle the message with ``ack()`` or ``nack()``; the transport
    settles the underlying delivery once every listener has run.
    """

    data: bytes
    message_id: str
    attributes: dict[str, str] = field(default_factory=dict)
    delivery_attempt: Optional[int] = None
    acked: bool = False
    nacked: bool = False

    def ack(self) -> None:
        self.acked = True

    def nack(self) -> None:
        self.nacked = True

    @property
    def should_ack(self) -> bool:
        """Acknowledge only if some listener acked and none asked for redelivery."""
        return self.acked and not self.nacked


Listener = Callable[[TransportMessage], Union[None, Awaitable[None]]]


async def deliver(listeners: Iterable[Listener], message: TransportMessage) -> bool:
    """
    Run every listener against a message.

    A listener that raises counts as a nack.

    Returns:
        True if the message should be acknowledged
    """
    for listener in list(listeners):
        try:
            result = listener(message)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(
                f"Listener failed for message {message.message_id}: {type(e).__name__}: {e}",
                exc_info=True,
            )
            message.nack()
    return message.should_ack


class PubSubTransport(ABC):
    """
    Abstract base class for pub/sub transports.

    Topics and subscriptions are provisioned outside this codebase and looked up
    by name. Listener registration is synchronous so the caller's bookkeeping
    stays consistent with the transport's.
    """

    @abstractmethod
    async def get_topic(self, topic_name: str) -> str:
        """
        Resolve a topic by name.

        Returns:
            Transport path of the topic

        Raises:
            TopicNotFoundError: If the topic does not exist
            TransportError: If the transport is unavailable
        """
        pass

    @abstractmethod
    async def get_subscription(self, topic_path: str, subscription_name: str) -> str:
        """
        Resolve a subscription attached to a topic.

        Returns:
            Transport path of the subscription

        Raises:
            SubscriptionNotFoundError: If the subscription does not exist on the topic
            TransportError: If the transport is unavailable
        """
        pass

    @abstractmethod
    async def publish(self, topic_path: str, data: bytes) -> str:
        """
        Publish a message and wait until the transport has accepted it.

        Returns:
            Transport assigned message id

        Raises:
            TransportError: If the transport rejects the message
        """
        pass

    @abstractmethod
    def add_listener(self, subscription_path: str, listener: Listener) -> None:
        """Start delivering messages of a subscription to a listener."""
        pass

    @abstractmethod
    def remove_listener(self, subscription_path: str, listener: Listener) -> None:
        """Stop delivering to a listener. Unknown listeners are ignored."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Stop all message streams and release client resources."""
        pass

    def describe(self) -> dict[str, Any]:
        """Transport details for health reporting."""
        return {"backend": type(self).__name__}
