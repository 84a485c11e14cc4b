"""Google Cloud Pub/Sub transport."""

import asyncio
import concurrent.futures
import functools
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import pubsub_v1

from ..exceptions import SubscriptionNotFoundError, TopicNotFoundError, TransportError
from .transport import Listener, PubSubTransport, TransportMessage, deliver

if TYPE_CHECKING:
    from ..metrics import MetricsCollector

logger = logging.getLogger(__name__)


@dataclass
class _Stream:
    """A streaming pull shared by every listener of one subscription."""

    listeners: list = field(default_factory=list)
    future: Any = None


class GooglePubSubTransport(PubSubTransport):
    """
    Transport backed by Google Cloud Pub/Sub.

    Topic and subscription lookups and publishes go through the blocking client
    API on worker threads. Messages arrive on the client's callback threads and
    are handed to the event loop that registered the first listener; the message
    is acked or nacked after every listener has run. A streaming pull that
    fails is reopened after ``reopen_delay`` seconds while listeners remain.
    """

    def __init__(
        self,
        project_id: str,
        publisher: Optional[pubsub_v1.PublisherClient] = None,
        subscriber: Optional[pubsub_v1.SubscriberClient] = None,
        max_outstanding_messages: int = 100,
        delivery_timeout: float = 60.0,
        reopen_delay: float = 5.0,
        metrics: Optional["MetricsCollector"] = None,
    ):
        """
        Initialize the transport.

        Args:
            project_id: Google Cloud project that owns the topics
            publisher: Optional preconfigured publisher client
            subscriber: Optional preconfigured subscriber client
            max_outstanding_messages: Flow control limit per streaming pull
            delivery_timeout: Seconds a client thread waits for listeners before nacking
            reopen_delay: Seconds before a failed streaming pull is reopened
            metrics: Optional metrics collector for stream failures
        """
        if not project_id:
            raise ValueError("A Google Cloud project id is required")

        self.project_id = project_id
        self._publisher = publisher or pubsub_v1.PublisherClient()
        self._subscriber = subscriber or pubsub_v1.SubscriberClient()
        self._flow_control = pubsub_v1.types.FlowControl(max_messages=max_outstanding_messages)
        self._streams: dict[str, _Stream] = {}
        self.delivery_timeout = delivery_timeout
        self.reopen_delay = reopen_delay
        self.metrics = metrics
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    async def get_topic(self, topic_name: str) -> str:
        topic_path = self._publisher.topic_path(self.project_id, topic_name)
        try:
            await asyncio.to_thread(self._publisher.get_topic, request={"topic": topic_path})
        except gcp_exceptions.NotFound as e:
            raise TopicNotFoundError(topic_path) from e
        except gcp_exceptions.GoogleAPIError as e:
            raise TransportError(f"Failed to resolve topic {topic_path}: {e}") from e
        return topic_path

    async def get_subscription(self, topic_path: str, subscription_name: str) -> str:
        subscription_path = self._subscriber.subscription_path(self.project_id, subscription_name)
        try:
            subscription = await asyncio.to_thread(
                self._subscriber.get_subscription, request={"subscription": subscription_path}
            )
        except gcp_exceptions.NotFound as e:
            raise SubscriptionNotFoundError(subscription_path, topic_path) from e
        except gcp_exceptions.GoogleAPIError as e:
            raise TransportError(f"Failed to resolve subscription {subscription_path}: {e}") from e

        if subscription.topic != topic_path:
            raise SubscriptionNotFoundError(subscription_path, topic_path)
        return subscription_path

    async def publish(self, topic_path: str, data: bytes) -> str:
        try:
            future = self._publisher.publish(topic_path, data)
            return await asyncio.wrap_future(future)
        except gcp_exceptions.GoogleAPIError as e:
            raise TransportError(f"Publish to {topic_path} failed: {e}") from e

    def add_listener(self, subscription_path: str, listener: Listener) -> None:
        self._loop = asyncio.get_running_loop()
        stream = self._streams.setdefault(subscription_path, _Stream())
        stream.listeners.append(listener)

        if stream.future is None or stream.future.done():
            self._open_stream(subscription_path, stream)

    def _open_stream(self, subscription_path: str, stream: _Stream) -> None:
        logger.info(f"Opening streaming pull on {subscription_path}")
        future = self._subscriber.subscribe(
            subscription_path,
            callback=functools.partial(self._on_message, subscription_path),
            flow_control=self._flow_control,
        )
        stream.future = future
        future.add_done_callback(functools.partial(self._on_stream_done, subscription_path))

    def _on_stream_done(self, subscription_path: str, future: Any) -> None:
        """Streaming pull completion callback. Runs on a client thread."""
        if future.cancelled() or future.exception() is None:
            logger.debug(f"Streaming pull on {subscription_path} ended")
            return

        logger.error(f"Streaming pull on {subscription_path} failed: {future.exception()}")
        if self.metrics:
            self.metrics.record_error("transport", "stream_failed")

        loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(
                loop.call_later, self.reopen_delay, self._reopen_stream, subscription_path, future
            )

    def _reopen_stream(self, subscription_path: str, failed: Any) -> None:
        stream = self._streams.get(subscription_path)
        # Already replaced by add_listener, or closed meanwhile
        if stream is None or stream.future is not failed or not stream.listeners:
            return
        self._open_stream(subscription_path, stream)

    def remove_listener(self, subscription_path: str, listener: Listener) -> None:
        stream = self._streams.get(subscription_path)
        if stream is None or listener not in stream.listeners:
            return

        stream.listeners.remove(listener)
        if not stream.listeners:
            logger.info(f"Closing streaming pull on {subscription_path}")
            if stream.future is not None:
                stream.future.cancel()
            del self._streams[subscription_path]

    def _on_message(self, subscription_path: str, message: Any) -> None:
        """Streaming pull callback. Runs on a client thread."""
        stream = self._streams.get(subscription_path)
        if stream is None or self._loop is None or self._loop.is_closed():
            message.nack()
            return

        envelope = TransportMessage(
            data=message.data,
            message_id=message.message_id,
            attributes=dict(message.attributes or {}),
            delivery_attempt=message.delivery_attempt,
        )
        future = asyncio.run_coroutine_threadsafe(deliver(list(stream.listeners), envelope), self._loop)
        try:
            should_ack = future.result(timeout=self.delivery_timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.error(f"Delivery of message {message.message_id} timed out after {self.delivery_timeout}s")
            should_ack = False
        except Exception as e:
            logger.error(f"Delivery of message {message.message_id} failed: {e}", exc_info=True)
            should_ack = False

        if should_ack:
            message.ack()
        else:
            message.nack()

    async def close(self) -> None:
        for subscription_path, stream in list(self._streams.items()):
            if stream.future is not None:
                stream.future.cancel()
            logger.debug(f"Closed streaming pull on {subscription_path}")
        self._streams.clear()

        await asyncio.to_thread(self._publisher.stop)
        await asyncio.to_thread(self._subscriber.close)

    def describe(self) -> dict[str, Any]:
        return {
            "backend": "gcp",
            "project_id": self.project_id,
            "streams": sorted(self._streams),
        }
