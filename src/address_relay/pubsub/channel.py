"""Pull-style consumption of relay subscriptions."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Optional, Union

from .models import SubscriptionName

if TYPE_CHECKING:
    from .relay import PubSubRelay

logger = logging.getLogger(__name__)


class MessageChannel:
    """
    Buffers the payloads of one relay subscription for async iteration.

    When the buffer is full the oldest payload is dropped to make room.
    """

    def __init__(
        self,
        relay: "PubSubRelay",
        trigger_name: Union[SubscriptionName, str],
        max_queue_size: int = 100,
    ):
        self.relay = relay
        self.trigger_name = SubscriptionName(trigger_name)
        self.max_queue_size = max_queue_size
        self.subscription_id: Optional[int] = None
        self.dropped = 0
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=max_queue_size)

    @property
    def is_open(self) -> bool:
        return self.subscription_id is not None

    async def open(self) -> "MessageChannel":
        """Subscribe to the trigger. Opening an open channel does nothing."""
        if self.subscription_id is None:
            self.subscription_id = await self.relay.subscribe(self.trigger_name, self._push)
        return self

    async def close(self) -> None:
        """Unsubscribe. Payloads already buffered stay readable via ``get_nowait``."""
        if self.subscription_id is not None:
            subscription_id, self.subscription_id = self.subscription_id, None
            await self.relay.unsubscribe(subscription_id)

    def _push(self, payload: dict[str, Any]) -> None:
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            self._queue.get_nowait()
            self._queue.put_nowait(payload)
            self.dropped += 1
            logger.warning(
                f"Channel {self.subscription_id} on {self.trigger_name.value} is full, dropped oldest payload"
            )

    async def get(self) -> dict[str, Any]:
        """Wait for the next payload."""
        return await self._queue.get()

    def get_nowait(self) -> dict[str, Any]:
        return self._queue.get_nowait()

    def qsize(self) -> int:
        return self._queue.qsize()

    async def __aenter__(self) -> "MessageChannel":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __aiter__(self) -> "MessageChannel":
        return self

    async def __anext__(self) -> dict[str, Any]:
        if self.subscription_id is None and self._queue.empty():
            raise StopAsyncIteration
        return await self._queue.get()
