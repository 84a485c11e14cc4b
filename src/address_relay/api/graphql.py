"""GraphQL schema exposing relayed address activity as a subscription."""

import logging
from enum import Enum
from typing import TYPE_CHECKING, AsyncGenerator

import strawberry
from pydantic import ValidationError
from strawberry.fastapi import GraphQLRouter
from strawberry.types import Info

from ..pubsub.models import SubscriptionName
from ..utils.address import addresses_match
from ..webhook.models import NormalizedEvent

if TYPE_CHECKING:
    from ..pubsub.relay import PubSubRelay

logger = logging.getLogger(__name__)


@strawberry.enum
class WebHookEventCategory(Enum):
    TOKEN = "token"
    INTERNAL = "internal"
    EXTERNAL = "external"


@strawberry.input
class AddressSubscriptionInput:
    address: str


@strawberry.type
class AddressSubscriptionResult:
    event: WebHookEventCategory
    from_address: str
    to_address: str

    @classmethod
    def from_event(cls, event: NormalizedEvent) -> "AddressSubscriptionResult":
        return cls(
            event=WebHookEventCategory(event.event.value),
            from_address=event.from_address,
            to_address=event.to_address,
        )


async def address_updates(
    relay: "PubSubRelay",
    address: str,
    max_queue_size: int = 100,
) -> AsyncGenerator[NormalizedEvent, None]:
    """
    Yield relayed events whose sender or recipient is ``address``.

    Each call holds its own relay registration for as long as the generator
    is iterated; closing the generator unsubscribes.

    Args:
        relay: Relay to subscribe on
        address: Address to match, case-insensitively
        max_queue_size: Events buffered for a slow consumer before the oldest is dropped
    """
    async with relay.channel(SubscriptionName.ADDRESS_UPDATED, max_queue_size) as channel:
        async for payload in channel:
            try:
                event = NormalizedEvent.model_validate(payload)
            except ValidationError as e:
                logger.warning(f"Skipping payload that is not an address event: {e.error_count()} error(s)")
                continue

            if addresses_match(event.from_address, address) or addresses_match(event.to_address, address):
                yield event


@strawberry.type
class Query:
    @strawberry.field(description="Number of relay registrations currently active")
    def active_subscriptions(self, info: Info) -> int:
        return info.context["relay"].active_subscriptions


@strawberry.type
class Subscription:
    @strawberry.subscription(description="Address activity involving the given address")
    async def address_updated(
        self, info: Info, input: AddressSubscriptionInput
    ) -> AsyncGenerator[AddressSubscriptionResult, None]:
        relay = info.context["relay"]
        max_queue_size = info.context.get("channel_queue_size", 100)
        async for event in address_updates(relay, input.address, max_queue_size):
            yield AddressSubscriptionResult.from_event(event)


schema = strawberry.Schema(query=Query, subscription=Subscription)


def create_graphql_router(relay: "PubSubRelay", channel_queue_size: int = 100) -> GraphQLRouter:
    """
    Build the GraphQL router with the relay in its context.

    Args:
        relay: Relay backing the subscriptions
        channel_queue_size: Per-client event buffer size
    """

    async def get_context() -> dict:
        return {"relay": relay, "channel_queue_size": channel_queue_size}

    return GraphQLRouter(schema, context_getter=get_context)
