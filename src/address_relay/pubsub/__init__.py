"""
Pub/sub relay for address activity events.

Publishes normalized events to a durable topic and delivers subscription
messages to in-process callbacks or pull-style channels.
"""

from .channel import MessageChannel
from .memory import InMemoryTransport
from .models import SubscriptionInfo, SubscriptionName, TopicName, decode_payload, encode_payload
from .relay import PubSubRelay
from .transport import PubSubTransport, TransportMessage

__all__ = [
    "InMemoryTransport",
    "MessageChannel",
    "PubSubRelay",
    "PubSubTransport",
    "SubscriptionInfo",
    "SubscriptionName",
    "TopicName",
    "TransportMessage",
    "decode_payload",
    "encode_payload",
]
