"""Names, registration records and payload encoding for the pub/sub relay."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Union

from pydantic import BaseModel


class TopicName(str, Enum):
    """Topics the relay publishes to."""

    BLOCKCHAIN_NOTIFICATIONS = "blockchain-notifications"


class SubscriptionName(str, Enum):
    """Triggers a caller can subscribe to."""

    ADDRESS_UPDATED = "address_updated"


MessageCallback = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]


@dataclass
class SubscriptionInfo:
    """An active registration owned by the relay."""

    trigger_name: SubscriptionName
    subscription_path: str
    listener: Callable[..., Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def encode_payload(payload: Union[BaseModel, Mapping[str, Any]]) -> bytes:
    """Serialize a payload to UTF-8 JSON bytes."""
    if isinstance(payload, BaseModel):
        data = payload.model_dump(mode="json", by_alias=True)
    else:
        data = dict(payload)
    return json.dumps(data, separators=(",", ":")).encode("utf-8")


def decode_payload(data: bytes) -> dict[str, Any]:
    """
    Decode a message body. Empty bodies decode to an empty dict.

    Raises:
        ValueError: If the body is not a UTF-8 JSON object
    """
    if not data:
        return {}
    decoded = json.loads(data.decode("utf-8"))
    if not isinstance(decoded, dict):
        raise ValueError(f"Expected a JSON object, got {type(decoded).__name__}")
    return decoded
