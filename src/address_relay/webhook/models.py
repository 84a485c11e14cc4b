"""Pydantic models for the address activity webhook and the relayed event."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ActivityCategory(str, Enum):
    """Category of an address activity entry."""

    TOKEN = "token"
    INTERNAL = "internal"
    EXTERNAL = "external"


class _WireModel(BaseModel):
    """Camel-cased on the wire, snake_cased in Python."""

    model_config = ConfigDict(populate_by_name=True)


class RawContract(_WireModel):
    """Contract details attached to an activity entry."""

    raw_value: Optional[str] = Field(default=None, alias="rawValue")
    address: Optional[str] = None
    decimal: Optional[int] = None


class WebHookAddressActivity(_WireModel):
    """One address activity entry as delivered by the sender."""

    category: ActivityCategory
    from_address: str = Field(alias="fromAddress")
    to_address: str = Field(alias="toAddress")
    erc721_token_id: Optional[str] = Field(default=None, alias="erc721TokenId")
    value: Optional[float] = None
    asset: Optional[str] = None
    raw_contract: RawContract = Field(default_factory=RawContract, alias="rawContract")
    hash: str


class WebHookEvent(_WireModel):
    """Event envelope carrying the ordered activity entries."""

    network: Optional[str] = None
    activity: list[WebHookAddressActivity] = Field(default_factory=list)


class WebhookRequestBody(_WireModel):
    """Decoded webhook request body. Only trusted after signature verification."""

    webhook_id: str = Field(alias="webhookId")
    id: str
    created_at: str = Field(alias="createdAt")
    type: str
    event: WebHookEvent


class NormalizedEvent(_WireModel):
    """Minimal event published to subscribers."""

    event: ActivityCategory
    from_address: str = Field(alias="fromAddress")
    to_address: str = Field(alias="toAddress")

    def to_payload(self) -> dict[str, str]:
        """Wire representation: ``{"event", "fromAddress", "toAddress"}``."""
        return self.model_dump(mode="json", by_alias=True)
