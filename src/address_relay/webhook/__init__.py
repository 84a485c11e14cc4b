"""Address activity webhook ingestion and outbound provider clients."""

from .forwarder import ActivityForwarder
from .ingest import AddressActivityIngestor
from .models import (
    ActivityCategory,
    NormalizedEvent,
    RawContract,
    WebHookAddressActivity,
    WebHookEvent,
    WebhookRequestBody,
)
from .normalizer import normalize
from .notify import AddressNotifyClient
from .signature import SIGNATURE_HEADER, SignatureVerifier, compute_signature, verify_signature

__all__ = [
    "SIGNATURE_HEADER",
    "ActivityCategory",
    "ActivityForwarder",
    "AddressActivityIngestor",
    "AddressNotifyClient",
    "NormalizedEvent",
    "RawContract",
    "SignatureVerifier",
    "WebHookAddressActivity",
    "WebHookEvent",
    "WebhookRequestBody",
    "compute_signature",
    "normalize",
    "verify_signature",
]
