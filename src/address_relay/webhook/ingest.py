"""Webhook ingestion pipeline: verify, parse, normalize, publish, forward."""

import logging
from typing import TYPE_CHECKING, Optional

from pydantic import ValidationError

from ..exceptions import AuthenticationError, InputError
from .models import NormalizedEvent, WebhookRequestBody
from .normalizer import normalize
from .signature import SignatureVerifier

if TYPE_CHECKING:
    from ..metrics import MetricsCollector
    from ..pubsub.relay import PubSubRelay
    from .forwarder import ActivityForwarder

logger = logging.getLogger(__name__)


class AddressActivityIngestor:
    """Turns a signed address activity webhook call into a relayed event."""

    def __init__(
        self,
        verifier: SignatureVerifier,
        relay: "PubSubRelay",
        forwarder: Optional["ActivityForwarder"] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.verifier = verifier
        self.relay = relay
        self.forwarder = forwarder
        self.metrics = metrics

    async def ingest(self, raw_body: Optional[bytes], signature: Optional[str]) -> Optional[NormalizedEvent]:
        """
        Process one webhook call.

        The body is only decoded after the signature over the raw bytes has
        been verified. A call without activity is accepted and publishes
        nothing.

        Args:
            raw_body: Request body exactly as received
            signature: Value of the signature header

        Returns:
            The published event, or None when the call carried no activity

        Raises:
            InputError: Missing signature or body, or a body that does not decode
            AuthenticationError: Signature does not match the body
            TransportError: The event could not be published
            ForwardError: The verified body could not be forwarded
        """
        if not signature or not raw_body:
            raise InputError("Invalid request")

        if not self.verifier.verify(raw_body, signature):
            raise AuthenticationError("Request corrupted in transit.")

        try:
            body = WebhookRequestBody.model_validate_json(raw_body)
        except ValidationError as e:
            raise InputError(f"Malformed webhook body: {e.error_count()} error(s)") from e

        event = normalize(body)
        if event is None:
            logger.info(f"Webhook {body.id} carried no activity")
        else:
            dropped = len(body.event.activity) - 1
            if dropped:
                logger.warning(f"Webhook {body.id} carried {dropped + 1} activities, relaying the first only")
                if self.metrics:
                    self.metrics.record_dropped_activities(dropped)
            message_id = await self.relay.publish(event)
            logger.info(f"Webhook {body.id} relayed as message {message_id} ({event.event.value})")

        if self.forwarder is not None:
            await self.forwarder.forward(raw_body)

        return event
