"""Projection of a webhook body onto the relayed event."""

from typing import Optional

from .models import NormalizedEvent, WebhookRequestBody


def normalize(body: WebhookRequestBody) -> Optional[NormalizedEvent]:
    """
    Extract the relayed event from a webhook body.

    Only the first activity entry, in delivery order, is relayed; later entries
    of the same call are dropped. Value, hash, asset and contract details are
    not carried over.

    Args:
        body: Verified and decoded webhook body

    Returns:
        The normalized event, or None when the call carries no activity
    """
    if not body.event.activity:
        return None

    first = body.event.activity[0]
    return NormalizedEvent(
        event=first.category,
        from_address=first.from_address,
        to_address=first.to_address,
    )
