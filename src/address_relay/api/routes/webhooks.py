"""Inbound address activity webhook."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status

from ...exceptions import AuthenticationError, ForwardError, InputError, TransportError
from ...metrics import MetricsCollector
from ...webhook.ingest import AddressActivityIngestor
from ...webhook.signature import SIGNATURE_HEADER
from ..dependencies import get_ingestor, get_metrics_collector

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/address-updated",
    status_code=status.HTTP_200_OK,
    summary="Receive address activity",
    description=(
        "Signed address activity callback. Responds 200 with an empty body once the "
        "event is published, and 500 with an empty body on any failure."
    ),
)
async def address_updated(
    request: Request,
    ingestor: AddressActivityIngestor = Depends(get_ingestor),
    metrics: Optional[MetricsCollector] = Depends(get_metrics_collector),
) -> Response:
    """
    Verify, normalize and relay an address activity webhook.

    The response never says why a call failed; reasons are logged only.
    """
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    try:
        event = await ingestor.ingest(raw_body, signature)
    except InputError as e:
        outcome = "invalid"
        logger.warning(f"Rejected webhook: {e}")
    except AuthenticationError as e:
        outcome = "unauthenticated"
        logger.warning(f"Rejected webhook from {request.client.host if request.client else 'unknown'}: {e}")
    except TransportError as e:
        outcome = "transport_error"
        logger.error(f"Webhook not relayed: {e}")
    except ForwardError as e:
        outcome = "forward_error"
        logger.error(f"Webhook relayed but not forwarded: {e}")
    except Exception as e:
        outcome = "error"
        logger.error(f"Unexpected error handling webhook: {type(e).__name__}: {e}", exc_info=True)
    else:
        outcome = "relayed" if event is not None else "empty"
        if metrics:
            metrics.record_webhook(outcome)
        return Response(status_code=status.HTTP_200_OK)

    if metrics:
        metrics.record_webhook(outcome)
        metrics.record_error("webhook", outcome)
    return Response(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
