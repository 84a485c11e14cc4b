"""Health check endpoint."""

import time

from fastapi import APIRouter, Depends, Request

from ... import __version__
from ...pubsub.relay import PubSubRelay
from ..dependencies import get_relay
from ..schemas import HealthCheckResponse

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Report service uptime, relay registrations and pub/sub transport details",
)
async def health(request: Request, relay: PubSubRelay = Depends(get_relay)) -> HealthCheckResponse:
    started_at = getattr(request.app.state, "started_at", None) or time.monotonic()
    return HealthCheckResponse(
        status="healthy",
        version=__version__,
        uptime_seconds=round(time.monotonic() - started_at, 3),
        active_subscriptions=relay.active_subscriptions,
        transport=relay.transport.describe(),
    )
