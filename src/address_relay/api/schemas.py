"""Pydantic schemas for API responses."""

from typing import Any

from pydantic import BaseModel, Field


class HealthCheckResponse(BaseModel):
    """Response model for the health check."""

    status: str = Field(..., description="Overall status (healthy/unhealthy)")
    version: str
    uptime_seconds: float
    active_subscriptions: int
    transport: dict[str, Any] = Field(default_factory=dict, description="Pub/sub transport details")
