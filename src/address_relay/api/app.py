"""FastAPI application factory and configuration."""

import logging
import secrets
import time
from typing import TYPE_CHECKING, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.websockets import WebSocket

if TYPE_CHECKING:
    from ..metrics import MetricsCollector
    from ..pubsub.relay import PubSubRelay
    from ..webhook.ingest import AddressActivityIngestor

logger = logging.getLogger(__name__)


class BearerAuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware to enforce Bearer token authentication.

    If a bearer token is configured, all requests must include a valid
    Authorization header with the Bearer token, except for excluded paths.
    Webhook callbacks authenticate with their own signature and are excluded.
    """

    # Paths that are always public (no authentication required)
    EXCLUDED_PATHS = {
        "/docs",
        "/redoc",
        "/openapi.json",
        "/metrics",
    }

    EXCLUDED_PREFIXES = ("/webhooks/",)

    def __init__(self, app, bearer_token: Optional[str] = None):
        """
        Initialize the Bearer authentication middleware.

        Args:
            app: The FastAPI application
            bearer_token: The configured bearer token (if None, auth is disabled)
        """
        super().__init__(app)
        self.bearer_token = bearer_token
        self.auth_enabled = bearer_token is not None

    def is_excluded(self, path: str) -> bool:
        return path in self.EXCLUDED_PATHS or path.startswith(self.EXCLUDED_PREFIXES)

    def check_authorization(self, auth_header: Optional[str]) -> Optional[str]:
        """
        Validate an Authorization header against the configured token.

        Returns:
            None when the header is valid, otherwise the reason it was rejected
        """
        if not auth_header:
            return "Missing Authorization header"

        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            return "Invalid Authorization header format. Expected: 'Bearer <token>'"

        # Constant-time comparison to prevent timing attacks
        if not secrets.compare_digest(parts[1], self.bearer_token):
            return "Invalid bearer token"

        return None

    async def __call__(self, scope, receive, send):
        """Reject unauthenticated WebSocket handshakes; HTTP goes through dispatch."""
        if scope["type"] == "websocket" and self.auth_enabled and not self.is_excluded(scope["path"]):
            detail = self.check_authorization(Headers(scope=scope).get("Authorization"))
            if detail is not None:
                logger.warning(f"{detail} for WebSocket {scope['path']}")
                await WebSocket(scope, receive=receive, send=send).close(code=status.WS_1008_POLICY_VIOLATION)
                return

        await super().__call__(scope, receive, send)

    async def dispatch(self, request: Request, call_next):
        """
        Process each request and validate Bearer token if configured.

        Args:
            request: The incoming request
            call_next: The next middleware/handler in the chain

        Returns:
            Response from the next handler or 401 error
        """
        if not self.auth_enabled or self.is_excluded(request.url.path):
            return await call_next(request)

        detail = self.check_authorization(request.headers.get("Authorization"))
        if detail is not None:
            logger.warning(f"{detail} for {request.url.path}")
            return self._unauthorized(detail)

        return await call_next(request)

    @staticmethod
    def _unauthorized(detail: str) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": "Authentication required", "detail": detail},
            headers={"WWW-Authenticate": "Bearer"},
        )


def create_app(
    relay: Optional["PubSubRelay"] = None,
    ingestor: Optional["AddressActivityIngestor"] = None,
    metrics: Optional["MetricsCollector"] = None,
    title: str = "Address Relay",
    version: str = "1.0.0",
    enable_metrics: bool = True,
    bearer_token: Optional[str] = None,
    enable_graphql: bool = True,
    channel_queue_size: int = 100,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        relay: Relay backing the health endpoint and GraphQL subscriptions
        ingestor: Webhook ingestor backing the webhook route
        metrics: Optional metrics collector for webhook outcomes
        title: API title for OpenAPI documentation
        version: API version
        enable_metrics: Whether to enable Prometheus metrics
        bearer_token: Optional bearer token for API authentication
        enable_graphql: Whether to mount the GraphQL endpoint (requires a relay)
        channel_queue_size: Per-client event buffer of GraphQL subscriptions

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=title,
        version=version,
        description="""
# Address Relay

Receives signed address activity webhooks and relays them to subscribers.

## Features

- **Webhook ingestion**: `POST /webhooks/address-updated` verifies the
  `x-alchemy-signature` HMAC of the raw body and publishes the first activity
- **GraphQL subscriptions**: `addressUpdated(input: {address})` at `/graphql`
- **Health Monitoring**: `GET /api/v1/health`
- **Metrics**: Prometheus metrics endpoint for observability

## Authentication

This API supports optional Bearer token authentication:
- **When configured**: All endpoints require an `Authorization: Bearer <token>` header
- **When not configured**: API is public and no authentication is required
- **GraphQL subscriptions**: WebSocket clients send the same header on the handshake
- **Excluded endpoints**: `/webhooks/*`, `/docs`, `/redoc`, `/openapi.json`, and `/metrics` are always public

To configure authentication, set the `RELAY_API_BEARER_TOKEN` environment variable or use the `--api-bearer-token` CLI argument.
        """,
        license_info={
            "name": "MIT",
        },
        openapi_tags=[
            {
                "name": "health",
                "description": "Health check endpoints for monitoring system status",
            },
            {
                "name": "webhooks",
                "description": "Signed callbacks from the address activity provider",
            },
        ],
    )

    app.state.relay = relay
    app.state.ingestor = ingestor
    app.state.metrics = metrics
    app.state.started_at = time.monotonic()

    # =========================================================================
    # CORS Middleware
    # =========================================================================
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Bearer Authentication Middleware
    # =========================================================================
    if bearer_token:
        app.add_middleware(BearerAuthMiddleware, bearer_token=bearer_token)
        logger.info("Bearer token authentication enabled")
    else:
        logger.info("Bearer token authentication disabled - API is public")

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request validation errors."""
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": list(error.get("loc", [])),
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
            if "input" in error:
                error_dict["input"] = str(error["input"])
            errors.append(error_dict)

        logger.warning(f"Validation error on {request.url}: {len(errors)} error(s)")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "Validation error",
                "detail": errors,
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(f"Unexpected error on {request.url}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Internal server error",
                "detail": None,
            },
        )

    # =========================================================================
    # Import and Include Routers
    # =========================================================================

    from .routes import health, webhooks

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

    if enable_graphql and relay is not None:
        from .graphql import create_graphql_router

        app.include_router(create_graphql_router(relay, channel_queue_size), prefix="/graphql")
        logger.info("GraphQL endpoint enabled at /graphql")

    # =========================================================================
    # Prometheus Metrics
    # =========================================================================

    if enable_metrics:
        instrumentator = Instrumentator(
            should_group_status_codes=True,
            should_ignore_untemplated=True,
            should_respect_env_var=False,  # Don't require ENABLE_METRICS env var
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics"],
            inprogress_name="fastapi_inprogress",
            inprogress_labels=True,
        )
        instrumentator.instrument(app).expose(app, endpoint="/metrics")
        logger.info("Prometheus metrics enabled at /metrics")

    logger.info(f"FastAPI application created: {title} v{version}")

    return app
