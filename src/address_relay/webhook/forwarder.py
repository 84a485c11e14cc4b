"""Forwarding of verified activity bodies to a downstream service."""

import logging
from typing import TYPE_CHECKING, Optional

import httpx

from ..exceptions import ForwardError
from .http_client import RetryingHttpClient

if TYPE_CHECKING:
    from ..metrics import MetricsCollector

logger = logging.getLogger(__name__)

ACCESS_KEY_HEADER = "x-access-key"


class ActivityForwarder(RetryingHttpClient):
    """POSTs verified webhook bodies to ``{base_url}/activities/update``."""

    def __init__(
        self,
        base_url: str,
        access_key: Optional[str] = None,
        timeout: float = 5,
        retry_count: int = 3,
        backoff_base: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        if not base_url:
            raise ValueError("A forwarding base URL is required")
        super().__init__(timeout, retry_count, backoff_base, client)
        self.url = f"{base_url.rstrip('/')}/activities/update"
        self.access_key = access_key
        self.metrics = metrics

    async def forward(self, raw_body: bytes) -> None:
        """
        Forward a verified body unchanged.

        Raises:
            ForwardError: If every attempt failed
        """
        headers = {"Content-Type": "application/json"}
        if self.access_key:
            headers[ACCESS_KEY_HEADER] = self.access_key

        response = await self._request("POST", self.url, content=raw_body, headers=headers)
        if response is None:
            if self.metrics:
                self.metrics.record_forward("failed")
            raise ForwardError(f"Could not forward activity to {self.url}")

        if self.metrics:
            self.metrics.record_forward("ok")
