"""Outbound HTTP with retry and exponential backoff."""

import asyncio
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class RetryingHttpClient:
    """
    Base class for outbound HTTP clients.

    Always attempts a request at least once. If retry_count is 0, only the
    initial attempt is made; otherwise up to retry_count retries follow, with
    exponential backoff between attempts (2s, 4s, 8s with the default base).
    """

    def __init__(
        self,
        timeout: float = 5,
        retry_count: int = 3,
        backoff_base: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the client.

        Args:
            timeout: HTTP request timeout in seconds
            retry_count: Number of retry attempts on failure
            backoff_base: Base of the exponential backoff delay in seconds
            client: Optional preconfigured httpx client
        """
        self.timeout = timeout
        self.retry_count = retry_count
        self.backoff_base = backoff_base
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, method: str, url: str, **kwargs: Any) -> Optional[httpx.Response]:
        """
        Send a request, retrying on HTTP errors, timeouts and transport failures.

        Args:
            method: HTTP method
            url: Target URL
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Returns:
            The successful response, or None when every attempt failed
        """
        total_attempts = self.retry_count + 1  # Initial attempt + retries

        for attempt in range(total_attempts):
            try:
                response = await self.client.request(method, url, **kwargs)
                response.raise_for_status()

                logger.debug(f"{method} {url} succeeded (status={response.status_code})")
                return response

            except httpx.HTTPStatusError as e:
                logger.warning(
                    f"{method} {url} HTTP error (attempt {attempt + 1}/{total_attempts}): "
                    f"{e.response.status_code}"
                )
            except httpx.TimeoutException:
                logger.warning(f"{method} {url} timeout (attempt {attempt + 1}/{total_attempts})")
            except httpx.HTTPError as e:
                logger.warning(
                    f"{method} {url} error (attempt {attempt + 1}/{total_attempts}): "
                    f"{type(e).__name__}: {e}"
                )

            if attempt < total_attempts - 1:
                await asyncio.sleep(self.backoff_base ** (attempt + 1))

        logger.error(
            f"{method} {url} failed after {total_attempts} attempts "
            f"(1 initial + {self.retry_count} retries)"
        )
        return None

    async def close(self) -> None:
        """Close HTTP client connection pool."""
        await self.client.aclose()
        logger.debug(f"{type(self).__name__} closed")
