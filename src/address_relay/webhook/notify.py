"""Client for the webhook provider's watched address list."""

import logging
from typing import Iterable, Optional

import httpx

from ..exceptions import RelayError
from ..utils.address import normalize_address
from .http_client import RetryingHttpClient

logger = logging.getLogger(__name__)

AUTH_HEADER = "x-alchemy-token"


class AddressNotifyClient(RetryingHttpClient):
    """Adds and removes addresses on the provider webhook that calls this service."""

    def __init__(
        self,
        webhook_id: str,
        auth_token: str,
        api_url: str = "https://dashboard.alchemyapi.io/api",
        timeout: float = 5,
        retry_count: int = 3,
        backoff_base: float = 2.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not webhook_id or not auth_token:
            raise ValueError("A webhook id and auth token are required")
        super().__init__(timeout, retry_count, backoff_base, client)
        self.webhook_id = webhook_id
        self.auth_token = auth_token
        self.api_url = api_url.rstrip("/")

    async def update_addresses(
        self,
        add: Iterable[str] = (),
        remove: Iterable[str] = (),
    ) -> None:
        """
        Update the watched address list.

        Args:
            add: Addresses to start watching
            remove: Addresses to stop watching

        Raises:
            ValueError: If an address is not ``0x`` followed by 40 hex characters
            RelayError: If the provider did not accept the update
        """
        payload = {
            "webhook_id": self.webhook_id,
            "addresses_to_add": [normalize_address(a) for a in add],
            "addresses_to_remove": [normalize_address(a) for a in remove],
        }
        if not payload["addresses_to_add"] and not payload["addresses_to_remove"]:
            logger.debug("No address changes to send")
            return

        response = await self._request(
            "PATCH",
            f"{self.api_url}/update-webhook-addresses",
            json=payload,
            headers={AUTH_HEADER: self.auth_token},
        )
        if response is None:
            raise RelayError(f"Failed to update addresses of webhook {self.webhook_id}")

        logger.info(
            f"Webhook {self.webhook_id} addresses updated: "
            f"+{len(payload['addresses_to_add'])} -{len(payload['addresses_to_remove'])}"
        )

    async def add_addresses(self, addresses: Iterable[str]) -> None:
        await self.update_addresses(add=addresses)

    async def remove_addresses(self, addresses: Iterable[str]) -> None:
        await self.update_addresses(remove=addresses)
