"""
Meta Graph API client.

One client is built per channel with that channel's credential; the shared
aiohttp session is injected by the application. The access token is only
ever placed in the Authorization header and never logged.
"""

from typing import Any

import aiohttp

from omnichat.core.config.settings import settings
from omnichat.core.logging.logger import get_logger
from omnichat.messaging.errors import PlatformSendError, classify_graph_error


class GraphUrlBuilder:
    """Builds versioned Graph API URLs."""

    def __init__(self, base_url: str, api_version: str):
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version

    def get_endpoint_url(self, endpoint: str) -> str:
        return f"{self.base_url}/{self.api_version}/{endpoint.lstrip('/')}"

    def get_messages_url(self, node_id: str) -> str:
        """Messages edge of a phone number id or page id."""
        return self.get_endpoint_url(f"{node_id}/messages")


class MetaGraphClient:
    """Thin async HTTP client for the Graph API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        access_token: str,
        *,
        api_version: str | None = None,
        base_url: str | None = None,
        logger=None,
    ):
        self.session = session
        self._access_token = access_token
        self.url_builder = GraphUrlBuilder(
            base_url or settings.base_url, api_version or settings.api_version
        )
        self.logger = logger or get_logger(__name__)

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
        }

    async def post(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a JSON payload to an endpoint path such as ``{phone_id}/messages``."""
        return await self._request("POST", endpoint, json=payload)

    async def get(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self._request("GET", endpoint, params=params)

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = self.url_builder.get_endpoint_url(endpoint)
        self.logger.debug(f"{method} {url}")

        try:
            async with self.session.request(
                method, url, headers=self._get_headers(), json=json, params=params
            ) as response:
                try:
                    data = await response.json(content_type=None)
                except ValueError:
                    data = None

                if response.status >= 400 or (isinstance(data, dict) and "error" in data):
                    error = classify_graph_error(
                        response.status,
                        data if isinstance(data, dict) else None,
                        response.headers.get("Retry-After"),
                    )
                    self.logger.error(f"❌ Graph API {method} {endpoint} failed: {error}")
                    raise error

                return data if isinstance(data, dict) else {}

        except aiohttp.ClientError as e:
            self.logger.error(f"❌ Graph API {method} {endpoint} network error: {e}")
            raise PlatformSendError(f"Network error calling Graph API: {e}") from e
