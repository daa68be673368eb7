"""
Remote HTTP client.

Wraps a shared httpx.AsyncClient for the two kinds of remote calls the
engine makes: GETs for option lists and POSTs to navigation persistence
endpoints. Failures are not retried.
"""

import logging
from typing import Any

import httpx

from formdesign.exceptions import RemoteFetchError

logger = logging.getLogger(__name__)


class RemoteClient:
    """
    Async HTTP client for option and persistence endpoints.

    Features:
    - Lazily created, reusable connection pool
    - JSON request/response handling
    - Transport and HTTP status errors mapped to RemoteFetchError
    """

    def __init__(
        self,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.extra_headers = headers or {}
        self.transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def headers(self) -> dict[str, str]:
        """Get default headers for remote requests."""
        headers = {
            "Accept": "application/json",
            "User-Agent": "Form-Design-Engine/1.0",
        }
        headers.update(self.extra_headers)
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        client = await self._get_client()
        try:
            response = await client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning("%s %s returned %s", method, url, e.response.status_code)
            raise RemoteFetchError(
                url, f"HTTP {e.response.status_code}", e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise RemoteFetchError(url, str(e) or type(e).__name__) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteFetchError(url, "Response is not valid JSON") from e

    async def get_json(self, url: str, **kwargs) -> Any:
        """
        GET a JSON document.

        Args:
            url: Absolute URL
            **kwargs: Additional httpx request arguments

        Returns:
            Decoded JSON body
        """
        return await self._request("GET", url, **kwargs)

    async def post_json(self, url: str, payload: Any, **kwargs) -> Any:
        """
        POST a JSON payload.

        Args:
            url: Absolute URL
            payload: JSON-serializable body

        Returns:
            Decoded JSON body, or None for empty responses
        """
        return await self._request("POST", url, json=payload, **kwargs)

    async def __aenter__(self) -> "RemoteClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()


class PersistenceClient:
    """Sends page or form values to a navigation button's API URL."""

    def __init__(self, remote: RemoteClient):
        self.remote = remote

    async def save(self, url: str, payload: dict[str, Any]) -> Any:
        """
        Persist field values.

        The response body is returned untouched; the engine only cares
        whether the call succeeded.
        """
        logger.info("Persisting %d value(s) to %s", len(payload), url)
        return await self.remote.post_json(url, payload)
