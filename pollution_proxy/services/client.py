"""
UpstreamClient - Thin async JSON client over a shared httpx.AsyncClient.

Translates every transport failure into the service error hierarchy. It never
retries; retry policy belongs to the auth layer.
"""

from typing import Any

import httpx
from loguru import logger

from pollution_proxy.services.errors import (
    RequestTimeoutError,
    UpstreamHTTPError,
    UpstreamTransportError,
)


class UpstreamClient:
    """
    JSON over HTTP with typed errors.

    Usage:
        client = UpstreamClient(default_timeout=10.0)

        data = await client.get_json(
            "https://api.example.com/pollution",
            params={"country": "PL"},
            bearer_token=token,
        )
        tokens = await client.post_json(
            "https://api.example.com/auth/login",
            {"username": "u", "password": "p"},
        )
    """

    def __init__(
        self,
        service_id: str = "upstream",
        default_timeout: float = 10.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.service_id = service_id
        self._default_timeout = default_timeout
        self._headers = headers or {}
        self._transport = transport

        # HTTP client (lazy initialization)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._default_timeout),
                headers=self._headers,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._http_client

    async def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        bearer_token: str | None = None,
        timeout: float | None = None,
    ) -> Any:
        """
        Issue a GET and return the decoded JSON body.

        Args:
            url: Full URL to request
            params: Query parameters
            bearer_token: Sent as ``Authorization: Bearer <token>`` when given
            timeout: Override request timeout

        Raises:
            RequestTimeoutError: If the request times out
            UpstreamHTTPError: On a non-2xx response
            UpstreamTransportError: For other transport or decoding failures
        """
        headers = {}
        if bearer_token:
            headers["Authorization"] = f"Bearer {bearer_token}"

        return await self._execute_request(
            method="GET",
            url=url,
            params=params,
            headers=headers,
            json_data=None,
            timeout=timeout or self._default_timeout,
        )

    async def post_json(
        self,
        url: str,
        body: dict[str, Any],
        timeout: float | None = None,
    ) -> Any:
        """Issue a POST with a JSON body. Same error contract as get_json."""
        return await self._execute_request(
            method="POST",
            url=url,
            params=None,
            headers={},
            json_data=body,
            timeout=timeout or self._default_timeout,
        )

    async def _execute_request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        headers: dict[str, str],
        json_data: dict[str, Any] | None,
        timeout: float,
    ) -> Any:
        """Execute the actual HTTP request."""
        client = await self._get_http_client()

        try:
            response = await client.request(
                method=method,
                url=url,
                params=params,
                headers=headers,
                json=json_data,
                timeout=timeout,
            )
            response.raise_for_status()
            return response.json()

        except httpx.TimeoutException as e:
            raise RequestTimeoutError(self.service_id, timeout) from e

        except httpx.HTTPStatusError as e:
            raise UpstreamHTTPError(
                self.service_id, e.response.status_code, e.response.text
            ) from e

        except httpx.RequestError as e:
            raise UpstreamTransportError(str(e), service_id=self.service_id) from e

        except ValueError as e:
            # Body was not JSON
            raise UpstreamTransportError(
                f"Invalid JSON from {method} {url}: {e}", service_id=self.service_id
            ) from e

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.debug(f"UpstreamClient '{self.service_id}' closed")

    async def __aenter__(self) -> "UpstreamClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
