"""Async HTTP client with error handling."""

import asyncio
import json
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import aiohttp
from aiohttp import ClientSession, TCPConnector

from .exceptions import TransportError, error_from_response


class AsyncApiClient:
    """Async HTTP client with error handling."""

    def __init__(
        self,
        base_url: str,
        timeout: int = 30,
        connection_limit: int = 10,
    ) -> None:
        """Initialize the async base client.

        Args:
            base_url: Base URL for the API
            timeout: Request timeout in seconds
            connection_limit: Maximum number of pooled connections
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.connection_limit = connection_limit

        self._session: Optional[ClientSession] = None
        self._connector: Optional[TCPConnector] = None
        self._auth_token: Optional[str] = None

    async def _get_session(self) -> ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            self._connector = TCPConnector(
                limit=self.connection_limit,
                enable_cleanup_closed=True,
            )
            self._session = ClientSession(
                timeout=self.timeout,
                connector=self._connector,
            )
        return self._session

    def _get_version(self) -> str:
        """Get the package version."""
        try:
            from . import __version__
            return __version__
        except (ImportError, AttributeError):
            return "0.1.0"

    def _get_headers(self) -> Dict[str, str]:
        """Get default headers, including auth if set."""
        headers = {"User-Agent": f"hubspace-python-sdk-{self._get_version()}"}
        if self._auth_token:
            headers["Authorization"] = f"Bearer {self._auth_token}"
        return headers

    def set_auth_header(self, token: str) -> None:
        """Set the `Authorization` header with a bearer token."""
        self._auth_token = token

    def _build_url(self, endpoint: str) -> str:
        """Build full URL from endpoint."""
        return urljoin(self.base_url + "/", endpoint.lstrip("/"))

    def _handle_response(self, response_data: Dict[str, Any], status_code: int) -> Dict[str, Any]:
        """Handle HTTP response and raise appropriate exceptions."""
        if status_code == 200:
            return response_data

        raise error_from_response(status_code, response_data)

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> Dict[str, Any]:
        session = await self._get_session()
        url = self._build_url(endpoint)

        try:
            async with session.request(
                method, url, headers=self._get_headers(), **kwargs
            ) as response:
                text = await response.text()
                status = response.status
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"{method} {url} failed: {e!r}") from e

        try:
            response_data = json.loads(text) if text else {}
        except json.JSONDecodeError:
            response_data = {"raw_content": text}
        if not isinstance(response_data, dict):
            response_data = {"data": response_data}

        return self._handle_response(response_data, status)

    async def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Make async GET request."""
        return await self._request("GET", endpoint, params=params, **kwargs)

    async def post(
        self,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Make async POST request. `data` is sent form-encoded."""
        return await self._request("POST", endpoint, data=data, json=json_data, **kwargs)

    async def put(
        self,
        endpoint: str,
        json_data: Optional[Dict[str, Any]] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """Make async PUT request."""
        return await self._request("PUT", endpoint, json=json_data, **kwargs)

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
        if self._connector:
            await self._connector.close()

    async def __aenter__(self) -> "AsyncApiClient":
        """Async context manager entry."""
        await self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
