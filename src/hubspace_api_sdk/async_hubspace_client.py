"""Async client for the Hubspace device API."""

from typing import Any, Dict, Optional

from .async_api_client import AsyncApiClient
from .endpoints import API_BASE_URL
from .session_manager import AsyncSessionManager


class AsyncHubspaceApiClientConfiguration:
    """Configuration for AsyncHubspaceApiClient."""

    DEFAULT: "AsyncHubspaceApiClientConfiguration"

    def __init__(self, base_url: Optional[str] = None, timeout: int = 30):
        """Initialize configuration.

        Args:
            base_url: Override the default device API URL
            timeout: Request timeout in seconds
        """
        self.base_url = base_url or API_BASE_URL
        self.timeout = timeout

    def get_base_url(self) -> str:
        return self.base_url


AsyncHubspaceApiClientConfiguration.DEFAULT = AsyncHubspaceApiClientConfiguration()


class AsyncHubspaceApiClient:
    """Makes authorized requests to the device API.

    The bearer token always comes from the session manager; this client never
    handles tokens beyond attaching them to a request.
    """

    def __init__(
        self,
        session_manager: AsyncSessionManager,
        config: AsyncHubspaceApiClientConfiguration = AsyncHubspaceApiClientConfiguration.DEFAULT,
    ) -> None:
        """Initialize the device API client.

        Args:
            session_manager: Initialized session manager for the account
            config: Configuration for the device API client
        """
        self.config = config
        self.session_manager = session_manager
        self.api_client = AsyncApiClient(
            base_url=config.get_base_url(), timeout=config.timeout
        )

    async def _authorize(self) -> None:
        token = await self.session_manager.get_token()
        self.api_client.set_auth_header(token)

    async def get(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Authorized GET request against the device API."""
        await self._authorize()
        return await self.api_client.get(endpoint, params=params)

    async def put(
        self, endpoint: str, json_data: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """Authorized PUT request against the device API."""
        await self._authorize()
        return await self.api_client.put(endpoint, json_data=json_data)

    async def close(self) -> None:
        """Close the client and release resources."""
        await self.api_client.close()

    async def __aenter__(self) -> "AsyncHubspaceApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
