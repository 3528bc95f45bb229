"""HTTP client with error handling."""

from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests

from .exceptions import TransportError, error_from_response


class ApiClient:
    """Synchronous HTTP client used by the interactive setup helper."""

    def __init__(self, base_url: str, timeout: int = 30) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL for the API
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update(self._get_headers())

    def _get_version(self) -> str:
        """Get the package version."""
        try:
            from . import __version__
            return __version__
        except (ImportError, AttributeError):
            return "0.1.0"

    def _get_headers(self) -> Dict[str, str]:
        """Get default headers."""
        return {"User-Agent": f"hubspace-python-sdk-{self._get_version()}"}

    def _build_url(self, endpoint: str) -> str:
        """Build full URL from endpoint."""
        return urljoin(self.base_url + "/", endpoint.lstrip("/"))

    def _handle_response(self, response: requests.Response) -> Dict[str, Any]:
        """Handle HTTP response and raise appropriate exceptions."""
        try:
            response_data = response.json() if response.content else {}
        except ValueError:
            response_data = {"raw_content": response.text}

        if response.status_code == 200:
            return response_data

        raise error_from_response(response.status_code, response_data)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Dict[str, Any]:
        url = self._build_url(endpoint)
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        return self._handle_response(response)

    def post(
        self,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        json_data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Make POST request. `data` is sent form-encoded."""
        return self._request("POST", endpoint, data=data, json=json_data)

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
