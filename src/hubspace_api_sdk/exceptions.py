"""Exceptions raised by the Hubspace SDK."""

from typing import Any, Dict, Optional


class HubspaceError(Exception):
    """Base class for all SDK errors."""


class TransportError(HubspaceError):
    """The identity endpoint or API could not be reached."""


class APIError(HubspaceError):
    """Non-success response from the server."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}

    @property
    def error(self) -> Optional[str]:
        """OAuth `error` code of the response, if any."""
        return self.response_data.get("error")

    @property
    def error_description(self) -> str:
        return self.response_data.get("error_description") or ""


class InvalidGrantError(APIError):
    """The provider rejected the grant (revoked or inactive session)."""


class ServerError(APIError):
    """5xx response."""


class AuthenticationFailedError(HubspaceError):
    """No authentication strategy produced a token."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}


class InvalidCredentialsError(AuthenticationFailedError):
    """The provider rejected the username/password."""


class OtpRequiredError(AuthenticationFailedError):
    """The password grant needs the one-time code e-mailed to the account."""


def error_from_response(status_code: int, response_data: Dict[str, Any]) -> APIError:
    """Build the exception matching a non-200 token or API response."""
    error_message = (
        response_data.get("error_description")
        or response_data.get("message")
        or response_data.get("error")
        or "Unknown error"
    )
    if isinstance(error_message, dict):
        error_message = str(error_message)

    if response_data.get("error") == "invalid_grant":
        return InvalidGrantError(error_message, status_code, response_data)
    if 500 <= status_code < 600:
        return ServerError(error_message, status_code, response_data)
    return APIError(error_message, status_code, response_data)
