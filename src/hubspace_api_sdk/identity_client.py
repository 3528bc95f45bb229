"""Client for the Hubspace identity (OpenID Connect) token endpoint."""

from typing import Optional

from pydantic import ValidationError

from .async_api_client import AsyncApiClient
from .endpoints import ACCOUNT_BASE_URL, CLIENT_ID, TOKEN_PATH
from .exceptions import (
    APIError,
    InvalidCredentialsError,
    InvalidGrantError,
    OtpRequiredError,
)
from .models import TokenResponse


def is_otp_required(error: APIError) -> bool:
    """Whether an invalid_grant response asks for the e-mailed one-time code."""
    return "otp" in error.error_description.lower()


def is_credential_rejection(error: APIError) -> bool:
    """Whether a failed password grant means the credentials were refused."""
    return isinstance(error, InvalidGrantError) or error.status_code == 401


def credential_error(error: APIError) -> InvalidCredentialsError:
    """Map a rejected password grant to the error a caller should see."""
    if is_otp_required(error):
        return OtpRequiredError(
            "A one-time code is required; check the account's e-mail",
            error.status_code,
            error.response_data,
        )
    return InvalidCredentialsError(
        "Invalid username or password", error.status_code, error.response_data
    )


def password_grant_payload(
    client_id: str, username: str, password: str, otp: Optional[str] = None
) -> dict:
    payload = {
        "grant_type": "password",
        "client_id": client_id,
        "username": username,
        "password": password,
    }
    if otp:
        payload["totp"] = otp
    return payload


class AsyncIdentityClient:
    """Performs the password and refresh grants against the token endpoint."""

    def __init__(
        self,
        api_client: Optional[AsyncApiClient] = None,
        base_url: str = ACCOUNT_BASE_URL,
        client_id: str = CLIENT_ID,
        timeout: int = 30,
    ) -> None:
        self.api_client = api_client or AsyncApiClient(base_url=base_url, timeout=timeout)
        self.client_id = client_id

    async def password_grant(
        self, username: str, password: str, otp: Optional[str] = None
    ) -> TokenResponse:
        """Exchange username and password (and one-time code) for tokens.

        Raises:
            OtpRequiredError: the account needs the e-mailed code
            InvalidCredentialsError: the provider rejected the credentials
            TransportError: the endpoint could not be reached
            APIError: any other non-200 response
        """
        payload = password_grant_payload(self.client_id, username, password, otp)

        try:
            response = await self.api_client.post(TOKEN_PATH, data=payload)
        except APIError as e:
            if not is_credential_rejection(e):
                raise
            raise credential_error(e) from e
        return self._parse(response)

    async def refresh_grant(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new token pair.

        Raises:
            InvalidGrantError: the refresh token was revoked or the session is inactive
            TransportError: the endpoint could not be reached
            APIError: any other non-200 response
        """
        payload = {
            "grant_type": "refresh_token",
            "client_id": self.client_id,
            "refresh_token": refresh_token,
        }
        response = await self.api_client.post(TOKEN_PATH, data=payload)
        return self._parse(response)

    def _parse(self, response: dict) -> TokenResponse:
        try:
            return TokenResponse(**response)
        except ValidationError as e:
            raise APIError("Malformed token response", 200, response) from e

    async def close(self) -> None:
        await self.api_client.close()
