"""Interactive account setup: password login and e-mailed code verification."""

import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from .api_client import ApiClient
from .endpoints import ACCOUNT_BASE_URL, CLIENT_ID, TOKEN_PATH
from .exceptions import (
    APIError,
    AuthenticationFailedError,
    HubspaceError,
    InvalidCredentialsError,
    OtpRequiredError,
)
from .identity_client import (
    credential_error,
    is_credential_rejection,
    password_grant_payload,
)
from .models import AuthStatus, LoginResult, PersistedTokens, TokenResponse, TokenSession
from .token_store import TokenStore

logger = logging.getLogger(__name__)


class SetupWizard:
    """Drives the first login for an account.

    Hubspace answers the first password login with an e-mailed one-time code.
    `login()` reports whether that code is needed and `verify_otp()` completes
    the login with it. Tokens from a successful login are written to the store
    so the session manager restores them instead of logging in again.
    """

    def __init__(
        self,
        store: Optional[TokenStore] = None,
        base_url: str = ACCOUNT_BASE_URL,
        api_client: Optional[ApiClient] = None,
    ) -> None:
        self.store = store
        self.api_client = api_client or ApiClient(base_url=base_url)

    def login(self, username: str, password: str) -> LoginResult:
        """Attempt a password login without a one-time code."""
        if not username or not password:
            raise ValueError("Username and password are required")

        try:
            tokens = self._password_grant(username, password)
        except OtpRequiredError:
            return LoginResult(
                success=False,
                requires_2fa=True,
                message="Please check your email for the verification code sent by Hubspace.",
                username=username,
            )
        except InvalidCredentialsError:
            raise
        except HubspaceError as e:
            raise AuthenticationFailedError(f"Authentication failed: {e}") from e

        self._persist(username, tokens)
        return LoginResult(success=True, message="Login successful! No 2FA required.")

    def verify_otp(self, username: str, password: str, otp: str) -> LoginResult:
        """Complete a login with the one-time code from the e-mail."""
        if not username or not password or not otp:
            raise ValueError("Username, password, and OTP are required")

        try:
            tokens = self._password_grant(username, password, otp)
        except (InvalidCredentialsError, OtpRequiredError) as e:
            raise InvalidCredentialsError(
                "Invalid verification code. Please try again.",
                e.status_code,
                e.response_data,
            ) from e
        except HubspaceError as e:
            raise AuthenticationFailedError(f"Verification failed: {e}") from e

        self._persist(username, tokens)
        return LoginResult(
            success=True,
            message="Authentication successful! You can now close this window.",
        )

    def auth_status(self) -> AuthStatus:
        """Report whether the store holds a session and for which account."""
        if self.store is None:
            return AuthStatus(configured=False)
        try:
            data = self.store.load()
        except (OSError, ValueError) as e:
            logger.warning("Failed to read token storage: %s", e)
            return AuthStatus(configured=False)

        username = (data or {}).get("username") or ""
        return AuthStatus(configured=bool(username), username=username)

    def close(self) -> None:
        self.api_client.close()

    def _password_grant(
        self, username: str, password: str, otp: Optional[str] = None
    ) -> TokenResponse:
        payload = password_grant_payload(CLIENT_ID, username, password, otp)
        try:
            response = self.api_client.post(TOKEN_PATH, data=payload)
        except APIError as e:
            if not is_credential_rejection(e):
                raise
            raise credential_error(e) from e

        try:
            return TokenResponse(**response)
        except ValidationError as e:
            raise AuthenticationFailedError("Malformed token response") from e

    def _persist(self, username: str, tokens: TokenResponse) -> None:
        if self.store is None:
            return
        session = TokenSession.from_token_response(tokens, datetime.now(timezone.utc))
        try:
            self.store.save(PersistedTokens.from_session(username, session).to_record())
        except OSError as e:
            logger.warning("Failed to save tokens to storage: %s", e)
