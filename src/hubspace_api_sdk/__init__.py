"""Hubspace API SDK: session management for the Hubspace device API."""

from .async_hubspace_client import (
    AsyncHubspaceApiClient,
    AsyncHubspaceApiClientConfiguration,
)
from .exceptions import (
    APIError,
    AuthenticationFailedError,
    HubspaceError,
    InvalidCredentialsError,
    InvalidGrantError,
    OtpRequiredError,
    ServerError,
    TransportError,
)
from .identity_client import AsyncIdentityClient
from .models import AuthStatus, LoginResult, PersistedTokens, TokenResponse, TokenSession
from .session_manager import (
    AsyncSessionManager,
    SessionManagerConfiguration,
    compute_refresh_delay,
)
from .setup_wizard import SetupWizard
from .token_store import FileTokenStore, MemoryTokenStore, TokenStore

__version__ = "0.1.0"

__all__ = [
    "APIError",
    "AsyncHubspaceApiClient",
    "AsyncHubspaceApiClientConfiguration",
    "AsyncIdentityClient",
    "AsyncSessionManager",
    "AuthStatus",
    "AuthenticationFailedError",
    "FileTokenStore",
    "HubspaceError",
    "InvalidCredentialsError",
    "InvalidGrantError",
    "LoginResult",
    "MemoryTokenStore",
    "OtpRequiredError",
    "PersistedTokens",
    "ServerError",
    "SessionManagerConfiguration",
    "SetupWizard",
    "TokenResponse",
    "TokenSession",
    "TokenStore",
    "TransportError",
    "compute_refresh_delay",
]
