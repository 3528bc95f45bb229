from .setup import AuthStatus, LoginResult
from .token import PersistedTokens, TokenResponse, TokenSession

__all__ = [
    "AuthStatus",
    "LoginResult",
    "PersistedTokens",
    "TokenResponse",
    "TokenSession",
]
