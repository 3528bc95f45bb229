"""Session manager that keeps a Hubspace access token alive.

A full password login makes Hubspace e-mail a one-time code to the account
holder, so the manager prefers the refresh grant whenever it can, refreshes
proactively before the access token expires, and persists the token pair so
a restarted process can pick the chain up again.
"""

import asyncio
import contextlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Optional

from pydantic import ValidationError

from .exceptions import (
    AuthenticationFailedError,
    HubspaceError,
    InvalidGrantError,
)
from .identity_client import AsyncIdentityClient
from .models import PersistedTokens, TokenResponse, TokenSession
from .token_store import TokenStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_refresh_delay(
    now: datetime,
    access_token_expiration: datetime,
    refresh_token_expiration: datetime,
    ratio: float = 0.8,
) -> Optional[float]:
    """Seconds until a proactive refresh should run.

    The refresh fires once `ratio` of the access token's remaining lifetime
    has elapsed, provided that moment is strictly before the refresh token
    expires. Returns None when no refresh should be scheduled.
    """
    lifetime = (access_token_expiration - now).total_seconds()
    refresh_at = now + timedelta(seconds=lifetime * ratio)
    if refresh_at >= refresh_token_expiration:
        return None
    return max(0.0, lifetime * ratio)


class SessionManagerConfiguration:
    """Timing configuration for AsyncSessionManager."""

    DEFAULT: "SessionManagerConfiguration"

    def __init__(
        self,
        save_debounce_seconds: float = 0.5,
        refresh_ratio: float = 0.8,
    ) -> None:
        """Initialize configuration.

        Args:
            save_debounce_seconds: Quiet period before tokens are written to the store
            refresh_ratio: Fraction of the access token lifetime after which it is refreshed
        """
        if save_debounce_seconds < 0:
            raise ValueError("save_debounce_seconds must not be negative")
        if not 0 < refresh_ratio < 1:
            raise ValueError("refresh_ratio must be between 0 and 1")

        self.save_debounce_seconds = save_debounce_seconds
        self.refresh_ratio = refresh_ratio


SessionManagerConfiguration.DEFAULT = SessionManagerConfiguration()


class AsyncSessionManager:
    """Owns the token session for one Hubspace account.

    Callers only ever ask for `get_token()`; refreshing, falling back to a
    credential login, scheduling and persistence all happen in here.
    """

    def __init__(
        self,
        identity_client: Optional[AsyncIdentityClient] = None,
        config: SessionManagerConfiguration = SessionManagerConfiguration.DEFAULT,
    ) -> None:
        """Initialize the session manager.

        Args:
            identity_client: Client for the identity token endpoint
            config: Timing configuration
        """
        self.identity_client = identity_client or AsyncIdentityClient()
        self.config = config

        self._username: Optional[str] = None
        self._password = ""
        self._otp: Optional[str] = None
        self._verbose = False
        self._store: Optional[TokenStore] = None

        self._session = TokenSession()

        # single in-flight authentication shared by all callers
        self._pending: Optional[asyncio.Future] = None
        self._pending_refresh_only = False

        self._refresh_handle: Optional[asyncio.TimerHandle] = None
        self._refresh_arm_deferred = False
        self._save_handle: Optional[asyncio.TimerHandle] = None

    @property
    def username(self) -> Optional[str]:
        return self._username

    @property
    def session(self) -> TokenSession:
        """Snapshot of the current token session."""
        return self._session

    def initialize(
        self,
        username: str,
        password: str,
        store: Optional[TokenStore] = None,
        otp: Optional[str] = None,
        verbose: bool = False,
    ) -> None:
        """Set the account credentials and restore any saved session.

        No network I/O happens here. Calling it again for the same account only
        updates the password, one-time code and verbosity.

        When called inside a running event loop, a restored session arms the
        proactive refresh immediately. Outside a loop the timer cannot be armed
        yet; it is armed on the first `get_token()` call, so hosts that
        initialize before starting their loop should call `get_token()` once
        the loop runs to keep the refresh chain alive.

        Args:
            username: Account username
            password: Account password
            store: Durable store for the token record
            otp: One-time code e-mailed by Hubspace, used on the next credential login
            verbose: Log routine token events at INFO instead of DEBUG

        Raises:
            RuntimeError: If the account changes while an authentication is in flight
        """
        if self._username is not None and username != self._username:
            if self._pending is not None and not self._pending.done():
                raise RuntimeError(
                    "Cannot switch accounts while an authentication is in progress"
                )
            self._cancel_refresh_timer()
            self._cancel_pending_save()
            self._session = TokenSession()

        self._username = username
        self._password = password
        self._otp = otp
        self._verbose = verbose
        self._store = store

        if self._session.is_empty:
            self._restore()

    def has_valid_token(self) -> bool:
        """Whether a non-expired access token is cached."""
        return (
            self._session.access_token is not None
            and not self._session.access_token_expired(_utcnow())
        )

    async def get_token(self) -> str:
        """Return a valid access token, authenticating if needed.

        Raises:
            OtpRequiredError: The credential login needs the e-mailed one-time code
            InvalidCredentialsError: The credential login was rejected
            AuthenticationFailedError: Neither refresh nor credential login succeeded
        """
        if self._username is None:
            raise RuntimeError("initialize() must be called before get_token()")

        if self._refresh_arm_deferred:
            self._schedule_refresh()

        while True:
            if self.has_valid_token():
                return self._session.access_token

            pending = self._pending
            if pending is None or pending.done():
                pending = self._start_pending(self._authenticate(), refresh_only=False)
                return await asyncio.shield(pending)

            if not self._pending_refresh_only:
                return await asyncio.shield(pending)

            # a proactive refresh is already running; its outcome decides
            # whether a full authentication is still needed
            await asyncio.shield(pending)

    async def logout(self) -> None:
        """Forget the session and delete the stored token record."""
        pending = self._pending
        if pending is not None and not pending.done():
            with contextlib.suppress(HubspaceError):
                await asyncio.shield(pending)
        self._log_verbose("Logging out %s", self._username)
        self._clear_session(delete_persisted=True)

    async def close(self) -> None:
        """Cancel timers, write any pending save and close the identity client.

        An authentication already in flight is allowed to finish first so it
        cannot re-arm a timer after the manager is closed.
        """
        pending = self._pending
        if pending is not None and not pending.done():
            with contextlib.suppress(HubspaceError):
                await asyncio.shield(pending)
        self._cancel_refresh_timer()
        if self._save_handle is not None:
            self._cancel_pending_save()
            self._flush_save()
        await self.identity_client.close()

    async def __aenter__(self) -> "AsyncSessionManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _log_verbose(self, message: str, *args: Any) -> None:
        logger.log(logging.INFO if self._verbose else logging.DEBUG, message, *args)

    def _start_pending(self, coro: Awaitable[Any], refresh_only: bool) -> asyncio.Future:
        task = asyncio.ensure_future(coro)
        self._pending = task
        self._pending_refresh_only = refresh_only
        task.add_done_callback(self._clear_pending)
        return task

    def _clear_pending(self, task: asyncio.Future) -> None:
        if self._pending is task:
            self._pending = None
            self._pending_refresh_only = False
        if not task.cancelled():
            # waiters see the outcome through shield(); mark it retrieved
            task.exception()

    async def _authenticate(self) -> str:
        now = _utcnow()
        session = self._session
        if not session.access_token_expired(now) and not session.refresh_token_expired(now):
            return session.access_token

        self._log_verbose(
            "Token state - access expired: %s, refresh expired: %s",
            session.access_token_expired(now),
            session.refresh_token_expired(now),
        )

        response = await self._try_refresh()
        used_refresh = response is not None

        last_error: Optional[HubspaceError] = None
        if response is None:
            logger.warning(
                "Falling back to credential login for %s; Hubspace will e-mail the account",
                self._username,
                extra={"auth_event": "credential_login"},
            )
            try:
                response = await self.identity_client.password_grant(
                    self._username, self._password, self._otp
                )
                self._log_verbose("Authenticated with credentials")
            except HubspaceError as e:
                logger.error("Failed to login with credentials: %s", e)
                last_error = e

        if response is None:
            logger.error("Authentication failed: unable to obtain a valid token")
            self._clear_session()
            if isinstance(last_error, AuthenticationFailedError):
                raise last_error
            raise AuthenticationFailedError(
                "Neither refresh token nor credential login succeeded"
            ) from last_error

        if not used_refresh:
            # the one-time code is single use
            self._otp = None
        self._set_tokens(response, from_refresh=used_refresh)
        return self._session.access_token

    async def _try_refresh(self) -> Optional[TokenResponse]:
        session = self._session
        if session.refresh_token is None:
            self._log_verbose("No refresh token available")
            return None
        if session.refresh_token_expired(_utcnow()):
            self._log_verbose("Refresh token is expired, cannot use it")
            return None

        try:
            response = await self.identity_client.refresh_grant(session.refresh_token)
        except InvalidGrantError as e:
            logger.warning(
                "Server rejected refresh token (session inactive or token revoked): %s", e
            )
            self._clear_session(delete_persisted=True)
            return None
        except HubspaceError as e:
            logger.error("Refresh token request failed: %s", e)
            return None

        self._log_verbose("Refreshed access token (no login e-mail sent)")
        return response

    async def _proactive_refresh(self) -> None:
        self._log_verbose("Proactively refreshing access token")
        response = await self._try_refresh()
        if response is not None:
            self._set_tokens(response, from_refresh=True)

    def _set_tokens(self, response: TokenResponse, from_refresh: bool = False) -> None:
        self._session = TokenSession.from_token_response(response, _utcnow())
        self._log_verbose(
            "Tokens set from %s: access=%dm, refresh=%dm",
            "refresh" if from_refresh else "login",
            response.expires_in // 60,
            response.refresh_expires_in // 60,
        )
        self._schedule_save()
        self._schedule_refresh()

    def _clear_session(self, delete_persisted: bool = False) -> None:
        self._cancel_refresh_timer()
        self._cancel_pending_save()
        self._session = TokenSession()

        if delete_persisted and self._store is not None:
            try:
                self._store.delete()
            except OSError as e:
                logger.warning("Failed to clear persisted tokens: %s", e)

    def _schedule_refresh(self) -> None:
        self._cancel_refresh_timer()

        session = self._session
        if session.access_token_expiration is None or session.refresh_token_expiration is None:
            return

        delay = compute_refresh_delay(
            _utcnow(),
            session.access_token_expiration,
            session.refresh_token_expiration,
            self.config.refresh_ratio,
        )
        if delay is None:
            self._log_verbose("Refresh token expires first, not scheduling a refresh")
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # restored outside an event loop; armed on the first get_token()
            self._refresh_arm_deferred = True
            return

        self._refresh_handle = loop.call_later(delay, self._on_refresh_timer)
        self._log_verbose("Scheduled token refresh in %d minutes", delay // 60)

    def _cancel_refresh_timer(self) -> None:
        self._refresh_arm_deferred = False
        if self._refresh_handle is not None:
            self._refresh_handle.cancel()
            self._refresh_handle = None

    def _on_refresh_timer(self) -> None:
        self._refresh_handle = None
        if self._pending is not None and not self._pending.done():
            self._log_verbose("Authentication already in progress, skipping proactive refresh")
            return
        self._start_pending(self._proactive_refresh(), refresh_only=True)

    def _schedule_save(self) -> None:
        if self._store is None or self._session.refresh_token is None:
            return

        self._cancel_pending_save()
        loop = asyncio.get_running_loop()
        self._save_handle = loop.call_later(
            self.config.save_debounce_seconds, self._flush_save
        )

    def _cancel_pending_save(self) -> None:
        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None

    def _flush_save(self) -> None:
        self._save_handle = None
        session = self._session
        if self._store is None or session.refresh_token is None:
            return

        try:
            record = PersistedTokens.from_session(self._username, session)
            self._store.save(record.to_record())
        except (OSError, ValueError) as e:
            logger.warning("Failed to save tokens to storage: %s", e)

    def _restore(self) -> None:
        if self._store is None:
            return

        try:
            data = self._store.load()
            if data is None:
                self._log_verbose("No saved tokens found")
                return
            record = PersistedTokens.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Failed to restore tokens from storage: %s", e)
            return

        if record.username != self._username:
            self._log_verbose("Tokens in storage are for a different user, ignoring")
            return

        self._session = record.to_session()

        now = _utcnow()
        if self._session.refresh_token_expired(now):
            self._log_verbose("Restored refresh token has already expired")
            return

        self._log_verbose(
            "Restored tokens from storage (refresh token valid for %d more minutes)",
            (self._session.refresh_token_expiration - now).total_seconds() // 60,
        )
        self._schedule_refresh()
