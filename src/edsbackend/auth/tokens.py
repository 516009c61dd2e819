"""Token Manager — Obtains, validates and renews the two EDS credentials.

Two independent credentials are involved:
  1. The authentication token, shared process-wide through the
     ``CredentialCache`` and renewed when it is within the safety margin of
     its expiry (or on demand).
  2. The session token, kept in the caller's ``SessionStore`` and bound to
     the profile it was created for. Creating a session always fetches the
     profile's search criteria (Info) before the token is handed out.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from edsbackend.auth.credentials import DEFAULT_SAFETY_MARGIN, CredentialCache
from edsbackend.auth.session import SessionStore, SessionToken
from edsbackend.backend.eds.connector import EdsConnector
from edsbackend.backend.exceptions import (
    AuthConfigurationError,
    BackendError,
    CredentialAxis,
    EdsError,
)
from edsbackend.config.settings import AccountSettings

_T = TypeVar("_T")

logger = logging.getLogger(__name__)


class TokenManager:
    """Owns the lifecycle of the authentication and session tokens.

    Args:
        connector: EDS connector used for authenticate/create-session/info.
        credentials: Shared authentication token cache.
        session_store: Store of the caller session this manager serves.
        account: Account identity to authenticate with.
        safety_margin: Seconds before expiry at which a cached token is renewed.
        debug_logger: Optional logger receiving token values. Nothing is
            traced without it.
    """

    def __init__(
        self,
        connector: EdsConnector,
        credentials: CredentialCache,
        session_store: SessionStore,
        account: AccountSettings,
        safety_margin: int = DEFAULT_SAFETY_MARGIN,
        debug_logger: Any = None,
    ) -> None:
        self._connector = connector
        self._credentials = credentials
        self._session_store = session_store
        self._account = account
        self._safety_margin = safety_margin
        self._debug_logger = debug_logger

    @property
    def account(self) -> AccountSettings:
        return self._account

    @property
    def session_store(self) -> SessionStore:
        return self._session_store

    # ── Authentication token ──

    async def get_authentication_token(self, force_refresh: bool = False) -> str | None:
        """Return a usable authentication token, authenticating if needed.

        Args:
            force_refresh: Discard the cached token and authenticate anew.

        Returns:
            The token, or None when IP authentication is configured.

        Raises:
            AuthConfigurationError: If no UID credentials are configured.
            RemoteAuthError: If the auth service rejects the credentials.
        """
        if self._account.ip_auth:
            return None

        if force_refresh:
            await self._credentials.clear()

        cached = await self._credentials.get()
        if cached is not None:
            self._trace("Cached authentication data: %s, expiration time: %s", cached.token, cached.expires_at)
            if cached.is_usable(self._credentials.now(), self._safety_margin):
                return cached.token

        if not self._account.has_credentials:
            raise AuthConfigurationError(
                "No EDS credentials configured. Set account.username and account.password, "
                "or enable account.ip_auth."
            )

        self._trace(
            "Calling authenticate with username: %s, password: %s, orgid: %s",
            self._account.username,
            self._account.password,
            self._account.org_id,
        )
        result = await self._connector.authenticate(
            self._account.username or "",
            self._account.password or "",
            self._account.org_id,
        )
        entry = await self._credentials.store(result["AuthToken"], float(result.get("AuthTimeout") or 0))
        logger.info("Obtained new EDS authentication token (expires at %d)", int(entry.expires_at))
        return entry.token

    async def invalidate_authentication_token(self) -> None:
        await self._credentials.clear()

    # ── Session token ──

    def effective_profile(self, profile: str | None = None) -> str | None:
        return profile or self._account.profile

    async def get_session_token(self, force_refresh: bool = False, profile: str | None = None) -> SessionToken:
        """Return the caller's session token, creating a session if needed.

        Args:
            force_refresh: Create a new session regardless of the stored one.
            profile: Profile override for this call only. A stored session
                created for another profile is not reused.

        Returns:
            The session token, with the profile's search criteria attached.
        """
        wanted_profile = self.effective_profile(profile)
        if not force_refresh:
            stored = self._session_store.load_token()
            if stored is not None and stored.profile_id == wanted_profile:
                self._trace("SessionToken to use: %s", stored.session_id)
                return stored

        session_id = await self._create_session(wanted_profile)
        token = SessionToken(session_id=session_id, profile_id=wanted_profile)
        self._session_store.save_token(token)

        try:
            token.search_criteria = await self._fetch_search_criteria(session_id)
        except Exception:
            # A session without search criteria must not be reused.
            self._session_store.clear_token()
            raise
        self._session_store.save_token(token)

        logger.info("Created EDS session for profile %s", wanted_profile)
        self._trace("SessionToken to use: %s", session_id)
        return token

    async def invalidate_session_token(self) -> None:
        self._session_store.clear_token()

    async def _create_session(self, profile: str | None) -> str:
        async def create(auth_token: str | None) -> dict[str, Any]:
            return await self._connector.create_session(
                profile,
                self._account.guest,
                auth_token,
                self._account.org_id,
            )

        result = await self.call_with_auth_retry(create)
        return str(result["SessionToken"])

    async def _fetch_search_criteria(self, session_id: str) -> dict[str, Any]:
        async def info(auth_token: str | None) -> dict[str, Any]:
            return await self._connector.info(auth_token, session_id)

        return await self.call_with_auth_retry(info)

    async def call_with_auth_retry(self, operation: Callable[[str | None], Awaitable[_T]]) -> _T:
        """Run *operation* with the authentication token, renewing it once on code 104.

        Errors from the first attempt other than an invalid authentication
        token propagate unchanged; any failure after the renewal is wrapped in
        ``BackendError``.
        """
        auth_token = await self.get_authentication_token()
        try:
            return await operation(auth_token)
        except EdsError as e:
            if e.invalidated_credential is not CredentialAxis.AUTHENTICATION:
                raise
            logger.info("EDS reported an invalid authentication token (code %s), renewing", e.code)

        try:
            auth_token = await self.get_authentication_token(force_refresh=True)
            return await operation(auth_token)
        except Exception as e:
            raise BackendError.wrap(e) from e

    def _trace(self, msg: str, *args: Any) -> None:
        if self._debug_logger is not None:
            self._debug_logger.debug(msg, *args)
