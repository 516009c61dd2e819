"""Retry Coordinator — Expiry detection and single retry around EDS operations.

Every outward operation runs through ``RetryCoordinator.run``:

  1. Fetch the session token, then the authentication token (cache hits
     preferred).
  2. Execute the operation.
  3. If EDS reports an invalid credential (104: authentication,
     108/109: session), renew that one credential and execute once more.
  4. Anything else, or a second failure, surfaces as ``BackendError``.

Never more than one retry. A session renewal may itself renew the
authentication token (CreateSession answering 104), so the authentication
token is re-read from the cache after every session fetch.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from edsbackend.auth.tokens import TokenManager
from edsbackend.backend.exceptions import (
    AuthConfigurationError,
    BackendError,
    CredentialAxis,
    EdsError,
)

_T = TypeVar("_T")

Operation = Callable[[str | None, str], Awaitable[_T]]
"""An EDS call taking ``(auth_token, session_token)``."""

logger = logging.getLogger(__name__)


class RetryCoordinator:
    """Applies the renew-and-retry-once policy to EDS operations.

    Args:
        tokens: Token manager supplying and renewing credentials.
    """

    def __init__(self, tokens: TokenManager) -> None:
        self._tokens = tokens

    async def run(
        self,
        operation: Operation[_T],
        *,
        name: str = "operation",
        profile: str | None = None,
        session_token: str | None = None,
    ) -> _T:
        """Execute *operation* with valid tokens.

        Args:
            operation: Coroutine function called with ``(auth_token, session_token)``.
            name: Operation name used in log messages.
            profile: Profile override for a session created during this call.
            session_token: Pin the session token. A pinned session is never
                renewed, so 108/109 propagate as ``BackendError``.

        Returns:
            Whatever *operation* returns.

        Raises:
            AuthConfigurationError: If no credentials are configured.
            BackendError: For every other failure.
        """
        try:
            if session_token is None:
                session_token = await self._session_id(force_refresh=False, profile=profile)
                pinned = False
            else:
                pinned = True
            # Session creation may have renewed the authentication token.
            auth_token = await self._tokens.get_authentication_token()
        except AuthConfigurationError:
            raise
        except Exception as e:
            raise BackendError.wrap(e) from e

        try:
            return await operation(auth_token, session_token)
        except AuthConfigurationError:
            raise
        except EdsError as e:
            axis = e.invalidated_credential
            if axis is None or (axis is CredentialAxis.SESSION and pinned):
                logger.debug("EDS %s failed without retry: %r", name, e)
                raise BackendError.wrap(e) from e
            logger.info("EDS %s reported an invalid %s token (code %s), renewing and retrying", name, axis.value, e.code)
        except Exception as e:
            raise BackendError.wrap(e) from e

        try:
            if axis is CredentialAxis.AUTHENTICATION:
                auth_token = await self._tokens.get_authentication_token(force_refresh=True)
            else:
                session_token = await self._session_id(force_refresh=True, profile=profile)
                auth_token = await self._tokens.get_authentication_token()
            return await operation(auth_token, session_token)
        except Exception as e:
            logger.warning("EDS %s failed after renewing the %s token: %s", name, axis.value, e)
            raise BackendError.wrap(e) from e

    async def _session_id(self, force_refresh: bool, profile: str | None) -> str:
        token = await self._tokens.get_session_token(force_refresh=force_refresh, profile=profile)
        return token.session_id
