"""Tests for the token manager."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from edsbackend.auth.credentials import CredentialCache
from edsbackend.auth.session import MemorySessionStore, SessionToken
from edsbackend.auth.tokens import TokenManager
from edsbackend.backend.exceptions import (
    AuthConfigurationError,
    BackendError,
    RemoteApiError,
    RemoteAuthError,
    RemoteSessionError,
)
from edsbackend.config.settings import AccountSettings

from conftest import FakeClock

# ── Authentication token ──


class TestAuthenticationToken:
    """Tests for get_authentication_token()."""

    async def test_cache_miss_authenticates_and_stores(
        self, tokens: TokenManager, connector: AsyncMock, credentials: CredentialCache, clock: FakeClock
    ) -> None:
        token = await tokens.get_authentication_token()

        assert token == "auth-new"
        connector.authenticate.assert_awaited_once_with("apiuser", "secret", "org-1")
        cached = await credentials.get()
        assert cached is not None
        assert cached.token == "auth-new"
        assert cached.expires_at == clock.now + 1800

    async def test_cache_hit_returns_cached_token(
        self, tokens: TokenManager, connector: AsyncMock, credentials: CredentialCache
    ) -> None:
        await credentials.store("auth-cached", 3600)

        assert await tokens.get_authentication_token() == "auth-cached"
        assert await tokens.get_authentication_token() == "auth-cached"
        connector.authenticate.assert_not_awaited()

    async def test_token_exactly_at_margin_is_still_used(
        self, tokens: TokenManager, connector: AsyncMock, credentials: CredentialCache
    ) -> None:
        await credentials.store("auth-cached", 300)

        assert await tokens.get_authentication_token() == "auth-cached"
        connector.authenticate.assert_not_awaited()

    async def test_token_inside_margin_is_renewed(
        self, tokens: TokenManager, connector: AsyncMock, credentials: CredentialCache
    ) -> None:
        await credentials.store("auth-cached", 299)

        assert await tokens.get_authentication_token() == "auth-new"
        connector.authenticate.assert_awaited_once()

    async def test_token_renewed_once_clock_passes_margin(
        self, tokens: TokenManager, connector: AsyncMock, credentials: CredentialCache, clock: FakeClock
    ) -> None:
        await credentials.store("auth-cached", 1800)
        clock.advance(1501)

        assert await tokens.get_authentication_token() == "auth-new"
        assert await tokens.get_authentication_token() == "auth-new"
        assert connector.authenticate.await_count == 1

    async def test_empty_cached_token_is_ignored(
        self, tokens: TokenManager, connector: AsyncMock, credentials: CredentialCache
    ) -> None:
        await credentials.store("", 3600)

        assert await tokens.get_authentication_token() == "auth-new"
        connector.authenticate.assert_awaited_once()

    async def test_force_refresh_always_authenticates(
        self, tokens: TokenManager, connector: AsyncMock, credentials: CredentialCache
    ) -> None:
        await credentials.store("auth-cached", 3600)

        assert await tokens.get_authentication_token(force_refresh=True) == "auth-new"
        assert await tokens.get_authentication_token(force_refresh=True) == "auth-new"
        assert connector.authenticate.await_count == 2

    @pytest.mark.parametrize("cached_timeout", [None, 10, 3600])
    async def test_ip_auth_never_authenticates(
        self,
        connector: AsyncMock,
        credentials: CredentialCache,
        session_store: MemorySessionStore,
        cached_timeout: int | None,
    ) -> None:
        if cached_timeout is not None:
            await credentials.store("auth-cached", cached_timeout)
        manager = TokenManager(connector, credentials, session_store, AccountSettings(ip_auth=True))

        assert await manager.get_authentication_token() is None
        assert await manager.get_authentication_token(force_refresh=True) is None
        connector.authenticate.assert_not_awaited()

    async def test_missing_credentials_raise_configuration_error(
        self, connector: AsyncMock, credentials: CredentialCache, session_store: MemorySessionStore
    ) -> None:
        manager = TokenManager(connector, credentials, session_store, AccountSettings(username="apiuser"))

        with pytest.raises(AuthConfigurationError, match="No EDS credentials"):
            await manager.get_authentication_token()
        connector.authenticate.assert_not_awaited()

    async def test_remote_rejection_propagates(self, tokens: TokenManager, connector: AsyncMock) -> None:
        connector.authenticate.side_effect = RemoteAuthError("bad password", code=1102)

        with pytest.raises(RemoteAuthError) as exc_info:
            await tokens.get_authentication_token()
        assert exc_info.value.code == 1102

    async def test_debug_logger_receives_token_values(
        self, connector: AsyncMock, credentials: CredentialCache, session_store: MemorySessionStore
    ) -> None:
        debug_logger = MagicMock()
        manager = TokenManager(
            connector,
            credentials,
            session_store,
            AccountSettings(username="apiuser", password="secret"),
            debug_logger=debug_logger,
        )

        await manager.get_authentication_token()

        traced = [c.args[0] % c.args[1:] for c in debug_logger.debug.call_args_list]
        assert any("apiuser" in line for line in traced)


# ── Session token ──


class TestSessionToken:
    """Tests for get_session_token()."""

    async def test_stored_session_is_reused(
        self, tokens: TokenManager, connector: AsyncMock, session_store: MemorySessionStore
    ) -> None:
        session_store.save_token(SessionToken(session_id="session-cached", profile_id="edsapi"))

        token = await tokens.get_session_token()

        assert token.session_id == "session-cached"
        connector.create_session.assert_not_awaited()
        connector.info.assert_not_awaited()

    async def test_new_session_fetches_info_exactly_once(
        self,
        tokens: TokenManager,
        connector: AsyncMock,
        session_store: MemorySessionStore,
        sample_info: dict,
    ) -> None:
        token = await tokens.get_session_token()

        assert token.session_id == "session-new"
        assert token.profile_id == "edsapi"
        assert token.search_criteria == sample_info
        connector.create_session.assert_awaited_once_with("edsapi", "y", "auth-new", "org-1")
        connector.info.assert_awaited_once_with("auth-new", "session-new")

        stored = session_store.load_token()
        assert stored is not None
        assert stored.session_id == "session-new"
        assert stored.search_criteria == sample_info

    async def test_force_refresh_creates_new_session(
        self, tokens: TokenManager, connector: AsyncMock, session_store: MemorySessionStore
    ) -> None:
        session_store.save_token(SessionToken(session_id="session-cached", profile_id="edsapi"))

        token = await tokens.get_session_token(force_refresh=True)

        assert token.session_id == "session-new"
        connector.create_session.assert_awaited_once()
        connector.info.assert_awaited_once()

    async def test_profile_override_skips_session_of_other_profile(
        self, tokens: TokenManager, connector: AsyncMock, session_store: MemorySessionStore
    ) -> None:
        session_store.save_token(SessionToken(session_id="session-cached", profile_id="edsapi"))

        token = await tokens.get_session_token(profile="other")

        assert token.profile_id == "other"
        assert connector.create_session.await_args.args[0] == "other"
        assert tokens.account.profile == "edsapi"

    async def test_session_creation_renews_auth_token_on_104(
        self, tokens: TokenManager, connector: AsyncMock, credentials: CredentialCache
    ) -> None:
        await credentials.store("auth-stale", 3600)
        connector.create_session.side_effect = [
            RemoteSessionError("Auth token invalid", code=104),
            {"SessionToken": "session-new"},
        ]

        token = await tokens.get_session_token()

        assert token.session_id == "session-new"
        assert connector.create_session.await_count == 2
        assert connector.create_session.await_args_list[0].args[2] == "auth-stale"
        assert connector.create_session.await_args_list[1].args[2] == "auth-new"
        connector.authenticate.assert_awaited_once()

    async def test_session_creation_other_errors_propagate(self, tokens: TokenManager, connector: AsyncMock) -> None:
        connector.create_session.side_effect = RemoteSessionError("Invalid profile", code=144)

        with pytest.raises(RemoteSessionError):
            await tokens.get_session_token()
        connector.info.assert_not_awaited()

    async def test_second_failure_after_renewal_is_wrapped(self, tokens: TokenManager, connector: AsyncMock) -> None:
        connector.create_session.side_effect = RemoteSessionError("Auth token invalid", code=104)

        with pytest.raises(BackendError) as exc_info:
            await tokens.get_session_token()
        assert exc_info.value.code == 104
        assert connector.create_session.await_count == 2

    async def test_info_failure_propagates(
        self, tokens: TokenManager, connector: AsyncMock, session_store: MemorySessionStore
    ) -> None:
        connector.info.side_effect = RemoteApiError("Unknown error", code=106)

        with pytest.raises(RemoteApiError):
            await tokens.get_session_token()
        assert session_store.load_token() is None

    async def test_session_without_criteria_is_not_reused(
        self, tokens: TokenManager, connector: AsyncMock, session_store: MemorySessionStore, sample_info: dict
    ) -> None:
        connector.create_session.side_effect = [{"SessionToken": "session-1"}, {"SessionToken": "session-2"}]
        connector.info.side_effect = [RemoteApiError("Unknown error", code=106), sample_info]

        with pytest.raises(RemoteApiError):
            await tokens.get_session_token()
        token = await tokens.get_session_token()

        assert token.session_id == "session-2"
        assert token.search_criteria == sample_info
        assert connector.create_session.await_count == 2
        assert connector.info.await_count == 2
        stored = session_store.load_token()
        assert stored is not None
        assert stored.search_criteria == sample_info

    async def test_invalidate_authentication_token_forces_authenticate(
        self, tokens: TokenManager, connector: AsyncMock, credentials: CredentialCache
    ) -> None:
        await credentials.store("auth-cached", 3600)

        await tokens.invalidate_authentication_token()

        assert await credentials.get() is None
        assert await tokens.get_authentication_token() == "auth-new"
        connector.authenticate.assert_awaited_once()

    async def test_invalidate_clears_store(self, tokens: TokenManager, session_store: MemorySessionStore) -> None:
        session_store.save_token(SessionToken(session_id="session-cached", profile_id="edsapi"))

        await tokens.invalidate_session_token()

        assert session_store.load_token() is None
