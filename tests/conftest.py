"""Shared test fixtures and configuration."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from edsbackend.auth.credentials import CredentialCache
from edsbackend.auth.session import MemorySessionStore, SessionToken
from edsbackend.auth.tokens import TokenManager
from edsbackend.backend.eds.backend import EdsBackend
from edsbackend.backend.eds.connector import EdsConnector
from edsbackend.cache.manager import CacheManager
from edsbackend.config.settings import AccountSettings, CacheSettings, Settings
from edsbackend.models.record import RecordCollectionFactory

NOW = 1_700_000_000.0


class FakeClock:
    """Settable clock returning epoch seconds."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with UID credentials."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        account={
            "username": "apiuser",
            "password": "secret",
            "profile": "edsapi",
            "org_id": "org-1",
        },
    )


@pytest.fixture
def account(settings: Settings) -> AccountSettings:
    return settings.account


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache() -> CacheManager:
    return CacheManager(CacheSettings(backend="memory"))


@pytest.fixture
def credentials(cache: CacheManager, clock: FakeClock) -> CredentialCache:
    return CredentialCache(cache, clock=clock)


@pytest.fixture
def session_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def sample_info() -> dict[str, Any]:
    """Trimmed Info response."""
    return {
        "AvailableSearchCriteria": {
            "AvailableSearchFields": [
                {"FieldCode": "TX", "Label": "All Text"},
                {"FieldCode": "TI", "Label": "Title"},
                {"FieldCode": "AU", "Label": "Author"},
            ],
            "AvailableLimiters": [{"Id": "FT", "Label": "Full Text", "Type": "select"}],
        },
        "ViewResultSettings": {"ResultsPerPage": 20, "ResultListView": "brief"},
    }


@pytest.fixture
def sample_search_response() -> dict[str, Any]:
    """Trimmed Search response."""
    return {
        "SearchRequest": {"SearchCriteria": {"Queries": [{"Term": "solar nowcasting"}]}},
        "SearchResult": {
            "Statistics": {"TotalHits": 1234, "TotalSearchTime": 87},
            "Data": {
                "RecordFormat": "EP Display",
                "Records": [
                    {
                        "ResultId": 1,
                        "Header": {"DbId": "a9h", "DbLabel": "Academic Search Premier", "An": "123456"},
                        "PLink": "https://search.ebscohost.com/login.aspx?direct=true&db=a9h&AN=123456",
                        "Items": [{"Name": "Title", "Label": "Title", "Data": "Solar nowcasting with CNNs"}],
                    },
                    {
                        "ResultId": 2,
                        "Header": {"DbId": "edsarx", "DbLabel": "arXiv", "An": "edsarx.2401.0001"},
                        "Items": [{"Name": "Title", "Label": "Title", "Data": "Irradiance forecasting"}],
                    },
                ],
            },
            "AvailableFacets": [{"Id": "SourceType", "Label": "Source Type", "AvailableFacetValues": []}],
        },
    }


@pytest.fixture
def sample_record() -> dict[str, Any]:
    """Trimmed Retrieve response record."""
    return {
        "Header": {"DbId": "123", "An": "ABC456"},
        "Items": [{"Name": "Title", "Data": "Retrieved record"}],
    }


@pytest.fixture
def connector(sample_info: dict[str, Any]) -> AsyncMock:
    """Connector double with successful defaults for every remote operation."""
    mock = AsyncMock(spec=EdsConnector)
    mock.authenticate.return_value = {"AuthToken": "auth-new", "AuthTimeout": 1800}
    mock.create_session.return_value = {"SessionToken": "session-new"}
    mock.info.return_value = sample_info
    mock.search.return_value = {}
    mock.retrieve.return_value = {}
    return mock


@pytest.fixture
def tokens(
    connector: AsyncMock,
    credentials: CredentialCache,
    session_store: MemorySessionStore,
    account: AccountSettings,
) -> TokenManager:
    return TokenManager(connector, credentials, session_store, account)


@pytest.fixture
async def primed_tokens(
    tokens: TokenManager,
    credentials: CredentialCache,
    session_store: MemorySessionStore,
) -> TokenManager:
    """Token manager with a valid cached auth token and an existing session."""
    await credentials.store("auth-cached", 3600)
    session_store.save_token(SessionToken(session_id="session-cached", profile_id="edsapi"))
    return tokens


@pytest.fixture
def backend(connector: AsyncMock, tokens: TokenManager) -> EdsBackend:
    return EdsBackend(connector, tokens, RecordCollectionFactory())
