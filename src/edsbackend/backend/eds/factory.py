"""EDS backend factory — Wires shared and per-session collaborators together.

The factory owns the process-wide pieces (connector, cache, credential
cache) and hands out one ``EdsBackend`` per caller session, each with its
own ``SessionStore``.

Example:
    >>> factory = EdsBackendFactory(Settings())
    >>> await factory.initialize()
    >>> backend = factory.create(MemorySessionStore())
    >>> results = await backend.search(Query(terms="rag"), offset=0, limit=20)
    >>> await factory.shutdown()
"""

from __future__ import annotations

import logging

from edsbackend.auth.credentials import CredentialCache
from edsbackend.auth.session import MemorySessionStore, SessionStore
from edsbackend.auth.tokens import TokenManager
from edsbackend.backend.eds.backend import SOURCE_IDENTIFIER, EdsBackend
from edsbackend.backend.eds.connector import EdsConnector
from edsbackend.backend.eds.query import QueryBuilder
from edsbackend.cache.manager import CacheManager
from edsbackend.config.settings import Settings
from edsbackend.models.record import RecordCollectionFactory, RecordFactory
from edsbackend.observability.logging import get_debug_logger

logger = logging.getLogger(__name__)


class EdsBackendFactory:
    """Creates EDS backends from settings.

    Args:
        settings: Application settings.
        cache: Shared cache manager. Built from ``settings.cache`` if omitted.
        connector: Shared connector. Built from ``settings.api`` if omitted.
        record_factory: Callback mapping raw records for every collection.
    """

    def __init__(
        self,
        settings: Settings,
        cache: CacheManager | None = None,
        connector: EdsConnector | None = None,
        record_factory: RecordFactory | None = None,
    ) -> None:
        self.settings = settings
        self.cache = cache or CacheManager(settings.cache)
        self.connector = connector or EdsConnector(
            base_url=settings.api.base_url,
            auth_url=settings.api.auth_url,
            interface_id=settings.api.interface_id,
            timeout=settings.api.timeout,
        )
        self.credentials = CredentialCache(self.cache)
        self._record_factory = record_factory
        self._debug_logger = get_debug_logger(settings.observability)

    async def initialize(self) -> None:
        """Connect the cache and the HTTP client."""
        await self.cache.initialize()
        await self.connector.initialize()
        logger.info("EDS backend factory initialized (cache: %s)", self.settings.cache.backend)

    async def shutdown(self) -> None:
        await self.connector.shutdown()
        await self.cache.shutdown()

    def create_token_manager(self, session_store: SessionStore) -> TokenManager:
        return TokenManager(
            connector=self.connector,
            credentials=self.credentials,
            session_store=session_store,
            account=self.settings.account,
            safety_margin=self.settings.api.token_safety_margin,
            debug_logger=self._debug_logger,
        )

    def create_query_builder(self) -> QueryBuilder:
        return QueryBuilder()

    def create_record_collection_factory(self) -> RecordCollectionFactory:
        return RecordCollectionFactory(self._record_factory)

    def create(self, session_store: SessionStore | None = None) -> EdsBackend:
        """Create a backend serving one caller session.

        Args:
            session_store: The caller's session store. A fresh in-memory store
                is used when omitted.
        """
        return EdsBackend(
            connector=self.connector,
            tokens=self.create_token_manager(session_store or MemorySessionStore()),
            collection_factory=self.create_record_collection_factory(),
            query_builder=self.create_query_builder(),
            identifier=SOURCE_IDENTIFIER,
            debug_logger=self._debug_logger,
        )
