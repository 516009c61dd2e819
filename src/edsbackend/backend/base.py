"""Base backend — Abstract interface for search backends.

A backend is responsible for:
  1. Executing search queries against its service
  2. Retrieving individual records
  3. Wrapping results in ``RecordCollection`` objects tagged with its
     source identifier
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from edsbackend.models.query import ParamBag, Query
from edsbackend.models.record import RecordCollection, RecordCollectionFactory


class BackendInterface(ABC):
    """Abstract base class for search backends.

    All backends must implement:
      - search(): Execute a query and return a record collection
      - retrieve(): Fetch a single record by identifier

    Args:
        collection_factory: Factory building record collections from raw
            responses.
        identifier: Source identifier injected into every collection.
    """

    def __init__(self, collection_factory: RecordCollectionFactory, identifier: str | None = None) -> None:
        self._collection_factory = collection_factory
        self._identifier = identifier

    @property
    def identifier(self) -> str | None:
        """Source identifier of this backend (e.g., 'EDS')."""
        return self._identifier

    @property
    def collection_factory(self) -> RecordCollectionFactory:
        return self._collection_factory

    async def initialize(self) -> None:
        """Prepare connections. Called once before first use."""

    async def shutdown(self) -> None:
        """Release connections."""

    @abstractmethod
    async def search(
        self,
        query: Query | None,
        offset: int,
        limit: int,
        params: ParamBag | None = None,
    ) -> RecordCollection:
        """Execute a search query.

        Args:
            query: The search query.
            offset: Index of the first record to return.
            limit: Maximum number of records to return.
            params: Backend-specific parameters.

        Returns:
            The matching records.
        """

    @abstractmethod
    async def retrieve(self, id: str, params: ParamBag | None = None) -> RecordCollection:
        """Retrieve a single record.

        Args:
            id: The record identifier.
            params: Backend-specific parameters.

        Returns:
            A collection holding the record.
        """

    def create_record_collection(self, response: dict[str, Any], offset: int = 0) -> RecordCollection:
        """Build a collection from a raw response and tag it with the source identifier."""
        collection = self._collection_factory.factory(response, offset=offset)
        collection.source_identifier = self._identifier
        return collection
