"""EDS backend — Search, retrieve and info against the EBSCO Discovery Service.

Combines the query builder, the connector and the retry coordinator. All
collaborators are injected; see ``EdsBackendFactory`` for the wiring used
in applications.

Usage::

    backend = EdsBackend(connector, tokens, RecordCollectionFactory())
    results = await backend.search(Query(terms="solar nowcasting"), offset=0, limit=20)
    record = await backend.retrieve("a9h,123456")
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from edsbackend.auth.tokens import TokenManager
from edsbackend.backend.base import BackendInterface
from edsbackend.backend.eds.connector import EdsConnector
from edsbackend.backend.eds.query import QueryBuilder, SearchRequestModel, flatten_params, page_number
from edsbackend.backend.eds.retry import RetryCoordinator
from edsbackend.backend.exceptions import BackendError, InvalidIdentifierError
from edsbackend.models.query import ParamBag, Query
from edsbackend.models.record import RecordCollection, RecordCollectionFactory

logger = logging.getLogger(__name__)

SOURCE_IDENTIFIER = "EDS"
ID_SEPARATOR = ","


def split_record_id(id: str) -> tuple[str, str]:
    """Split ``<dbId>,<accessionNumber>`` at the first separator.

    Raises:
        InvalidIdentifierError: If the separator is missing or either part is empty.
    """
    db_id, sep, an = id.partition(ID_SEPARATOR)
    if not sep or not db_id or not an:
        raise InvalidIdentifierError(f"Retrieval id is not in the correct format: {id!r}")
    return db_id, an


class EdsBackend(BackendInterface):
    """Search backend for the EDS API.

    Args:
        connector: Raw EDS API client.
        tokens: Token manager for the caller session this backend serves.
        collection_factory: Factory building record collections.
        query_builder: Builder turning queries into EDS parameters.
        identifier: Source identifier injected into collections.
        debug_logger: Optional logger receiving token values and request
            parameters. Nothing is traced without it.
    """

    def __init__(
        self,
        connector: EdsConnector,
        tokens: TokenManager,
        collection_factory: RecordCollectionFactory,
        query_builder: QueryBuilder | None = None,
        identifier: str = SOURCE_IDENTIFIER,
        debug_logger: Any = None,
    ) -> None:
        super().__init__(collection_factory, identifier)
        self._connector = connector
        self._tokens = tokens
        self._query_builder = query_builder or QueryBuilder()
        self._retry = RetryCoordinator(tokens)
        self._debug_logger = debug_logger

    @property
    def query_builder(self) -> QueryBuilder:
        return self._query_builder

    @property
    def tokens(self) -> TokenManager:
        return self._tokens

    async def initialize(self) -> None:
        await self._connector.initialize()

    async def shutdown(self) -> None:
        await self._connector.shutdown()

    async def search(
        self,
        query: Query | None,
        offset: int,
        limit: int,
        params: ParamBag | None = None,
    ) -> RecordCollection:
        """Run a search and return one page of records.

        Args:
            query: The search query (None searches with params only).
            offset: Index of the first record; non-negative.
            limit: Page size; non-negative. ``0`` always requests page 1.
            params: Extra EDS parameters merged over the builder output.

        Returns:
            The page of records.

        Raises:
            ValueError: If offset or limit is negative.
            AuthConfigurationError: If no credentials are configured.
            BackendError: If the parameters are invalid or the search fails.
        """
        if offset < 0 or limit < 0:
            raise ValueError(f"offset and limit must be non-negative (offset={offset}, limit={limit})")

        self._trace(
            "Query: %s, Limit: %d, Offset: %d, Params: %s",
            query.get_all_terms() if query else "",
            limit,
            offset,
            "&".join(params.request()) if params else "",
        )

        request_params = self._query_builder.build(query)
        if params is not None:
            request_params.merge_with(params)
        request_params.set("resultsPerPage", limit)
        request_params.set("pageNumber", page_number(offset, limit))

        try:
            search_model = SearchRequestModel.from_options(flatten_params(request_params))
        except ValidationError as e:
            raise BackendError(f"Invalid search parameters: {e}") from e
        self._trace("Search Model query string: %s", search_model.to_query_string())

        async def run(auth_token: str | None, session_token: str) -> dict[str, Any]:
            self._trace("Authentication Token: %s, SessionToken: %s", auth_token, session_token)
            return await self._connector.search(search_model, auth_token, session_token)

        response = await self._retry.run(run, name="search")
        return self.create_record_collection(response, offset=offset)

    async def retrieve(self, id: str, params: ParamBag | None = None) -> RecordCollection:
        """Retrieve one record by ``<dbId>,<accessionNumber>``.

        ``params`` may carry ``profile`` (session profile for this call only)
        and ``highlight`` (terms to highlight in the record).

        Raises:
            InvalidIdentifierError: If *id* is malformed. No request is made.
            AuthConfigurationError: If no credentials are configured.
            BackendError: If the retrieval fails.
        """
        db_id, an = split_record_id(id)
        profile = params.get_first("profile") if params else None
        highlight_terms = params.get_first("highlight") if params else None

        async def run(auth_token: str | None, session_token: str) -> dict[str, Any]:
            self._trace("Retrieve dbId: %s, an: %s, SessionToken: %s", db_id, an, session_token)
            return await self._connector.retrieve(an, db_id, highlight_terms, auth_token, session_token)

        response = await self._retry.run(run, name="retrieve", profile=profile)
        return self.create_record_collection({"Records": response})

    async def get_info(self, session_token: str | None = None) -> dict[str, Any]:
        """Fetch the search criteria available to a session.

        Args:
            session_token: Session to query. Defaults to the caller's session
                (created if needed). An explicit token is never renewed.

        Raises:
            AuthConfigurationError: If no credentials are configured.
            BackendError: If the request fails.
        """

        async def run(auth_token: str | None, session: str) -> dict[str, Any]:
            return await self._connector.info(auth_token, session)

        return await self._retry.run(run, name="info", session_token=session_token)

    def _trace(self, msg: str, *args: Any) -> None:
        if self._debug_logger is not None:
            self._debug_logger.debug(msg, *args)
