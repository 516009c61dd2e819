"""EDS connector — Thin async client for the EBSCO Discovery Service REST API.

Issues the raw remote operations and turns EDS error bodies into typed
exceptions. It keeps no credentials of its own; tokens are passed in on
every call and travel as headers.

API reference:
  POST {auth_url}                       (UIDAuth)   -> AuthToken, AuthTimeout
  GET  /edsapi/rest/CreateSession?profile=&guest=&org= -> SessionToken
  POST /edsapi/rest/Search                          -> SearchResult
  POST /edsapi/rest/Retrieve                        -> Record
  GET  /edsapi/rest/Info                            -> AvailableSearchCriteria, ...

Error bodies:
  EDS API:      {"ErrorNumber": "104", "ErrorDescription": "...", "DetailedErrorDescription": "..."}
  Auth service: {"ErrorCode": 1102, "Reason": "...", "AdditionalDetail": "..."}
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from edsbackend.backend.eds.query import SearchRequestModel
from edsbackend.backend.exceptions import (
    RemoteApiError,
    RemoteAuthError,
    RemoteError,
    RemoteSessionError,
    TransportError,
)

logger = logging.getLogger(__name__)

AUTH_TOKEN_HEADER = "x-authenticationToken"
SESSION_TOKEN_HEADER = "x-sessionToken"


class EdsConnector:
    """Async client for the EDS API.

    Args:
        base_url: EDS REST API base URL.
        auth_url: UID authentication endpoint.
        interface_id: Identifier reported to the auth service.
        timeout: HTTP request timeout in seconds.
        transport: Optional httpx transport (used by tests).
    """

    def __init__(
        self,
        base_url: str = "https://eds-api.ebscohost.com",
        auth_url: str = "https://eds-api.ebscohost.com/authservice/rest/UIDAuth",
        interface_id: str = "edsbackend",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth_url = auth_url
        self._interface_id = interface_id
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def initialize(self) -> None:
        """Initialize the HTTP client."""
        if self._client is not None:
            return
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            timeout=self._timeout,
            transport=self._transport,
        )
        logger.info("EDS connector initialized (base_url: %s, timeout: %ss)", self._base_url, self._timeout)

    async def shutdown(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> EdsConnector:
        await self.initialize()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.shutdown()

    # ── Remote operations ──

    async def authenticate(self, username: str, password: str, org_id: str | None = None) -> dict[str, Any]:
        """Obtain an authentication token for the account.

        Returns:
            Dict with ``AuthToken`` and ``AuthTimeout`` (seconds).

        Raises:
            RemoteAuthError: If the credentials are rejected.
        """
        body: dict[str, Any] = {
            "UserId": username,
            "Password": password,
            "InterfaceId": self._interface_id,
        }
        if org_id:
            body["orgid"] = org_id
        data = await self._request("POST", self._auth_url, RemoteAuthError, json=body)
        if not data.get("AuthToken"):
            raise RemoteAuthError("Authentication response carried no AuthToken")
        return data

    async def create_session(
        self,
        profile: str | None,
        is_guest: str = "y",
        auth_token: str | None = None,
        org_id: str | None = None,
    ) -> dict[str, Any]:
        """Open a new session for *profile*.

        Returns:
            Dict with ``SessionToken``.

        Raises:
            RemoteSessionError: If the session cannot be created.
        """
        params: dict[str, Any] = {"guest": is_guest}
        if profile:
            params["profile"] = profile
        if org_id:
            params["org"] = org_id
        data = await self._request(
            "GET",
            "/edsapi/rest/CreateSession",
            RemoteSessionError,
            params=params,
            headers=self._token_headers(auth_token),
        )
        if not data.get("SessionToken"):
            raise RemoteSessionError("CreateSession response carried no SessionToken")
        return data

    async def search(
        self,
        request: SearchRequestModel,
        auth_token: str | None,
        session_token: str | None,
    ) -> dict[str, Any]:
        """Run a search.

        Raises:
            RemoteApiError: If EDS rejects the request.
        """
        return await self._request(
            "POST",
            "/edsapi/rest/Search",
            RemoteApiError,
            json=request.to_request_body(),
            headers=self._token_headers(auth_token, session_token),
        )

    async def retrieve(
        self,
        an: str,
        db_id: str,
        highlight_terms: str | None,
        auth_token: str | None,
        session_token: str | None,
    ) -> dict[str, Any]:
        """Retrieve one record by database id and accession number.

        Raises:
            RemoteApiError: If EDS rejects the request.
        """
        body: dict[str, Any] = {"DbId": db_id, "An": an}
        if highlight_terms:
            body["HighlightTerms"] = highlight_terms
        data = await self._request(
            "POST",
            "/edsapi/rest/Retrieve",
            RemoteApiError,
            json=body,
            headers=self._token_headers(auth_token, session_token),
        )
        return data.get("Record", data)

    async def info(self, auth_token: str | None, session_token: str | None) -> dict[str, Any]:
        """Fetch the search criteria available to the session's profile.

        Raises:
            RemoteApiError: If EDS rejects the request.
        """
        return await self._request(
            "GET",
            "/edsapi/rest/Info",
            RemoteApiError,
            headers=self._token_headers(auth_token, session_token),
        )

    # ── Internals ──

    @staticmethod
    def _token_headers(auth_token: str | None, session_token: str | None = None) -> dict[str, str]:
        headers: dict[str, str] = {}
        if auth_token:
            headers[AUTH_TOKEN_HEADER] = auth_token
        if session_token:
            headers[SESSION_TOKEN_HEADER] = session_token
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        error_class: type[RemoteError],
        **kwargs: Any,
    ) -> dict[str, Any]:
        if not self._client:
            raise TransportError("EDS client not initialized.")

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"EDS request timed out after {self._timeout}s: {method} {url}") from e
        except httpx.RequestError as e:
            raise TransportError(f"EDS request failed: {e}") from e

        if response.is_error:
            raise _error_from_response(response, error_class)

        try:
            data = response.json()
        except ValueError as e:
            raise TransportError(f"EDS returned a malformed response ({response.status_code})") from e
        if not isinstance(data, dict):
            raise TransportError(f"EDS returned an unexpected payload type: {type(data).__name__}")
        return data


def _error_from_response(response: httpx.Response, error_class: type[RemoteError]) -> RemoteError:
    """Build a typed error from an EDS error response."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if not isinstance(body, dict):
        return error_class(
            f"EDS API error (HTTP {response.status_code}): {response.text[:200]}",
            description=f"HTTP {response.status_code}",
        )

    raw_code = body.get("ErrorNumber", body.get("ErrorCode"))
    description = body.get("ErrorDescription") or body.get("Reason") or f"HTTP {response.status_code}"
    detail = body.get("DetailedErrorDescription") or body.get("AdditionalDetail")

    try:
        code = int(raw_code) if raw_code is not None else None
    except (TypeError, ValueError):
        code = None

    message = f"EDS API error {code}: {description}" if code is not None else f"EDS API error: {description}"
    if detail:
        message = f"{message} ({detail})"
    logger.debug("EDS error response: status=%d, code=%s, description=%s", response.status_code, code, description)
    return error_class(message, code=code, description=description)
