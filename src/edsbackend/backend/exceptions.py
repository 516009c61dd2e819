"""Backend exceptions.

Every error raised by the package is an ``EdsError`` tagged with an
``ErrorKind``. Remote failures also carry the numeric EDS error code, which
``invalidated_credential`` maps onto the credential that must be renewed.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Discriminator for ``EdsError`` variants."""

    AUTH_CONFIGURATION = "auth_configuration"
    INVALID_IDENTIFIER = "invalid_identifier"
    REMOTE_AUTH = "remote_auth"
    REMOTE_SESSION = "remote_session"
    REMOTE_API = "remote_api"
    TRANSPORT = "transport"
    BACKEND = "backend"


class CredentialAxis(str, Enum):
    """The credential an invalidation code points at."""

    AUTHENTICATION = "authentication"
    SESSION = "session"


AUTH_TOKEN_INVALID = 104
SESSION_TOKEN_INVALID = 108
SESSION_TOKEN_EXPIRED = 109

INVALIDATION_CODES: dict[int, CredentialAxis] = {
    AUTH_TOKEN_INVALID: CredentialAxis.AUTHENTICATION,
    SESSION_TOKEN_INVALID: CredentialAxis.SESSION,
    SESSION_TOKEN_EXPIRED: CredentialAxis.SESSION,
}


class EdsError(Exception):
    """Base exception for all edsbackend errors."""

    kind: ErrorKind = ErrorKind.BACKEND

    def __init__(self, message: str = "", *, code: int | None = None, description: str | None = None) -> None:
        super().__init__(message or description or self.kind.value)
        self.code = code
        self.description = description or message

    @property
    def invalidated_credential(self) -> CredentialAxis | None:
        """Credential reported invalid by the remote API, if any."""
        if self.code is None:
            return None
        return INVALIDATION_CODES.get(self.code)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, code={self.code!r}, description={self.description!r})"


class AuthConfigurationError(EdsError):
    """Raised when neither UID credentials nor IP authentication are configured."""

    kind = ErrorKind.AUTH_CONFIGURATION


class InvalidIdentifierError(EdsError):
    """Raised when a retrieval id is not of the form ``<dbId>,<accessionNumber>``."""

    kind = ErrorKind.INVALID_IDENTIFIER


class RemoteError(EdsError):
    """Base for failures reported by (or while talking to) the remote API."""


class RemoteAuthError(RemoteError):
    """Raised when the authentication service rejects the account credentials."""

    kind = ErrorKind.REMOTE_AUTH


class RemoteSessionError(RemoteError):
    """Raised when a session cannot be created."""

    kind = ErrorKind.REMOTE_SESSION


class RemoteApiError(RemoteError):
    """Raised when a search, retrieve or info request is rejected."""

    kind = ErrorKind.REMOTE_API


class TransportError(RemoteApiError):
    """Raised on network failures, timeouts and malformed responses. Never retried."""

    kind = ErrorKind.TRANSPORT


class BackendError(EdsError):
    """Wrapped failure surfaced to callers of the backend.

    Keeps the kind, code and description of the error it wraps so callers can
    diagnose failures without depending on the remote error shapes. The
    original exception is available as ``__cause__``.
    """

    def __init__(
        self,
        message: str = "",
        *,
        code: int | None = None,
        description: str | None = None,
        kind: ErrorKind = ErrorKind.BACKEND,
    ) -> None:
        super().__init__(message, code=code, description=description)
        self.kind = kind

    @classmethod
    def wrap(cls, error: Exception) -> BackendError:
        """Build a BackendError carrying the details of *error*.

        Callers raise the result ``from error`` to keep the chain.
        """
        if isinstance(error, BackendError):
            return error
        if isinstance(error, EdsError):
            return cls(str(error), code=error.code, description=error.description, kind=error.kind)
        return cls(str(error) or type(error).__name__)
