"""Session store — per-caller storage for the EDS session token.

A session store belongs to one caller session (a web session, a CLI run, a
worker job). It is handed to the ``TokenManager`` explicitly; nothing in the
package keeps session state globally.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

SESSION_ID_KEY = "sessionID"
PROFILE_ID_KEY = "profileID"
INFO_KEY = "info"


class SessionToken(BaseModel):
    """A session token and the profile it was created against."""

    session_id: str = Field(description="Opaque session token value")
    profile_id: str | None = Field(default=None, description="Profile the session was created for")
    search_criteria: dict[str, Any] = Field(
        default_factory=dict,
        description="Info payload describing the search fields and limiters of the profile",
    )


class SessionStore(ABC):
    """Key/value store scoped to one caller session."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the value stored under *key*, or None."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key* if present."""

    def load_token(self) -> SessionToken | None:
        """Return the stored session token, or None if there is none."""
        session_id = self.get(SESSION_ID_KEY)
        if not session_id:
            return None
        return SessionToken(
            session_id=session_id,
            profile_id=self.get(PROFILE_ID_KEY),
            search_criteria=self.get(INFO_KEY) or {},
        )

    def save_token(self, token: SessionToken) -> None:
        self.set(SESSION_ID_KEY, token.session_id)
        self.set(PROFILE_ID_KEY, token.profile_id)
        self.set(INFO_KEY, token.search_criteria)

    def clear_token(self) -> None:
        for key in (SESSION_ID_KEY, PROFILE_ID_KEY, INFO_KEY):
            self.delete(key)


class MemorySessionStore(SessionStore):
    """Dict-backed session store.

    Args:
        data: Optional mapping to store values in, e.g. a web framework's
            session dict. A fresh dict is used when omitted.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data if data is not None else {}

    def get(self, key: str) -> Any | None:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
