"""Search backends.

Built-in backends:
  - eds: EBSCO Discovery Service (token-authenticated REST API)

Implement ``BackendInterface`` to connect another search service.
"""

from edsbackend.backend.base import BackendInterface

__all__ = ["BackendInterface"]
