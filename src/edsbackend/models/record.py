"""Record collection model — Search and retrieve results handed back to callers.

Raw EDS records are kept as dicts unless a record factory callback is
injected; turning them into display objects is the caller's concern.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


class RecordCollection(BaseModel):
    """Records returned by one backend operation."""

    total: int = Field(default=0, description="Total number of matching records")
    offset: int = Field(default=0, description="Offset of the first record in this collection")
    records: list[Any] = Field(default_factory=list, description="Records, mapped by the record factory")
    facets: list[dict[str, Any]] = Field(default_factory=list, description="Available facets, as returned by EDS")
    source_identifier: str | None = Field(default=None, description="Identifier of the backend that produced it")
    retrieved_at: datetime = Field(default_factory=lambda: datetime.now(UTC), description="Timestamp of retrieval")

    def __len__(self) -> int:
        return len(self.records)

    def first(self) -> Any | None:
        return self.records[0] if self.records else None


RecordFactory = Callable[[dict[str, Any]], Any]


class RecordCollectionFactory:
    """Builds ``RecordCollection`` objects from raw EDS response payloads.

    Understands both response shapes the backend produces:
      - Search: ``{"SearchResult": {"Statistics": ..., "Data": {"Records": [...]}}}``
      - Retrieve: ``{"Records": {...}}`` wrapping a single record

    Args:
        record_factory: Callback turning one raw record dict into a record
            object. Defaults to returning the dict unchanged.
    """

    def __init__(self, record_factory: RecordFactory | None = None) -> None:
        self._record_factory: RecordFactory = record_factory or (lambda raw: raw)

    def factory(self, response: dict[str, Any], offset: int = 0) -> RecordCollection:
        search_result = response.get("SearchResult") or {}
        if search_result:
            raw_records = (search_result.get("Data") or {}).get("Records") or []
            total = (search_result.get("Statistics") or {}).get("TotalHits", len(raw_records))
            facets = search_result.get("AvailableFacets") or []
        else:
            raw = response.get("Records") or []
            raw_records = [raw] if isinstance(raw, dict) else list(raw)
            total = len(raw_records)
            facets = []

        return RecordCollection(
            total=int(total or 0),
            offset=offset,
            records=[self._record_factory(record) for record in raw_records],
            facets=facets,
        )
