"""EDS query translation — from generic queries and parameter bags to EDS requests.

Three steps, all deterministic:
  1. ``QueryBuilder.build()`` turns a ``Query`` into a ``ParamBag``
  2. ``flatten_params()`` collapses the bag to scalars, keeping the
     multi-valued EDS parameters as ordered lists
  3. ``SearchRequestModel`` renders the flattened options as an EDS JSON body
"""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import urlencode

from pydantic import BaseModel, Field

from edsbackend.models.query import ParamBag, Query

ARRAY_SETTINGS: tuple[str, ...] = ("query", "facets", "filters", "groupFilters", "rangeFilters", "limiters")

_BOOLEAN_OPERATORS = frozenset({"AND", "OR", "NOT"})
_FIELD_CODE = re.compile(r"^[A-Z][A-Z0-9]{0,3}$")


def page_number(offset: int, limit: int) -> int:
    """Return the 1-based EDS page holding *offset* for pages of *limit* records."""
    if limit > 0:
        return offset // limit + 1
    return 1


def flatten_params(params: ParamBag) -> dict[str, Any]:
    """Collapse a parameter bag into EDS search options.

    Names in ``ARRAY_SETTINGS`` keep their ordered list of values; every other
    name keeps only its first value.
    """
    options: dict[str, Any] = {}
    for name, values in params.items():
        if name in ARRAY_SETTINGS:
            options[name] = list(values)
        else:
            options[name] = values[0] if values else None
    return options


class QueryBuilder:
    """Builds EDS search parameters from a generic ``Query``.

    The EDS ``query`` parameter has the form
    ``<operator>,<fieldCode>:<terms>``; the field code is omitted when the
    query targets all fields.
    """

    ALL_FIELDS_HANDLERS = frozenset({"", "AllFields"})

    def build(self, query: Query | None) -> ParamBag:
        params = ParamBag()
        if query is None:
            return params
        terms = query.get_all_terms().strip()
        if not terms:
            return params

        handler = query.handler or ""
        operator = (query.operator or "AND").upper()
        if handler in self.ALL_FIELDS_HANDLERS:
            params.set("query", f"{operator},{terms}")
        else:
            params.set("query", f"{operator},{handler}:{terms}")
        return params


def _parse_query(value: str) -> dict[str, str]:
    """Parse ``AND,TI:solar`` into an EDS query object."""
    operator = "AND"
    rest = value
    head, sep, tail = value.partition(",")
    if sep and head.strip().upper() in _BOOLEAN_OPERATORS:
        operator = head.strip().upper()
        rest = tail

    entry: dict[str, str] = {"BooleanOperator": operator}
    code, sep, term = rest.partition(":")
    if sep and _FIELD_CODE.match(code.strip()):
        entry["FieldCode"] = code.strip()
        entry["Term"] = term.strip()
    else:
        entry["Term"] = rest.strip()
    return entry


def _parse_facet_filters(values: list[str]) -> list[dict[str, Any]]:
    """Parse ``<filterId>,<facetId>:<value>`` entries into EDS facet filters."""
    filters: list[dict[str, Any]] = []
    for index, value in enumerate(values, start=1):
        filter_id, sep, facet = value.partition(",")
        if not sep or not filter_id.strip().isdigit():
            filter_id, facet = str(index), value
        facet_id, _, facet_value = facet.partition(":")
        filters.append(
            {
                "FilterId": int(filter_id),
                "FacetValues": [{"Id": facet_id.strip(), "Value": facet_value.strip()}],
            }
        )
    return filters


def _parse_limiters(values: list[str]) -> list[dict[str, Any]]:
    """Parse ``<limiterId>:<value>[,<value>...]`` entries into EDS limiters."""
    limiters: list[dict[str, Any]] = []
    for value in values:
        limiter_id, _, raw = value.partition(":")
        limiters.append({"Id": limiter_id.strip(), "Values": [v.strip() for v in raw.split(",") if v.strip()]})
    return limiters


class SearchRequestModel(BaseModel):
    """An EDS search request built from flattened search options."""

    query: list[str] = Field(default_factory=list, description="Query entries (<operator>,<field>:<terms>)")
    filters: list[str] = Field(default_factory=list, description="Facet filters (<id>,<facet>:<value>)")
    facets: list[str] = Field(default_factory=list, description="Additional facet filters")
    group_filters: list[str] = Field(default_factory=list, alias="groupFilters")
    range_filters: list[str] = Field(default_factory=list, alias="rangeFilters")
    limiters: list[str] = Field(default_factory=list, description="Limiters (<id>:<value>)")
    expanders: str | None = Field(default=None, description="Comma-separated expander ids")
    sort: str | None = Field(default=None)
    search_mode: str = Field(default="all", alias="searchMode")
    view: str = Field(default="brief")
    include_facets: str = Field(default="y", alias="includeFacets")
    results_per_page: int = Field(default=20, ge=0, alias="resultsPerPage")
    page_number: int = Field(default=1, ge=1, alias="pageNumber")
    highlight: str = Field(default="y")
    actions: list[str] = Field(default_factory=list)

    model_config = {"populate_by_name": True}

    @classmethod
    def from_options(cls, options: dict[str, Any]) -> SearchRequestModel:
        """Build a request from ``flatten_params()`` output; unknown names are ignored."""
        known = {field.alias or name for name, field in cls.model_fields.items()} | set(cls.model_fields)
        data = {name: value for name, value in options.items() if name in known and value is not None}
        if isinstance(data.get("actions"), str):
            data["actions"] = [data["actions"]]
        return cls.model_validate(data)

    def to_request_body(self) -> dict[str, Any]:
        """Render the EDS Search JSON body."""
        criteria: dict[str, Any] = {
            "Queries": [_parse_query(q) for q in self.query],
            "SearchMode": self.search_mode,
            "IncludeFacets": self.include_facets,
        }
        facet_filters = _parse_facet_filters(self.filters + self.facets + self.group_filters)
        if facet_filters:
            criteria["FacetFilters"] = facet_filters
        limiters = _parse_limiters(self.limiters + self.range_filters)
        if limiters:
            criteria["Limiters"] = limiters
        if self.expanders:
            criteria["Expanders"] = [e.strip() for e in self.expanders.split(",") if e.strip()]
        if self.sort:
            criteria["Sort"] = self.sort

        body: dict[str, Any] = {
            "SearchCriteria": criteria,
            "RetrievalCriteria": {
                "View": self.view,
                "ResultsPerPage": self.results_per_page,
                "PageNumber": self.page_number,
                "Highlight": self.highlight,
            },
        }
        if self.actions:
            body["Actions"] = list(self.actions)
        return body

    def to_query_string(self) -> str:
        """Render the request as a GET-style query string (for tracing)."""
        return urlencode(self.model_dump(by_alias=True, exclude_none=True), doseq=True)
