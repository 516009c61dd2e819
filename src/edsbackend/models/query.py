"""Query and backend parameter models."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from pydantic import BaseModel, Field


class Query(BaseModel):
    """A generic search query handed to a backend."""

    terms: str = Field(default="", description="Query terms as typed by the user")
    handler: str | None = Field(
        default=None,
        description="Field code to search in (e.g. 'TI', 'AU'); None searches all fields",
    )
    operator: str = Field(default="AND", description="Boolean operator joining this query to others")

    def get_all_terms(self) -> str:
        return self.terms


class ParamBag:
    """Ordered multi-valued parameter collection.

    Each name maps to a list of values, in insertion order. Backends use it to
    carry query-builder output and caller-supplied parameters side by side.

    Example:
        >>> bag = ParamBag({"limiters": ["FT:y"]})
        >>> bag.add("limiters", "RV:y")
        >>> bag.get("limiters")
        ['FT:y', 'RV:y']
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._params: dict[str, list[Any]] = {}
        for name, value in (initial or {}).items():
            self.set(name, value)

    def get(self, name: str) -> list[Any] | None:
        values = self._params.get(name)
        return list(values) if values is not None else None

    def get_first(self, name: str, default: Any = None) -> Any:
        values = self._params.get(name)
        return values[0] if values else default

    def set(self, name: str, value: Any) -> None:
        """Replace all values of *name*."""
        if isinstance(value, (list, tuple)):
            self._params[name] = list(value)
        else:
            self._params[name] = [value]

    def add(self, name: str, value: Any) -> None:
        """Append *value* to the values of *name*."""
        if isinstance(value, (list, tuple)):
            self._params.setdefault(name, []).extend(value)
        else:
            self._params.setdefault(name, []).append(value)

    def merge_with(self, other: ParamBag) -> None:
        """Append every value of *other* to this bag, name by name."""
        for name, values in other.items():
            self.add(name, values)

    def items(self) -> Iterable[tuple[str, list[Any]]]:
        return ((name, list(values)) for name, values in self._params.items())

    def request(self) -> list[str]:
        """Render the bag as ``name=value`` pairs (one per value)."""
        return [f"{name}={value}" for name, values in self._params.items() for value in values]

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __contains__(self, name: object) -> bool:
        return name in self._params

    def __repr__(self) -> str:
        return f"ParamBag({self._params!r})"
