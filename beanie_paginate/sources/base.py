"""Document source protocol and helpers shared by the adapters."""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError
from pymongo import ASCENDING, DESCENDING

from beanie_paginate.core.exceptions import InvalidOptionsError
from beanie_paginate.options import Populate

SortSpec = list[tuple[str, int]]

_DIRECTIONS = {
    1: ASCENDING,
    -1: DESCENDING,
    "1": ASCENDING,
    "-1": DESCENDING,
    "asc": ASCENDING,
    "ascending": ASCENDING,
    "desc": DESCENDING,
    "descending": DESCENDING,
}


class FindQuery(Protocol):
    """Chainable page fetch. Each step returns the query itself."""

    def select(self, spec: Any) -> "FindQuery": ...

    def sort(self, spec: Any) -> "FindQuery": ...

    def skip(self, n: int) -> "FindQuery": ...

    def limit(self, n: int) -> "FindQuery": ...

    def lean(self, flag: bool = True) -> "FindQuery": ...

    def populate(self, spec: Populate | str) -> "FindQuery": ...

    async def to_list(self) -> list[Any]: ...


@runtime_checkable
class DocumentSource(Protocol):
    def find(self, filter: Any) -> FindQuery: ...

    async def count_documents(self, filter: Any) -> int: ...


def as_populate(spec: Populate | str | Mapping[str, Any]) -> Populate:
    if isinstance(spec, Populate):
        return spec
    if isinstance(spec, str):
        return Populate(path=spec)
    if isinstance(spec, Mapping):
        try:
            return Populate.model_validate(spec)
        except ValidationError as exc:
            raise InvalidOptionsError(f"Invalid populate spec: {dict(spec)!r}") from exc
    raise InvalidOptionsError(f"Invalid populate spec: {spec!r}")


def normalize_projection(select: Any) -> dict[str, Any] | None:
    """Turn ``"a -b"``, ``["a", "b"]`` or ``{"a": 1}`` into a Mongo projection."""
    if select is None or select == "":
        return None
    if isinstance(select, str):
        out: dict[str, Any] = {}
        for token in select.split():
            if token.startswith("-"):
                name, value = token[1:], 0
            elif token.startswith("+"):
                name, value = token[1:], 1
            else:
                name, value = token, 1
            if not name:
                raise InvalidOptionsError(f"Empty field in select: {select!r}")
            out[name] = value
        return out or None
    if isinstance(select, Mapping):
        return dict(select) or None
    if isinstance(select, (list, tuple, set, frozenset)):
        if not all(isinstance(f, str) and f for f in select):
            raise InvalidOptionsError(f"Invalid select: {select!r}")
        return {f: 1 for f in select} or None
    raise InvalidOptionsError(f"Invalid select: {select!r}")


def _direction(field: str, value: Any) -> int:
    key = value.lower() if isinstance(value, str) else value
    if isinstance(key, bool) or not isinstance(key, (int, str)) or key not in _DIRECTIONS:
        raise InvalidOptionsError(f"Invalid sort direction for {field!r}: {value!r}")
    return _DIRECTIONS[key]


def _sort_token(token: str) -> tuple[str, int]:
    if token.startswith("-"):
        name, direction = token[1:], DESCENDING
    elif token.startswith("+"):
        name, direction = token[1:], ASCENDING
    else:
        name, direction = token, ASCENDING
    if not name:
        raise InvalidOptionsError(f"Empty field in sort: {token!r}")
    return name, direction


def normalize_sort(sort: Any) -> SortSpec | None:
    """Turn ``"-year title"``, ``{"year": -1}`` or ``[("year", "desc")]`` into (field, direction) pairs."""
    if sort is None or sort == "":
        return None
    if isinstance(sort, str):
        return [_sort_token(t) for t in sort.split()] or None
    if isinstance(sort, Mapping):
        return [(str(k), _direction(str(k), v)) for k, v in sort.items()] or None
    if isinstance(sort, (list, tuple)):
        out: SortSpec = []
        for item in sort:
            if isinstance(item, str):
                out.append(_sort_token(item))
            elif isinstance(item, (list, tuple)) and len(item) == 2 and isinstance(item[0], str):
                out.append((item[0], _direction(item[0], item[1])))
            else:
                raise InvalidOptionsError(f"Invalid sort item: {item!r}")
        return out or None
    raise InvalidOptionsError(f"Invalid sort: {sort!r}")
