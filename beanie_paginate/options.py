"""Pagination options, skip-position variants and the merge-over-defaults step."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from beanie_paginate.core.exceptions import InvalidOptionsError


class Populate(BaseModel):
    """One relation to expand on each fetched record.

    ``collection`` names the referenced collection when the field holds bare
    ids instead of DBRefs; ``select`` projects the referenced documents.
    Dotted paths walk into lists of subdocuments (``comments.author``).
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    path: str = Field(min_length=1)
    select: Any = None
    collection: str | None = None


class PaginateOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True, arbitrary_types_allowed=True)

    select: Any = None
    sort: Any = None
    populate: list[Populate] | None = None
    lean: bool = False
    lean_with_id: bool = Field(default=True, alias="leanWithId")
    offset: int | None = Field(default=None, ge=0)
    page: int | None = Field(default=None, ge=1)
    limit: int | None = Field(default=None, ge=1)

    @field_validator("populate", mode="before")
    @classmethod
    def _as_populate_list(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, (str, Populate, Mapping)):
            v = [v]
        if not isinstance(v, (list, tuple)):
            return v
        out = []
        for item in v:
            if isinstance(item, str):
                # "author comments" expands to two paths
                out.extend(Populate(path=p) for p in item.split())
            else:
                out.append(item)
        return out

    @classmethod
    def parse(cls, value: "PaginateOptions | Mapping[str, Any] | None") -> "PaginateOptions":
        """Accept a model, a mapping (snake_case or camelCase keys) or None."""
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        try:
            return cls.model_validate(value)
        except ValidationError as exc:
            raise InvalidOptionsError(
                details={"errors": exc.errors(include_url=False, include_context=False, include_input=False)},
            ) from exc

    @classmethod
    def merged(cls, defaults: "PaginateOptions", overrides: "PaginateOptions") -> "PaginateOptions":
        """Shallow merge; keys explicitly set on ``overrides`` win."""
        update = {name: getattr(overrides, name) for name in overrides.model_fields_set}
        return defaults.model_copy(update=update)


@dataclass(frozen=True)
class Offset:
    value: int

    def skip(self, limit: int) -> int:
        return self.value


@dataclass(frozen=True)
class PageNumber:
    value: int

    def skip(self, limit: int) -> int:
        return (self.value - 1) * limit


Position = Offset | PageNumber


def resolve_position(options: PaginateOptions) -> Position:
    """Offset wins whenever it is set (0 included); otherwise page, default 1."""
    if options.offset is not None:
        return Offset(options.offset)
    return PageNumber(options.page if options.page is not None else 1)
