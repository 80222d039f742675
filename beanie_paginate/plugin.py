"""Attach ``paginate`` to models."""

from collections.abc import MutableMapping
from typing import Any, ClassVar

from beanie_paginate.paginator import Callback, OptionsLike, PaginatedResult, Paginator
from beanie_paginate.sources import as_source


def make_paginate(defaults: OptionsLike = None):
    """Build a ``paginate(model, filter, options, callback)`` function.

    ``model`` is anything ``as_source`` accepts; the function is meant to be
    bound as a classmethod or registered as a schema static.
    """

    async def paginate(
        model: Any,
        filter: Any = None,
        options: OptionsLike = None,
        callback: Callback | None = None,
    ) -> PaginatedResult | None:
        return await Paginator(as_source(model), defaults).paginate(filter, options, callback)

    return paginate


def install(target: Any, *, defaults: OptionsLike = None) -> Any:
    """Register ``paginate`` on a schema's ``statics`` registry, or as a classmethod on a model class."""
    paginate = make_paginate(defaults)
    statics = getattr(target, "statics", None)
    if isinstance(statics, MutableMapping):
        statics["paginate"] = paginate
    else:
        setattr(target, "paginate", classmethod(paginate))
    return target


class PaginateMixin:
    """Mix into a Beanie ``Document`` to get ``await Model.paginate(...)``."""

    paginate_defaults: ClassVar[dict[str, Any] | None] = None

    @classmethod
    async def paginate(
        cls,
        filter: Any = None,
        options: OptionsLike = None,
        callback: Callback | None = None,
    ) -> PaginatedResult | None:
        return await Paginator(as_source(cls), cls.paginate_defaults).paginate(filter, options, callback)
