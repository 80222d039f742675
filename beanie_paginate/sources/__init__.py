from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection

from beanie_paginate.core.exceptions import UnsupportedOperationError
from beanie_paginate.sources.base import DocumentSource, FindQuery, normalize_projection, normalize_sort
from beanie_paginate.sources.beanie import BeanieSource, is_document_class
from beanie_paginate.sources.motor import MotorSource, populate_references


def as_source(target: Any) -> DocumentSource:
    """Wrap a Beanie document class or Motor collection; pass protocol objects through."""
    if is_document_class(target):
        return BeanieSource(target)
    if isinstance(target, AsyncIOMotorCollection):
        return MotorSource(target)
    if callable(getattr(target, "find", None)) and callable(getattr(target, "count_documents", None)):
        return target
    raise UnsupportedOperationError(
        f"Cannot paginate over {type(target).__name__}",
        details={"target": repr(target)},
    )


__all__ = [
    "BeanieSource",
    "DocumentSource",
    "FindQuery",
    "MotorSource",
    "as_source",
    "normalize_projection",
    "normalize_sort",
    "populate_references",
]
