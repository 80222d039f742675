"""Page fetch + count, reconciled into a result envelope.

The page fetch is classified before anything else happens:

- ``FullPage``: ``limit`` records came back, so the total needs the count.
- ``ShortPage``: fewer than ``limit`` records and the page is not past the
  end, so it is the last page and ``total = skip + len(docs)``.
- ``PastEnd``: nothing came back at a non-zero skip; the total needs the count.
- ``FetchFailed``: the store raised; the error is re-raised unchanged.

In ``concurrent`` mode the count is started alongside the page fetch and is
cancelled when it turns out not to be needed. In ``sequential`` mode it is
only issued when needed.
"""

import asyncio
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from beanie_paginate.core.config import CountStrategy, get_settings
from beanie_paginate.core.logging import get_logger
from beanie_paginate.options import Offset, PaginateOptions, Position, resolve_position
from beanie_paginate.sources.base import DocumentSource, FindQuery

log = get_logger(__name__)

T = TypeVar("T")

OptionsLike = PaginateOptions | Mapping[str, Any] | None
Callback = Callable[[BaseException | None, "PaginatedResult | None"], Any]


class PaginatedResult(BaseModel, Generic[T]):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    docs: list[T]
    total: int
    limit: int
    offset: int | None = None
    page: int | None = None
    pages: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Envelope without the keys of the unused mode; docs are left as-is."""
        out: dict[str, Any] = {"docs": self.docs, "total": self.total, "limit": self.limit}
        if self.offset is not None:
            out["offset"] = self.offset
        if self.page is not None:
            out["page"] = self.page
            out["pages"] = self.pages
        return out


@dataclass(frozen=True)
class FullPage:
    docs: list[Any]


@dataclass(frozen=True)
class ShortPage:
    docs: list[Any]
    total: int


@dataclass(frozen=True)
class PastEnd:
    docs: list[Any]


@dataclass(frozen=True)
class FetchFailed:
    error: Exception


PageOutcome = FullPage | ShortPage | PastEnd | FetchFailed


def classify(docs: list[Any], skip: int, limit: int) -> PageOutcome:
    if len(docs) >= limit:
        return FullPage(docs)
    if docs or skip == 0:
        return ShortPage(docs, skip + len(docs))
    return PastEnd(docs)


def add_lean_ids(docs: list[Any]) -> None:
    for doc in docs:
        if isinstance(doc, dict) and "_id" in doc:
            doc["id"] = str(doc["_id"])


def build_result(docs: list[Any], total: int, limit: int, position: Position) -> PaginatedResult:
    if isinstance(position, Offset):
        return PaginatedResult(docs=docs, total=total, limit=limit, offset=position.value)
    return PaginatedResult(
        docs=docs,
        total=total,
        limit=limit,
        page=position.value,
        pages=max(1, math.ceil(total / limit)),
    )


def _consume_outcome(task: asyncio.Future) -> None:
    # mark a discarded count as retrieved so its failure is never reported
    if not task.cancelled():
        task.exception()


def _release(task: asyncio.Future) -> None:
    if not task.done():
        task.cancel()
        log.debug("paginate_count_cancelled")
    task.add_done_callback(_consume_outcome)


class Paginator:
    """Paginates one document source.

    ``defaults`` are merged over the configured defaults once, here; per-call
    options are merged over the result on every call.
    """

    def __init__(
        self,
        source: DocumentSource,
        defaults: OptionsLike = None,
        *,
        max_limit: int | None = None,
        count_strategy: CountStrategy | None = None,
    ):
        settings = get_settings()
        self.source = source
        self.defaults = PaginateOptions.merged(settings.default_options(), PaginateOptions.parse(defaults))
        self.default_limit = self.defaults.limit or settings.default_limit
        self.max_limit = max_limit if max_limit is not None else settings.max_limit
        self.count_strategy = count_strategy or settings.count_strategy

    def resolve_limit(self, options: PaginateOptions) -> int:
        limit = options.limit if options.limit is not None else self.default_limit
        if self.max_limit is not None:
            limit = min(limit, self.max_limit)
        return limit

    def build_query(self, filter: Any, options: PaginateOptions, skip: int, limit: int) -> FindQuery:
        query = (
            self.source.find(filter)
            .select(options.select)
            .sort(options.sort)
            .skip(skip)
            .limit(limit)
            .lean(options.lean)
        )
        for spec in options.populate or []:
            query = query.populate(spec)
        return query

    async def paginate(
        self,
        filter: Any = None,
        options: OptionsLike = None,
        callback: Callback | None = None,
    ) -> PaginatedResult | None:
        """Return a page of ``filter`` matches, or hand it to ``callback(error, result)``."""
        try:
            result = await self._paginate(filter, options)
        except Exception as exc:
            if callable(callback):
                callback(exc, None)
                return None
            raise
        if callable(callback):
            callback(None, result)
            return None
        return result

    async def _paginate(self, filter: Any, options: OptionsLike) -> PaginatedResult:
        opts = PaginateOptions.merged(self.defaults, PaginateOptions.parse(options))
        limit = self.resolve_limit(opts)
        position = resolve_position(opts)
        skip = position.skip(limit)
        filter = {} if filter is None else filter
        query = self.build_query(filter, opts, skip, limit)

        count_task = None
        if self.count_strategy == "concurrent":
            count_task = asyncio.ensure_future(self.source.count_documents(filter))
        try:
            outcome = await self._fetch_page(query, skip, limit)
            if opts.lean and opts.lean_with_id and not isinstance(outcome, FetchFailed):
                add_lean_ids(outcome.docs)
            total = await self._reconcile(outcome, filter, count_task)
        finally:
            if count_task is not None:
                _release(count_task)
        return build_result(outcome.docs, total, limit, position)

    async def _fetch_page(self, query: FindQuery, skip: int, limit: int) -> PageOutcome:
        try:
            docs = await query.to_list()
        except Exception as exc:
            log.warning("paginate_fetch_failed", skip=skip, limit=limit, error=repr(exc))
            return FetchFailed(exc)
        log.debug("paginate_page_fetched", skip=skip, limit=limit, returned=len(docs))
        return classify(docs, skip, limit)

    async def _reconcile(self, outcome: PageOutcome, filter: Any, count_task: asyncio.Future | None) -> int:
        if isinstance(outcome, FetchFailed):
            raise outcome.error
        if isinstance(outcome, ShortPage):
            log.debug("paginate_short_page", total=outcome.total)
            return outcome.total
        if count_task is None:
            return await self.source.count_documents(filter)
        return await count_task


async def paginate(
    source: DocumentSource,
    filter: Any = None,
    options: OptionsLike = None,
    callback: Callback | None = None,
) -> PaginatedResult | None:
    """One-off pagination with the configured defaults."""
    return await Paginator(source).paginate(filter, options, callback)


__all__ = [
    "FetchFailed",
    "FullPage",
    "PaginatedResult",
    "Paginator",
    "PastEnd",
    "ShortPage",
    "build_result",
    "classify",
    "paginate",
]
