"""Beanie document adapter."""

from typing import Any

from beanie import Document
from beanie.odm.utils.projection import get_projection
from pydantic import BaseModel

from beanie_paginate.core.exceptions import UnsupportedOperationError
from beanie_paginate.options import Populate
from beanie_paginate.sources.base import as_populate, normalize_sort
from beanie_paginate.sources.motor import MotorSource


def _criteria(filter: Any) -> tuple[Any, ...]:
    # a list/tuple of Beanie expressions is AND-ed, like Document.find(*args)
    if filter is None:
        return ()
    if isinstance(filter, (list, tuple)):
        return tuple(filter)
    return (filter,)


def _is_projection_model(select: Any) -> bool:
    return isinstance(select, type) and issubclass(select, BaseModel)


class BeanieFindQuery:
    def __init__(self, document_cls: type[Document], filter: Any):
        self._document_cls = document_cls
        self._criteria = _criteria(filter)
        self._select: Any = None
        self._sort: Any = None
        self._skip = 0
        self._limit = 0
        self._lean: bool | None = None
        self._populate: list[Populate] = []

    def _check_select(self) -> None:
        if self._select not in (None, "") and not _is_projection_model(self._select):
            raise UnsupportedOperationError(
                "Non-lean Beanie queries take a projection model as select",
                details={"select": repr(self._select)},
            )

    def select(self, spec: Any) -> "BeanieFindQuery":
        self._select = spec
        if self._lean is False:
            self._check_select()
        return self

    def sort(self, spec: Any) -> "BeanieFindQuery":
        self._sort = normalize_sort(spec)
        return self

    def skip(self, n: int) -> "BeanieFindQuery":
        self._skip = n
        return self

    def limit(self, n: int) -> "BeanieFindQuery":
        self._limit = n
        return self

    def lean(self, flag: bool = True) -> "BeanieFindQuery":
        self._lean = bool(flag)
        if not self._lean:
            # fail while building, before any read is issued
            self._check_select()
        return self

    def populate(self, spec: Populate | str) -> "BeanieFindQuery":
        self._populate.append(as_populate(spec))
        return self

    async def to_list(self) -> list[Any]:
        if self._lean:
            return await self._to_list_lean()
        self._check_select()
        query = self._document_cls.find(*self._criteria)
        if self._select not in (None, ""):
            query = query.project(self._select)
        if self._sort:
            query = query.sort(self._sort)
        docs = await query.skip(self._skip).limit(self._limit).to_list()
        for spec in self._populate:
            for doc in docs:
                # projection models carry no links
                if isinstance(doc, Document):
                    await doc.fetch_link(spec.path)
        return docs

    async def _to_list_lean(self) -> list[dict[str, Any]]:
        filter_query = self._document_cls.find(*self._criteria).get_filter_query()
        select = get_projection(self._select) if _is_projection_model(self._select) else self._select
        query = (
            MotorSource(self._document_cls.get_motor_collection())
            .find(filter_query)
            .select(select)
            .sort(self._sort)
            .skip(self._skip)
            .limit(self._limit)
        )
        for spec in self._populate:
            query = query.populate(spec)
        return await query.to_list()


class BeanieSource:
    """Document source over a Beanie ``Document`` class."""

    def __init__(self, document_cls: type[Document]):
        self.document_cls = document_cls

    def find(self, filter: Any) -> BeanieFindQuery:
        return BeanieFindQuery(self.document_cls, filter)

    async def count_documents(self, filter: Any) -> int:
        return await self.document_cls.find(*_criteria(filter)).count()


def is_document_class(target: Any) -> bool:
    return isinstance(target, type) and issubclass(target, Document)
