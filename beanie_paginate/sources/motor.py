"""Raw Motor collection adapter. Records are always plain dicts."""

from collections import defaultdict
from collections.abc import Iterator
from typing import Any

from bson import DBRef

from beanie_paginate.core.exceptions import InvalidOptionsError
from beanie_paginate.core.logging import get_logger
from beanie_paginate.options import Populate
from beanie_paginate.sources.base import as_populate, normalize_projection, normalize_sort

log = get_logger(__name__)


def _slots(node: Any, parts: list[str]) -> Iterator[tuple[dict[str, Any], str]]:
    """Yield ``(container, key)`` for every place the path reaches, walking into lists of subdocuments."""
    if isinstance(node, list):
        for item in node:
            yield from _slots(item, parts)
        return
    if not isinstance(node, dict) or parts[0] not in node:
        return
    if len(parts) == 1:
        yield node, parts[0]
    else:
        yield from _slots(node[parts[0]], parts[1:])


def _ref_key(value: Any, spec: Populate) -> tuple[str, Any] | None:
    if value is None:
        return None
    if isinstance(value, DBRef):
        return value.collection, value.id
    if spec.collection is None:
        raise InvalidOptionsError(
            f"Populate path {spec.path!r} holds plain ids; set Populate.collection",
            details={"path": spec.path},
        )
    return spec.collection, value


def _ref_projection(select: Any) -> tuple[dict[str, Any] | None, bool]:
    # _id is needed to match refs back; an excluded _id is stripped afterwards
    projection = normalize_projection(select)
    if projection is None or "_id" not in projection or projection["_id"]:
        return projection, False
    rest = {k: v for k, v in projection.items() if k != "_id"}
    return rest or None, True


async def populate_references(database: Any, docs: list[dict[str, Any]], spec: Populate) -> None:
    """Replace references at ``spec.path`` with the referenced documents, in place.

    One ``$in`` query per referenced collection. A missing single reference
    becomes None; missing entries of a reference list are dropped.
    """
    parts = spec.path.split(".")
    slots = [slot for doc in docs for slot in _slots(doc, parts)]
    wanted: dict[str, set[Any]] = defaultdict(set)
    for container, key in slots:
        value = container[key]
        for item in value if isinstance(value, list) else [value]:
            ref = _ref_key(item, spec)
            if ref is not None:
                wanted[ref[0]].add(ref[1])
    if not wanted:
        return

    projection, drop_id = _ref_projection(spec.select)
    found: dict[tuple[str, Any], dict[str, Any]] = {}
    for collection, ids in wanted.items():
        cursor = database[collection].find({"_id": {"$in": list(ids)}}, projection)
        for ref in await cursor.to_list(length=None):
            ref_id = ref.pop("_id") if drop_id else ref["_id"]
            found[(collection, ref_id)] = ref
    log.debug("populate_resolved", path=spec.path, collections=sorted(wanted), resolved=len(found))

    for container, key in slots:
        value = container[key]
        if isinstance(value, list):
            refs = [_ref_key(item, spec) for item in value]
            container[key] = [found[r] for r in refs if r is not None and r in found]
        else:
            ref = _ref_key(value, spec)
            container[key] = found.get(ref) if ref is not None else None


class MotorFindQuery:
    def __init__(self, collection: Any, filter: Any):
        self._collection = collection
        self._filter = filter
        self._projection: dict[str, Any] | None = None
        self._sort = None
        self._skip = 0
        self._limit = 0
        self._populate: list[Populate] = []

    def select(self, spec: Any) -> "MotorFindQuery":
        self._projection = normalize_projection(spec)
        return self

    def sort(self, spec: Any) -> "MotorFindQuery":
        self._sort = normalize_sort(spec)
        return self

    def skip(self, n: int) -> "MotorFindQuery":
        self._skip = n
        return self

    def limit(self, n: int) -> "MotorFindQuery":
        self._limit = n
        return self

    def lean(self, flag: bool = True) -> "MotorFindQuery":
        # raw collections only ever return dicts
        return self

    def populate(self, spec: Populate | str) -> "MotorFindQuery":
        self._populate.append(as_populate(spec))
        return self

    async def to_list(self) -> list[dict[str, Any]]:
        cursor = self._collection.find(self._filter, self._projection)
        if self._sort:
            cursor = cursor.sort(self._sort)
        cursor = cursor.skip(self._skip).limit(self._limit)
        docs = await cursor.to_list(length=None)
        for spec in self._populate:
            await populate_references(self._collection.database, docs, spec)
        return docs


class MotorSource:
    """Document source over an ``AsyncIOMotorCollection``."""

    def __init__(self, collection: Any):
        self.collection = collection

    def find(self, filter: Any) -> MotorFindQuery:
        return MotorFindQuery(self.collection, filter)

    async def count_documents(self, filter: Any) -> int:
        return await self.collection.count_documents(filter)
