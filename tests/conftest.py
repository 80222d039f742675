import asyncio
import copy
import os
from types import SimpleNamespace
from typing import Any

import pytest

from beanie_paginate.sources.base import as_populate, normalize_projection, normalize_sort

os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DB_NAME", "paginate_test")


def _matches(record: dict[str, Any], filter: dict[str, Any]) -> bool:
    return all(record.get(k) == v for k, v in filter.items())


class FakeQuery:
    """In-memory stand-in for a store's chainable find."""

    def __init__(self, source: "FakeSource", filter: dict[str, Any]):
        self.source = source
        self.filter = filter
        self.projection = None
        self.sort_spec = None
        self.skip_n = 0
        self.limit_n = 0
        self.is_lean = False
        self.populated: list[str] = []

    def select(self, spec):
        self.projection = normalize_projection(spec)
        return self

    def sort(self, spec):
        self.sort_spec = normalize_sort(spec)
        return self

    def skip(self, n):
        self.skip_n = n
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def lean(self, flag=True):
        self.is_lean = flag
        return self

    def populate(self, spec):
        self.populated.append(as_populate(spec).path)
        return self

    async def to_list(self):
        self.source.find_calls += 1
        await asyncio.sleep(0)
        if self.source.find_error is not None:
            raise self.source.find_error
        rows = [r for r in self.source.records if _matches(r, self.filter)]
        for field, direction in reversed(self.sort_spec or []):
            rows.sort(key=lambda r: r[field], reverse=direction < 0)
        rows = rows[self.skip_n:]
        if self.limit_n:
            rows = rows[: self.limit_n]
        rows = [copy.deepcopy(r) for r in rows]
        if self.projection:
            rows = [{k: v for k, v in r.items() if k == "_id" or self.projection.get(k)} for r in rows]
        if not self.is_lean:
            return [SimpleNamespace(**r) for r in rows]
        return rows


class FakeSource:
    def __init__(self, records: list[dict[str, Any]]):
        self.records = records
        self.find_calls = 0
        self.count_calls = 0
        self.find_error: Exception | None = None
        self.count_error: Exception | None = None
        self.count_override: int | None = None
        self.count_delay = 0.0
        self.last_query: FakeQuery | None = None

    def find(self, filter):
        self.last_query = FakeQuery(self, filter)
        return self.last_query

    async def count_documents(self, filter):
        self.count_calls += 1
        await asyncio.sleep(self.count_delay)
        if self.count_error is not None:
            raise self.count_error
        if self.count_override is not None:
            return self.count_override
        return sum(1 for r in self.records if _matches(r, filter))


def make_records(n: int, **extra: Any) -> list[dict[str, Any]]:
    return [{"_id": f"id{i:03d}", "n": i, **extra} for i in range(n)]


@pytest.fixture
def make_source():
    def _make(n: int = 0, **extra: Any) -> FakeSource:
        return FakeSource(make_records(n, **extra))

    return _make


@pytest.fixture(autouse=True)
def _fresh_settings():
    from beanie_paginate.core.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
