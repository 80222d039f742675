"""Paginator behaviour against an in-memory document source."""

import asyncio
import math

import pytest

from beanie_paginate import InvalidOptionsError, Paginator, paginate

pytestmark = pytest.mark.asyncio


async def test_second_page_of_twenty_five(make_source):
    source = make_source(25)
    result = await paginate(source, {}, {"limit": 10, "page": 2})
    assert [d.n for d in result.docs] == list(range(10, 20))
    assert result.total == 25
    assert result.limit == 10
    assert result.page == 2
    assert result.pages == 3
    assert result.offset is None
    assert source.last_query.skip_n == 10


async def test_short_page_derives_total_without_count(make_source):
    source = make_source(5)
    source.count_override = 999  # would show up if the count were used
    source.count_delay = 30
    result = await asyncio.wait_for(paginate(source, {}, {"limit": 10, "page": 1}), timeout=5)
    assert len(result.docs) == 5
    assert result.total == 5
    assert result.pages == 1


async def test_empty_collection_with_defaults(make_source):
    result = await paginate(make_source(0))
    assert result.docs == []
    assert result.total == 0
    assert result.page == 1
    assert result.pages == 1
    assert result.limit == 10
    assert result.to_dict() == {"docs": [], "total": 0, "limit": 10, "page": 1, "pages": 1}


async def test_offset_mode_reports_offset_only(make_source):
    result = await paginate(make_source(25), {}, {"offset": 20, "limit": 10, "lean": True})
    assert [d["n"] for d in result.docs] == [20, 21, 22, 23, 24]
    assert result.total == 25
    assert result.offset == 20
    assert result.page is None and result.pages is None
    assert set(result.to_dict()) == {"docs", "total", "limit", "offset"}


async def test_zero_offset_is_offset_mode(make_source):
    source = make_source(3)
    result = await paginate(source, {}, {"offset": 0, "page": 4})
    assert result.offset == 0
    assert result.page is None
    assert source.last_query.skip_n == 0


async def test_offset_wins_over_page(make_source):
    source = make_source(30)
    result = await paginate(source, {}, {"offset": 5, "page": 3, "limit": 10})
    assert source.last_query.skip_n == 5
    assert result.offset == 5


async def test_page_past_the_end_uses_count(make_source):
    source = make_source(25)
    result = await paginate(source, {}, {"page": 5, "limit": 10})
    assert result.docs == []
    assert result.total == 25
    assert result.pages == 3
    assert source.count_calls == 1


async def test_filter_is_passed_through(make_source):
    source = make_source(4, kind="a")
    source.records += [{"_id": "b1", "n": 100, "kind": "b"}]
    result = await paginate(source, {"kind": "b"}, {"lean": True})
    assert [d["_id"] for d in result.docs] == ["b1"]
    assert result.total == 1
    assert source.last_query.filter == {"kind": "b"}


async def test_fetch_error_is_raised_unchanged(make_source):
    source = make_source(25)
    error = RuntimeError("connection reset")
    source.find_error = error
    source.count_error = ValueError("count failed too")
    with pytest.raises(RuntimeError) as exc_info:
        await paginate(source, {}, {"limit": 10})
    assert exc_info.value is error


async def test_count_error_on_full_page_propagates(make_source):
    source = make_source(25)
    source.count_error = RuntimeError("count timed out")
    with pytest.raises(RuntimeError, match="count timed out"):
        await paginate(source, {}, {"limit": 10})


async def test_count_error_after_short_page_is_ignored(make_source):
    source = make_source(3)
    source.count_error = RuntimeError("ignored")
    result = await paginate(source, {}, {"limit": 10})
    assert result.total == 3


async def test_lean_with_id_adds_string_id(make_source):
    result = await paginate(make_source(3), {}, {"lean": True})
    assert [d["id"] for d in result.docs] == ["id000", "id001", "id002"]
    assert all(d["id"] == str(d["_id"]) for d in result.docs)


async def test_lean_without_id(make_source):
    result = await paginate(make_source(3), {}, {"lean": True, "leanWithId": False})
    assert all("id" not in d for d in result.docs)


async def test_non_lean_records_are_untouched(make_source):
    result = await paginate(make_source(3), {}, {"lean": False})
    assert all(not hasattr(d, "id") for d in result.docs)


async def test_lean_ids_on_full_page(make_source):
    result = await paginate(make_source(12), {}, {"lean": True, "limit": 5, "page": 2})
    assert [d["id"] for d in result.docs] == [f"id{i:03d}" for i in range(5, 10)]


async def test_select_sort_and_populate_reach_the_query(make_source):
    source = make_source(6, title="t")
    result = await paginate(
        source,
        {},
        {"select": "n", "sort": "-n", "populate": ["author", "tags"], "lean": True, "limit": 3},
    )
    assert [d["n"] for d in result.docs] == [5, 4, 3]
    assert all("title" not in d for d in result.docs)
    assert source.last_query.populated == ["author", "tags"]


async def test_single_populate_string(make_source):
    source = make_source(1)
    await paginate(source, {}, {"populate": "author"})
    assert source.last_query.populated == ["author"]


@pytest.mark.parametrize(
    "options",
    [{"limit": 0}, {"limit": -1}, {"page": 0}, {"offset": -5}, {"sort": {"n": "sideways"}}],
)
async def test_invalid_options_issue_no_reads(make_source, options):
    source = make_source(5)
    with pytest.raises(InvalidOptionsError):
        await paginate(source, {}, options)
    assert source.find_calls == 0
    assert source.count_calls == 0


async def test_callback_receives_result(make_source):
    received = []
    returned = await paginate(make_source(2), {}, {}, lambda err, res: received.append((err, res)))
    assert returned is None
    [(err, res)] = received
    assert err is None
    assert res.total == 2


async def test_callback_receives_error(make_source):
    source = make_source(2)
    error = RuntimeError("boom")
    source.find_error = error
    received = []
    await paginate(source, {}, {}, lambda err, res: received.append((err, res)))
    assert received == [(error, None)]


async def test_paginator_defaults_merge_per_key(make_source):
    source = make_source(20)
    paginator = Paginator(source, {"limit": 5, "lean": True})
    result = await paginator.paginate({}, {"page": 2})
    assert result.limit == 5
    assert [d["n"] for d in result.docs] == [5, 6, 7, 8, 9]
    override = await paginator.paginate({}, {"limit": 8})
    assert override.limit == 8
    assert override.page == 1


async def test_max_limit_clamps(make_source):
    result = await Paginator(make_source(50), max_limit=20).paginate({}, {"limit": 500})
    assert result.limit == 20
    assert len(result.docs) == 20


async def test_sequential_strategy_skips_count_on_short_page(make_source):
    source = make_source(4)
    result = await Paginator(source, count_strategy="sequential").paginate({}, {"limit": 10})
    assert result.total == 4
    assert source.count_calls == 0


async def test_sequential_strategy_counts_full_page(make_source):
    source = make_source(30)
    result = await Paginator(source, count_strategy="sequential").paginate({}, {"limit": 10})
    assert result.total == 30
    assert source.count_calls == 1


async def test_settings_drive_defaults(make_source, monkeypatch):
    monkeypatch.setenv("PAGINATE_DEFAULT_LIMIT", "4")
    monkeypatch.setenv("PAGINATE_LEAN", "true")
    result = await paginate(make_source(9))
    assert result.limit == 4
    assert result.pages == 3
    assert isinstance(result.docs[0], dict)


async def test_short_page_matches_single_large_page(make_source):
    source = make_source(23)
    last = await paginate(source, {}, {"limit": 10, "page": 3, "lean": True})
    everything = await paginate(source, {}, {"limit": 100, "lean": True})
    assert len(last.docs) == 3
    assert last.total == everything.total == 23
    assert last.docs == everything.docs[20:]


async def test_repeated_calls_are_identical(make_source):
    source = make_source(17)
    options = {"limit": 5, "page": 2, "lean": True}
    first = await paginate(source, {}, options)
    second = await paginate(source, {}, options)
    assert first.to_dict() == second.to_dict()


@pytest.mark.parametrize("n", [0, 1, 9, 10, 11, 31])
@pytest.mark.parametrize("limit", [1, 3, 10])
@pytest.mark.parametrize("page", [1, 2, 4])
async def test_envelope_invariants(make_source, n, limit, page):
    result = await paginate(make_source(n), {}, {"limit": limit, "page": page, "lean": True})
    assert len(result.docs) <= limit
    assert result.total >= len(result.docs)
    assert result.total == n
    assert result.pages == max(1, math.ceil(n / limit))
    assert result.page == page
    assert result.offset is None

