"""Unit tests for both pagination flavors."""
from unittest.mock import patch

import pytest

from pageutils.config import config
from pageutils.pagination import (
    LayPageResult,
    PageRequest,
    PageResult,
    SourcePageFetcher,
    paginate,
    paginate_by_source,
    total_pages,
)
from pageutils.utils.errors import ConfigurationError, DataSourceError


class StaticFetcher:
    def __init__(self, rows=None, error=None):
        self.rows = rows or []
        self.error = error
        self.calls = []

    async def fetch_page(self, page, page_size):
        self.calls.append((page, page_size))
        if self.error:
            raise self.error
        return list(self.rows)


class TestTotalPages:
    @pytest.mark.parametrize(
        "total,page_size,expected",
        [(10, 5, 2), (11, 5, 3), (0, 5, 0), (1, 100, 1), (100, 100, 1), (101, 100, 2)],
    )
    def test_ceiling_division(self, total, page_size, expected):
        assert total_pages(total, page_size) == expected

    def test_zero_page_size_rejected(self):
        with pytest.raises(ConfigurationError, match="page size"):
            total_pages(10, 0)

    def test_negative_total_rejected(self):
        with pytest.raises(ConfigurationError, match="total"):
            total_pages(-1, 5)


class TestPaginate:
    async def test_first_page_has_next(self):
        result = await paginate(10, StaticFetcher([{"id": 1}]), page=1, page_size=5)
        assert result.total_page == 2
        assert result.current_page == 1
        assert result.has_next_page is True

    async def test_last_page_has_no_next(self):
        result = await paginate(10, StaticFetcher(), page=2, page_size=5)
        assert result.total_page == 2
        assert result.has_next_page is False

    async def test_empty_total(self):
        result = await paginate(0, StaticFetcher(), page=1, page_size=5)
        assert result.total_page == 0
        assert result.has_next_page is False

    async def test_fetch_called_once_with_page_args(self):
        fetcher = StaticFetcher([{"id": 1}, {"id": 2}])
        result = await paginate(23, fetcher, page=3, page_size=10)
        assert fetcher.calls == [(3, 10)]
        assert result.rows == [{"id": 1}, {"id": 2}]

    async def test_default_page_size(self):
        fetcher = StaticFetcher()
        result = await paginate(250, fetcher)
        assert fetcher.calls == [(1, 100)]
        assert result.total_page == 3

    async def test_idempotent_with_pure_fetch(self):
        fetcher = StaticFetcher([{"id": 7}])
        first = await paginate(11, fetcher, page=2, page_size=5)
        second = await paginate(11, fetcher, page=2, page_size=5)
        assert first == second

    async def test_fetch_error_propagates(self):
        error = DataSourceError("boom")
        with pytest.raises(DataSourceError) as exc_info:
            await paginate(10, StaticFetcher(error=error), page=1, page_size=5)
        assert exc_info.value is error

    async def test_invalid_page_rejected_before_fetch(self):
        fetcher = StaticFetcher()
        with pytest.raises(ConfigurationError):
            await paginate(10, fetcher, page=0, page_size=5)
        with pytest.raises(ConfigurationError):
            await paginate(10, fetcher, page=1, page_size=0)
        assert fetcher.calls == []

    async def test_serializes_with_camel_case(self):
        result = await paginate(10, StaticFetcher(), page=1, page_size=5)
        dumped = result.model_dump(by_alias=True)
        assert dumped["totalPage"] == 2
        assert dumped["currentPage"] == 1
        assert dumped["hasNextPage"] is True


class TestSourcePageFetcher:
    async def test_translates_page_to_offset(self, memory_source):
        fetcher = SourcePageFetcher(memory_source, "users")
        rows = await fetcher.fetch_page(3, 5)
        assert [r["id"] for r in rows] == [11, 12, 13, 14, 15]
        assert memory_source.calls == [("fetch_page", "users", None, 10, 5)]

    async def test_with_paginate(self, memory_source):
        active = {"active": True}
        total = await memory_source.count("users", active)
        result = await paginate(
            total, SourcePageFetcher(memory_source, "users", active), page=2, page_size=5
        )
        assert result.total == 11
        assert result.total_page == 3
        assert [r["id"] for r in result.rows] == [12, 14, 16, 18, 20]


class TestPaginateBySource:
    async def test_window_and_count(self, memory_source):
        result = await paginate_by_source(memory_source, "users", None, page=2, limit=10)
        assert isinstance(result, LayPageResult)
        assert result.count == 23
        assert [r["id"] for r in result.rows] == list(range(11, 21))

    async def test_default_limit_is_ten(self, memory_source):
        result = await paginate_by_source(memory_source, "users")
        assert len(result.rows) == 10
        assert memory_source.calls[0] == ("fetch_page", "users", None, 0, 10)

    async def test_same_filter_forwarded_to_both_calls(self, memory_source):
        active = {"active": True}
        await paginate_by_source(memory_source, "users", active, page=1, limit=5)
        assert memory_source.calls[0][2] is active
        assert memory_source.calls[1] == ("count", "users", active)

    async def test_transform_runs_in_place_before_count(self, memory_source):
        seen_calls = []

        def annotate(rows):
            seen_calls.append(list(memory_source.calls))
            for row in rows:
                row["label"] = row["name"].upper()

        result = await paginate_by_source(
            memory_source, "users", None, page=1, limit=2, transform=annotate
        )
        assert [r["label"] for r in result.rows] == ["USER1", "USER2"]
        assert [c[0] for c in seen_calls[0]] == ["fetch_page"]
        assert [c[0] for c in memory_source.calls] == ["fetch_page", "count"]

    async def test_async_transform_awaited(self, memory_source):
        async def annotate(rows):
            for row in rows:
                row["seen"] = True

        result = await paginate_by_source(
            memory_source, "users", None, page=1, limit=3, transform=annotate
        )
        assert all(r["seen"] for r in result.rows)

    async def test_count_failure_propagates_unchanged(self, users, make_source):
        error = DataSourceError("count failed")
        source = make_source({"users": users}, fail_on={"count": error})
        with pytest.raises(DataSourceError) as exc_info:
            await paginate_by_source(source, "users", None, page=1, limit=5)
        assert exc_info.value is error

    async def test_fetch_failure_skips_count(self, users, make_source):
        source = make_source(
            {"users": users}, fail_on={"fetch_page": DataSourceError("fetch failed")}
        )
        with pytest.raises(DataSourceError):
            await paginate_by_source(source, "users", None, page=1, limit=5)
        assert [c[0] for c in source.calls] == ["fetch_page"]

    async def test_invalid_limit_rejected(self, memory_source):
        with pytest.raises(ConfigurationError):
            await paginate_by_source(memory_source, "users", None, page=1, limit=0)
        assert memory_source.calls == []


class TestPageRequest:
    def test_defaults_when_absent(self):
        req = PageRequest.from_params({})
        assert req.page == 1
        assert req.page_size == 100

    def test_reads_string_values(self):
        req = PageRequest.from_params({"page": "3", "pageSize": "25"})
        assert req.page == 3
        assert req.page_size == 25

    def test_invalid_values_fall_back(self):
        req = PageRequest.from_params({"page": "abc", "pageSize": "0"})
        assert req.page == 1
        assert req.page_size == 100

    def test_layui_limit_key(self):
        req = PageRequest.from_params({"limit": "15"}, size_key="limit", default_size=10)
        assert req.page_size == 15
        assert PageRequest.from_params({}, size_key="limit", default_size=10).page_size == 10

    def test_direct_construction_validates(self):
        with pytest.raises(ValueError):
            PageRequest(page=0, page_size=10)

    def test_defaults_follow_config(self):
        with patch.object(config, "default_page_size", 25), patch.object(config, "default_page", 2):
            assert PageRequest().page_size == 25
            assert PageRequest().page == 2
            req = PageRequest.from_params({})
            assert req.page_size == 25
            assert req.page == 2


class TestPageResultModel:
    def test_populate_by_alias(self):
        result = PageResult.model_validate(
            {"total": 1, "totalPage": 1, "currentPage": 1, "rows": [], "hasNextPage": False}
        )
        assert result.total_page == 1
