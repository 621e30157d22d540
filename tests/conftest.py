"""Shared test fixtures for pageutils tests."""
import pytest
from collections.abc import Mapping
from unittest.mock import AsyncMock

from pageutils.source import IsBlank


def _matches(row: dict, filter) -> bool:
    if filter is None:
        return True
    if isinstance(filter, IsBlank):
        return row.get(filter.field) in (None, "")
    if isinstance(filter, Mapping):
        return all(row.get(k) == v for k, v in filter.items())
    raise TypeError(f"In-memory source cannot evaluate {filter!r}")


class MemorySource:
    """In-memory data source recording every call in order.

    ``fail_on`` maps an operation name to an exception, or to a callable
    taking the filter and returning an exception (or None) for that call.
    """

    def __init__(self, collections: dict, fail_on: dict = None):
        self.collections = collections
        self.fail_on = fail_on or {}
        self.calls = []

    def _maybe_fail(self, op: str, filter):
        failure = self.fail_on.get(op)
        if callable(failure) and not isinstance(failure, BaseException):
            failure = failure(filter)
        if failure is not None:
            raise failure

    def _select(self, collection, filter):
        return [dict(r) for r in self.collections[collection] if _matches(r, filter)]

    async def count(self, collection, filter):
        self.calls.append(("count", collection, filter))
        self._maybe_fail("count", filter)
        return len(self._select(collection, filter))

    async def fetch_page(self, collection, filter, offset, limit):
        self.calls.append(("fetch_page", collection, filter, offset, limit))
        self._maybe_fail("fetch_page", filter)
        return self._select(collection, filter)[offset : offset + limit]

    async def fetch_all(self, collection, filter):
        self.calls.append(("fetch_all", collection, filter))
        self._maybe_fail("fetch_all", filter)
        return self._select(collection, filter)


@pytest.fixture
def users():
    return [{"id": i, "name": f"user{i}", "active": i % 2 == 0} for i in range(1, 24)]


@pytest.fixture
def make_source():
    return MemorySource


@pytest.fixture
def memory_source(users):
    return MemorySource({"users": users})


@pytest.fixture
def category_rows():
    return [
        {"id": 1, "link": ""},
        {"id": 2, "link": None},
        {"id": 3, "link": 1},
        {"id": 4, "link": 1},
        {"id": 5, "link": 2},
    ]


@pytest.fixture
def mock_executor():
    """Mock query executor standing in for PgPool."""
    mock = AsyncMock()
    mock.fetch = AsyncMock(return_value=[])
    return mock
