"""Data source protocol and its PostgreSQL implementation.

A data source answers three questions about a named collection: how many
rows match a filter, which rows fall in an offset/limit window, and which
rows match at all. Pagination and hierarchy helpers only ever talk to this
protocol.

Filters are one of:

- ``None``: every row.
- a mapping of field to value: AND of equalities, ``None`` meaning IS NULL.
- ``IsBlank(field)``: the field is NULL or an empty string.
- a raw string: a boolean SQL expression, checked by the filter guard.
"""
from collections.abc import Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional, Protocol, Union, runtime_checkable

import psycopg
from psycopg import sql

from pageutils.db import pool
from pageutils.filter_guard import validate_filter_expression, validate_identifier
from pageutils.utils.errors import DataSourceError


Row = dict[str, Any]


@dataclass(frozen=True)
class IsBlank:
    """Filter matching rows where ``field`` is NULL or an empty string."""

    field: str


Filter = Union[None, Mapping[str, Any], IsBlank, str]


@runtime_checkable
class DataSource(Protocol):
    async def count(self, collection: str, filter: Filter) -> int: ...

    async def fetch_page(
        self, collection: str, filter: Filter, offset: int, limit: int
    ) -> list[Row]: ...

    async def fetch_all(self, collection: str, filter: Filter) -> list[Row]: ...


class QueryExecutor(Protocol):
    async def fetch(self, query, params: tuple = None) -> list[Row]: ...


def _identifier(name: str) -> sql.Identifier:
    return sql.Identifier(*validate_identifier(name).split("."))


def compile_filter(filter: Filter) -> tuple[sql.Composable, list]:
    """Translate a filter into a WHERE-clause fragment and its parameters."""
    if filter is None:
        return sql.SQL("TRUE"), []

    if isinstance(filter, IsBlank):
        field = _identifier(filter.field)
        # Cast so the empty-string test also works on non-text columns.
        return sql.SQL("({f} IS NULL OR {f}::text = '')").format(f=field), []

    if isinstance(filter, str):
        expr = validate_filter_expression(filter)
        # Parameters are always bound, so literal percent signs must be doubled.
        return sql.SQL("(") + sql.SQL(expr.replace("%", "%%")) + sql.SQL("\n)"), []

    if isinstance(filter, Mapping):
        if not filter:
            return sql.SQL("TRUE"), []
        parts = []
        params = []
        for field, value in filter.items():
            if value is None:
                parts.append(sql.SQL("{} IS NULL").format(_identifier(field)))
            else:
                parts.append(sql.SQL("{} = %s").format(_identifier(field)))
                params.append(value)
        return sql.SQL(" AND ").join(parts), params

    raise TypeError(f"Unsupported filter type: {type(filter).__name__}")


class PostgresDataSource:
    """Data source reading tables through a PgPool (or any query executor).

    Args:
        executor: Object with an async ``fetch(query, params)``; defaults to
            the module-level pool.
        order_by: Optional column giving page windows a stable order.
    """

    def __init__(self, executor: QueryExecutor = None, order_by: Optional[str] = None):
        self._executor = executor or pool
        self._order_by = order_by

    def _order_clause(self) -> sql.Composable:
        if not self._order_by:
            return sql.SQL("")
        return sql.SQL(" ORDER BY {}").format(_identifier(self._order_by))

    async def _run(self, operation: str, collection: str, query, params: list) -> list[Row]:
        try:
            return await self._executor.fetch(query, tuple(params))
        except (psycopg.Error, OSError) as e:
            raise DataSourceError(
                f"{operation} on '{collection}' failed: {e}", collection=collection
            ) from e

    async def count(self, collection: str, filter: Filter) -> int:
        where, params = compile_filter(filter)
        query = sql.SQL("SELECT COUNT(*) AS total FROM {} WHERE {}").format(
            _identifier(collection), where
        )
        rows = await self._run("count", collection, query, params)
        return int(rows[0]["total"]) if rows else 0

    async def fetch_page(
        self, collection: str, filter: Filter, offset: int, limit: int
    ) -> list[Row]:
        where, params = compile_filter(filter)
        query = (
            sql.SQL("SELECT * FROM {} WHERE {}").format(_identifier(collection), where)
            + self._order_clause()
            + sql.SQL(" OFFSET %s LIMIT %s")
        )
        return await self._run("fetch_page", collection, query, params + [offset, limit])

    async def fetch_all(self, collection: str, filter: Filter) -> list[Row]:
        where, params = compile_filter(filter)
        query = (
            sql.SQL("SELECT * FROM {} WHERE {}").format(_identifier(collection), where)
            + self._order_clause()
        )
        return await self._run("fetch_all", collection, query, params)

    @asynccontextmanager
    async def snapshot(self) -> AsyncGenerator["PostgresDataSource", None]:
        """Yield a data source whose calls share one REPEATABLE READ transaction.

        Use this when a page and its count must agree, e.g.::

            async with source.snapshot() as snap:
                result = await paginate_by_source(snap, "users", {"active": True})
        """
        async with self._executor.snapshot() as session:
            yield PostgresDataSource(session, order_by=self._order_by)
