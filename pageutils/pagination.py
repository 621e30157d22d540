"""Pagination utilities.

Two flavors:

- ``paginate``: caller supplies the total and a page fetcher; the result
  carries total/totalPage/currentPage/hasNextPage metadata.
- ``paginate_by_source``: the layui flavor, which fetches an offset/limit
  window and a count from a data source and returns ``{count, rows}``.
"""
import inspect
import logging
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field

from pageutils.config import config
from pageutils.source import DataSource, Filter, Row
from pageutils.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

RowTransform = Callable[[list[Row]], Union[None, Awaitable[None]]]


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number >= 1 else default


class PageRequest(BaseModel):
    page: int = Field(
        default_factory=lambda: config.default_page, ge=1, description="1-based page number"
    )
    page_size: int = Field(
        default_factory=lambda: config.default_page_size, ge=1, description="Rows per page"
    )

    @classmethod
    def from_params(
        cls,
        params: Mapping[str, Any],
        size_key: str = "pageSize",
        default_size: int = None,
    ) -> "PageRequest":
        """Read ``page`` and ``size_key`` from request parameters.

        Missing, unparseable or non-positive values fall back to the
        configured defaults.
        """
        if default_size is None:
            default_size = config.default_page_size
        return cls(
            page=_positive_int(params.get("page"), config.default_page),
            page_size=_positive_int(params.get(size_key), default_size),
        )


class PageResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(ge=0)
    total_page: int = Field(alias="totalPage", ge=0)
    current_page: int = Field(alias="currentPage")
    rows: list[Row] = Field(default_factory=list)
    has_next_page: bool = Field(alias="hasNextPage")


class LayPageResult(BaseModel):
    count: int = Field(ge=0)
    rows: list[Row] = Field(default_factory=list)


class PageFetcher(Protocol):
    async def fetch_page(self, page: int, page_size: int) -> list[Row]: ...


class SourcePageFetcher:
    """Fetches numbered pages of a filtered collection from a data source."""

    def __init__(self, source: DataSource, collection: str, filter: Filter = None):
        self.source = source
        self.collection = collection
        self.filter = filter

    async def fetch_page(self, page: int, page_size: int) -> list[Row]:
        offset = (page - 1) * page_size
        return await self.source.fetch_page(self.collection, self.filter, offset, page_size)


def _check_page(page: int, page_size: int):
    if page < 1:
        raise ConfigurationError(f"page must be >= 1, got {page}")
    if page_size < 1:
        raise ConfigurationError(f"page size must be >= 1, got {page_size}")


def total_pages(total: int, page_size: int) -> int:
    """Number of pages needed for ``total`` rows (ceiling division)."""
    if page_size < 1:
        raise ConfigurationError(f"page size must be >= 1, got {page_size}")
    if total < 0:
        raise ConfigurationError(f"total must be >= 0, got {total}")
    pages = total // page_size
    if total % page_size != 0:
        pages += 1
    return pages


async def paginate(
    total: int,
    fetcher: PageFetcher,
    page: int = 1,
    page_size: Optional[int] = None,
) -> PageResult:
    """Fetch one page and wrap it with page metadata.

    ``fetcher.fetch_page`` is called exactly once; if it raises, the error
    propagates and no result is built.
    """
    if page_size is None:
        page_size = config.default_page_size
    _check_page(page, page_size)
    pages = total_pages(total, page_size)

    rows = await fetcher.fetch_page(page, page_size)

    return PageResult(
        total=total,
        total_page=pages,
        current_page=page,
        rows=rows,
        has_next_page=page < pages,
    )


async def paginate_by_source(
    source: DataSource,
    collection: str,
    filter: Filter = None,
    page: int = 1,
    limit: Optional[int] = None,
    transform: Optional[RowTransform] = None,
) -> LayPageResult:
    """Fetch a window of ``collection`` plus its total count.

    ``transform`` receives the fetched rows before the count is taken and
    may modify them in place; coroutine transforms are awaited. The fetch
    and the count are separate calls, so the count may not match the page
    if the data changes in between. Use ``PostgresDataSource.snapshot()``
    when they must agree.
    """
    if limit is None:
        limit = config.default_lay_limit
    _check_page(page, limit)

    offset = (page - 1) * limit
    rows = await source.fetch_page(collection, filter, offset, limit)

    if transform is not None:
        outcome = transform(rows)
        if inspect.isawaitable(outcome):
            await outcome

    count = await source.count(collection, filter)
    logger.debug(f"Paged {collection}: page={page} limit={limit} count={count}")
    return LayPageResult(count=count, rows=rows)
