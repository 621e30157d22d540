"""Two-level parent/children assembly over a single collection.

Root rows are selected by a filter, then each root gets its children
(rows whose link field equals the root's id) attached under a named key.
Grandchildren are not followed.
"""
import logging
from enum import Enum
from typing import Optional, Union

from pageutils.config import config
from pageutils.source import DataSource, Filter, IsBlank, Row

logger = logging.getLogger(__name__)


class RootPolicy(str, Enum):
    EMPTY_LINK = "empty_link"
    ZERO_PARENT = "zero_parent"


class ChildFetchErrorMode(str, Enum):
    PROPAGATE = "propagate"
    TREAT_AS_EMPTY = "treat_as_empty"


def root_filter(
    policy: RootPolicy, parent_id_field: str, child_parent_id_field: str
) -> Filter:
    """Build the filter selecting root rows under ``policy``."""
    if policy == RootPolicy.EMPTY_LINK:
        return IsBlank(child_parent_id_field)
    if policy == RootPolicy.ZERO_PARENT:
        return {parent_id_field: 0}
    raise ValueError(f"Unknown root policy: {policy}")


async def assemble_hierarchy(
    source: DataSource,
    collection: str,
    child_field: str,
    parent_id_field: str,
    child_parent_id_field: str,
    root_filter: Filter,
    on_child_fetch_error: Optional[Union[ChildFetchErrorMode, str]] = None,
) -> list[Row]:
    """Fetch root rows and attach each one's children under ``child_field``.

    Roots keep their fetch order. One child query is issued per root. A
    failed root query always raises; a failed child query either raises
    (PROPAGATE, no partial tree) or leaves that root with no children
    (TREAT_AS_EMPTY). ``None`` uses ``config.on_child_fetch_error``.
    """
    mode = ChildFetchErrorMode(on_child_fetch_error or config.on_child_fetch_error)

    roots = [dict(row) for row in await source.fetch_all(collection, root_filter)]

    for root in roots:
        link = {child_parent_id_field: root.get(parent_id_field)}
        try:
            children = await source.fetch_all(collection, link)
        except Exception as e:
            if mode is ChildFetchErrorMode.PROPAGATE:
                raise
            logger.warning(
                f"Child fetch for {collection}.{parent_id_field}="
                f"{root.get(parent_id_field)!r} failed, using no children: {e}"
            )
            children = []
        root[child_field] = [dict(child) for child in children]

    return roots


async def assemble_by_empty_link(
    source: DataSource,
    collection: str,
    child_field: str,
    parent_id_field: str,
    child_parent_id_field: str,
    on_child_fetch_error: Optional[Union[ChildFetchErrorMode, str]] = None,
) -> list[Row]:
    """Roots are rows whose ``child_parent_id_field`` is NULL or empty."""
    return await assemble_hierarchy(
        source,
        collection,
        child_field,
        parent_id_field,
        child_parent_id_field,
        root_filter(RootPolicy.EMPTY_LINK, parent_id_field, child_parent_id_field),
        on_child_fetch_error=on_child_fetch_error,
    )


async def assemble_by_zero_parent(
    source: DataSource,
    collection: str,
    child_field: str,
    parent_id_field: str,
    child_parent_id_field: str,
    on_child_fetch_error: Optional[Union[ChildFetchErrorMode, str]] = None,
) -> list[Row]:
    """Roots are rows whose ``parent_id_field`` equals 0."""
    return await assemble_hierarchy(
        source,
        collection,
        child_field,
        parent_id_field,
        child_parent_id_field,
        root_filter(RootPolicy.ZERO_PARENT, parent_id_field, child_parent_id_field),
        on_child_fetch_error=on_child_fetch_error,
    )
