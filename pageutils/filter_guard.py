"""Validation of collection names and raw filter expressions using sqlglot.

Raw string filters are spliced into a ``WHERE`` clause, so they must parse
as a single boolean expression. Anything that turns the surrounding query
into something else (extra statements, set operations, trailing clauses,
embedded writes) is rejected.
"""
import re
import logging

import sqlglot
from sqlglot import exp

from pageutils.utils.errors import UnsafeFilterError

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

# Wrapper used to parse a bare expression as a WHERE clause.
_PROBE_SQL = "SELECT 1 FROM _filter_probe WHERE {expr}"

_FORBIDDEN_NODES = (
    exp.Insert,
    exp.Update,
    exp.Delete,
    exp.Create,
    exp.Drop,
    exp.Alter,
    exp.Merge,
    exp.TruncateTable,
    exp.Grant,
    exp.Command,
)

# Clauses that would only appear if the expression escaped the WHERE clause.
_TRAILING_CLAUSES = ("group", "having", "order", "limit", "offset", "windows", "locks")


def validate_identifier(name: str) -> str:
    """Accept ``table`` or ``schema.table`` style names."""
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise UnsafeFilterError(f"Invalid identifier: {name!r}")
    return name


def validate_filter_expression(expr: str) -> str:
    """Return ``expr`` stripped if it is a single safe boolean expression."""
    stripped = (expr or "").strip()
    if not stripped:
        raise UnsafeFilterError("Filter expression is empty.")

    # A trailing line comment would swallow whatever the caller appends.
    try:
        tokens = sqlglot.tokenize(stripped, dialect="postgres")
    except sqlglot.errors.TokenError as e:
        raise UnsafeFilterError(f"Filter expression does not parse: {e}") from e
    if any(token.comments for token in tokens):
        raise UnsafeFilterError("Filter expression must not contain comments.")

    try:
        statements = [
            s
            for s in sqlglot.parse(_PROBE_SQL.format(expr=stripped), dialect="postgres")
            if s is not None
        ]
    except sqlglot.errors.ParseError as e:
        raise UnsafeFilterError(f"Filter expression does not parse: {e}") from e

    if len(statements) != 1:
        raise UnsafeFilterError("Filter expression must not contain multiple statements.")

    stmt = statements[0]
    if not isinstance(stmt, exp.Select) or stmt.args.get("where") is None:
        raise UnsafeFilterError("Filter expression must be a plain boolean condition.")

    for clause in _TRAILING_CLAUSES:
        if stmt.args.get(clause):
            raise UnsafeFilterError(
                f"Filter expression must not add a {clause.upper()} clause."
            )

    if any(node.comments for node in stmt.walk()):
        raise UnsafeFilterError("Filter expression must not contain comments.")

    forbidden = stmt.find(*_FORBIDDEN_NODES)
    if forbidden is not None:
        logger.warning(f"Rejected filter containing {type(forbidden).__name__}: {stripped[:100]}")
        raise UnsafeFilterError(
            f"Filter expression contains a forbidden statement: {type(forbidden).__name__}"
        )

    return stripped
