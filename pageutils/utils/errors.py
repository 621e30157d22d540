"""Exception types and actionable error messages."""
import psycopg


class PageUtilsError(Exception):
    """Base class for errors raised by pageutils."""


class ConfigurationError(PageUtilsError):
    """Invalid caller-supplied settings, e.g. page_size = 0 or a negative page."""


class UnsafeFilterError(ConfigurationError):
    """A raw filter expression or identifier was rejected by the filter guard."""


class DataSourceError(PageUtilsError):
    """A count or fetch against the data source failed."""

    def __init__(self, message: str, collection: str = None):
        super().__init__(message)
        self.collection = collection


class ParamValidationError(PageUtilsError):
    """Request parameters failed to bind or validate."""

    def __init__(self, message: str, errors: list = None):
        super().__init__(message)
        self.errors = errors or []


def describe_error(e: Exception) -> str:
    """Return a human-readable, actionable error message.

    Data source errors are described by their underlying psycopg cause
    when there is one.
    """
    cause = e
    if isinstance(e, DataSourceError) and e.__cause__ is not None:
        cause = e.__cause__

    if isinstance(cause, psycopg.errors.UndefinedTable):
        table = str(cause).split('"')[1] if '"' in str(cause) else "unknown"
        return f"Error: Collection '{table}' does not exist. Check the table name and schema."

    if isinstance(cause, psycopg.errors.UndefinedColumn):
        column = str(cause).split('"')[1] if '"' in str(cause) else "unknown"
        return (
            f"Error: Column '{column}' does not exist. "
            "Check the filter, order_by and hierarchy field names."
        )

    if isinstance(cause, psycopg.errors.InsufficientPrivilege):
        return "Error: Permission denied for this collection."

    if isinstance(cause, psycopg.errors.QueryCanceled):
        return "Error: Query was cancelled by the server (statement timeout)."

    if isinstance(cause, psycopg.OperationalError):
        msg = str(cause).lower()
        if "connection refused" in msg or "could not connect" in msg:
            return (
                "Error: Cannot connect to the database. Check PAGEUTILS_DB_HOST "
                "and PAGEUTILS_DB_PORT, and that the server is accepting connections."
            )

    if isinstance(cause, (ConnectionError, TimeoutError)):
        return f"Error: Database connection failed — {str(cause).strip()}"

    if isinstance(e, UnsafeFilterError):
        return f"Error: Filter rejected — {str(e)}"

    if isinstance(e, PageUtilsError):
        return f"Error: {str(e)}"

    return f"Error: {type(e).__name__} — {str(e)}"
