"""Standard JSON response envelopes: ``{code, msg, data}``."""
import logging
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel

from pageutils.pagination import LayPageResult, PageResult
from pageutils.utils.errors import (
    ConfigurationError,
    ParamValidationError,
    describe_error,
)

logger = logging.getLogger(__name__)

SUCCESS = 0
SERVER_ERROR = 50001
LOGIC_ERROR = 50002

SUCCESS_MSG = "Operation succeeded"
FAIL_MSG = "Operation failed"
SERVER_ERROR_MSG = "The server ran into a problem, please contact the administrator"


class ApiResponse(BaseModel):
    code: int = SUCCESS
    msg: str = SUCCESS_MSG
    data: Optional[Any] = None

    def to_dict(self) -> dict:
        body = {"code": self.code, "msg": self.msg}
        if self.data is not None:
            body["data"] = self.data
        return body


def success(msg: str = None) -> dict:
    return ApiResponse(msg=msg or SUCCESS_MSG).to_dict()


def success_with_data(data: Any, msg: str = None) -> dict:
    return ApiResponse(msg=msg or SUCCESS_MSG, data=data).to_dict()


def success_with_custom_data(data: Mapping[str, Any]) -> dict:
    """Return ``data`` itself with success code and message merged in."""
    body = dict(data)
    body["code"] = SUCCESS
    body["msg"] = SUCCESS_MSG
    return body


def fail(msg: str = None) -> dict:
    return ApiResponse(code=LOGIC_ERROR, msg=msg or FAIL_MSG).to_dict()


def server_error(exc: Exception, msg: str = None) -> dict:
    """Log ``exc`` and return a server error envelope that hides its details."""
    logger.error(describe_error(exc), exc_info=exc)
    return ApiResponse(code=SERVER_ERROR, msg=msg or SERVER_ERROR_MSG).to_dict()


def page_response(result: PageResult) -> dict:
    return success_with_data(
        {
            "total": result.total,
            "totalPage": result.total_page,
            "currentPage": result.current_page,
            "data": result.rows,
            "hasNextPage": result.has_next_page,
        }
    )


def lay_page_response(result: LayPageResult) -> dict:
    return {
        "code": SUCCESS,
        "msg": "ok",
        "count": result.count,
        "data": result.rows,
    }


def handle_error(exc: Exception) -> dict:
    """Map an exception to an envelope.

    Caller mistakes (bad parameters, bad page settings, rejected filters)
    are logic failures carrying their message; everything else is a
    server error.
    """
    if isinstance(exc, (ParamValidationError, ConfigurationError)):
        return fail(str(exc))
    return server_error(exc)
