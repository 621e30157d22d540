"""Binding request parameters onto pydantic models."""
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pageutils.utils.errors import ParamValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


def first_error_message(err: ValidationError) -> str:
    """Render the first validation error as ``field: message``."""
    first = err.errors()[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first['msg']}" if loc else first["msg"]


def bind_params(model_cls: type[ModelT], params: Mapping[str, Any]) -> ModelT:
    """Validate ``params`` into ``model_cls``.

    Raises ParamValidationError with the first error as its message; the
    full pydantic error list is kept on ``.errors``.
    """
    try:
        return model_cls.model_validate(dict(params))
    except ValidationError as e:
        raise ParamValidationError(first_error_message(e), errors=e.errors()) from e
