"""Membership test over homogeneous sequences."""
import json
from collections.abc import Iterable, Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class CanonicalRecord(Protocol):
    def canonical(self) -> str: ...


def _ordered(value: Any) -> Any:
    # Keys are ordered by repr so mixed key types never get compared.
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: repr(kv[0]))
        return [[repr(k), _ordered(v)] for k, v in items]
    if isinstance(value, (list, tuple)):
        return [_ordered(v) for v in value]
    return value


def _is_record(value: Any) -> bool:
    return isinstance(value, (CanonicalRecord, BaseModel, Mapping))


def canonical_form(value: Any) -> Any:
    """Return the value used for equality in ``contains``.

    Structured records compare by a deterministic string form rather than
    by structure; scalars are returned unchanged.
    """
    if isinstance(value, CanonicalRecord):
        return value.canonical()
    if isinstance(value, BaseModel):
        return json.dumps(value.model_dump(mode="json"), sort_keys=True)
    if isinstance(value, Mapping):
        return json.dumps(_ordered(value), default=str)
    return value


def _match_key(value: Any) -> tuple:
    if _is_record(value):
        return ("record", canonical_form(value))
    # Scalars only match values of the same type: True is not 1, 2.0 is not 2.
    return (type(value), value)


def contains(collection: Iterable[Any], element: Any) -> bool:
    """True if any item of ``collection`` equals ``element``."""
    probe = _match_key(element)
    for item in collection:
        if _match_key(item) == probe:
            return True
    return False
