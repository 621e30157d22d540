"""MD5 helpers and request-parameter signing.

The string to sign is every ``key=value`` pair sorted by key and joined
with ``&``, followed by ``&paramsSecret=<secret>``. The signature is the
upper-case hex MD5 of that string.
"""
import hashlib
import hmac
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pageutils.config import PageUtilsConfig, config
from pageutils.utils.errors import ConfigurationError


def md5_hex(data: str) -> str:
    return hashlib.md5(data.encode("utf-8")).hexdigest()


def _format_float(value: float) -> str:
    """Shortest round-trip form, switching to exponent form like Go's %v."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "-0" if math.copysign(1.0, value) < 0 else "0"

    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    exp = exponent + len(digits) - 1
    prefix = "-" if sign else ""
    if exp < -4 or exp >= 6:
        mantissa = str(digits[0])
        if len(digits) > 1:
            mantissa += "." + "".join(str(d) for d in digits[1:])
        return f"{prefix}{mantissa}e{'+' if exp >= 0 else '-'}{abs(exp):02d}"
    return format(Decimal(repr(value)).normalize(), "f")


def _sorted_keys(mapping: Mapping) -> list:
    try:
        return sorted(mapping)
    except TypeError:
        return sorted(mapping, key=repr)


def format_value(value: Any) -> str:
    """Render a parameter value the way Go's ``%v`` prints it.

    Covers nil, booleans, numbers, strings, lists (``[1 2]``) and maps
    (``map[a:1 b:2]``, keys sorted). Other objects fall back to ``str()``,
    so their signatures may not match a Go signer.
    """
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_float(value)
    if isinstance(value, Mapping):
        pairs = [f"{format_value(k)}:{format_value(value[k])}" for k in _sorted_keys(value)]
        return f"map[{' '.join(pairs)}]"
    if isinstance(value, (list, tuple)):
        return f"[{' '.join(format_value(v) for v in value)}]"
    return str(value)


class ParamSigner:
    """Signs and verifies parameter mappings with a shared secret."""

    def __init__(self, secret: str):
        if not secret:
            raise ConfigurationError("Parameter signing secret must not be empty.")
        self._secret = secret

    @classmethod
    def from_config(cls, cfg: PageUtilsConfig = config) -> "ParamSigner":
        return cls(cfg.param_secret)

    def string_to_sign(self, params: Mapping[str, Any]) -> str:
        pairs = [f"{key}={format_value(params[key])}" for key in sorted(params)]
        return f"{'&'.join(pairs)}&paramsSecret={self._secret}"

    def sign(self, params: Mapping[str, Any]) -> str:
        return md5_hex(self.string_to_sign(params)).upper()

    def verify(self, params: Mapping[str, Any], signature: str) -> bool:
        """Check ``signature`` against ``params`` (case-insensitive)."""
        expected = self.sign(params)
        return hmac.compare_digest(expected, (signature or "").upper())
