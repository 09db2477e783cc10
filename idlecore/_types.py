from __future__ import annotations

import math
import operator
from typing import Any, Callable

from idlecore.errors import InvalidAmountError

# Amounts smaller than this are float noise and never touch a balance.
EPSILON = 1e-12

_OPS: dict[str, Callable[[float, float], bool]] = {
    ">=": operator.ge,
    "<=": operator.le,
    ">": operator.gt,
    "<": operator.lt,
    "==": operator.eq,
    "!=": operator.ne,
}


def compare(left: float, op: str, right: float) -> bool:
    """Compare two values using a string operator."""
    fn = _OPS.get(op)
    if fn is None:
        raise ValueError(f"Unknown operator: {op!r}. Expected one of {list(_OPS)}")
    return fn(left, right)


def normalize_id(value: Any) -> str:
    """Trim an id field. None becomes the empty (absent) id."""
    if value is None:
        return ""
    return str(value).strip()


def sanitize_multiplier(value: float) -> float:
    """Collapse NaN, infinities and non-positive values to the neutral 1.0."""
    if not math.isfinite(value) or value <= 0.0:
        return 1.0
    return value


def require_finite(value: float, what: str = "amount") -> float:
    """Return *value* as float, raising InvalidAmountError if it is NaN or infinite."""
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidAmountError(f"{what} {value!r} is not a number") from exc
    if not math.isfinite(number):
        raise InvalidAmountError(f"{what} must be finite, got {value!r}")
    return number


def parse_amount(raw: Any) -> float:
    """Parse a cost amount given as a number or a string.

    Strings may carry surrounding whitespace and thousands separators
    ("1,500"). Booleans, empty strings and non-finite values are rejected.
    """
    if isinstance(raw, bool) or raw is None:
        raise InvalidAmountError(f"Cost amount {raw!r} is not a number")
    if isinstance(raw, str):
        text = raw.strip().replace(",", "")
        if not text:
            raise InvalidAmountError("Cost amount is empty")
        return require_finite(text, "Cost amount")
    return require_finite(raw, "Cost amount")
