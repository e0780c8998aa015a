from __future__ import annotations

import math
import numbers
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

# Currency symbols, thousands separators and whitespace allowed in form input.
_NOISE = re.compile(r"[\s,$]")


def to_number(value: Any, field: str = "value") -> float | None:
    """
    Coerce a form value into a float.

    None, empty strings, NaN and infinities count as absent and return None.
    Text that is present but not numeric raises ValueError.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = _NOISE.sub("", value)
        if not text:
            return None
        try:
            number = float(text)
        except ValueError as e:
            raise ValueError(f"{field} must be a number; got {value!r}") from e
    elif isinstance(value, (numbers.Real, Decimal)):
        number = float(value)
    else:
        raise ValueError(f"{field} must be a number; got {type(value).__name__}")

    if not math.isfinite(number):
        return None
    return number


def positive_or_none(value: Any, field: str = "value") -> float | None:
    number = to_number(value, field)
    if number is None or number <= 0:
        return None
    return number


def round_half_up(value: float, places: int) -> float:
    # Half away from zero, not the banker's rounding of round().
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
