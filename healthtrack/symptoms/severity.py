"""Coerce patient-reported severity (number or free text) onto the 1-10 scale."""

from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

SEVERITY_MIN = 1
SEVERITY_MAX = 10

_SEVERITY_TOKEN = re.compile(r"\b(10|[1-9])\b")


def _clamp(value: float) -> int | None:
    if not math.isfinite(value):
        return None
    rounded = int(Decimal(repr(value)).to_integral_value(rounding=ROUND_HALF_UP))
    return min(SEVERITY_MAX, max(SEVERITY_MIN, rounded))


def normalize_severity(value: Any) -> int | None:
    """Return an integer in [1, 10], or None when nothing usable was supplied.

    Numbers are clamped rather than rejected. Text yields the first standalone
    1-10 token ("about an 8 out of 10" -> 8), falling back to parsing the whole
    string as a number.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return min(SEVERITY_MAX, max(SEVERITY_MIN, value))

    if isinstance(value, float):
        return _clamp(value)

    if isinstance(value, str):
        match = _SEVERITY_TOKEN.search(value)
        if match:
            return int(match.group(1))
        try:
            return _clamp(float(Decimal(value.strip())))
        except (InvalidOperation, ValueError):
            return None

    return None
