"""Normalization helpers.

Centralizes defensive parsing of gateway payload values.  Gateways relay
whatever the sensor firmware emits, so numbers may arrive as strings,
placeholders (``""``, ``"--"``, ``"nan"``) or be missing entirely.
"""

from __future__ import annotations

import math
from typing import Any

# Placeholder strings treated as "value not available".
SENTINEL_STRINGS = frozenset({"", "--", "nan", "NaN", "null", "undefined"})


def is_sentinel(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() in SENTINEL_STRINGS:
        return True
    return isinstance(value, float) and math.isnan(value)


def safe_float(value: Any) -> float | None:
    if is_sentinel(value) or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(round(parsed))


def safe_bool(value: Any) -> bool | None:
    """Parse firmware booleans (``true``, ``1``, ``"ok"``...)."""
    if is_sentinel(value):
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "y", "on", "ok"}:
            return True
        if normalized in {"0", "false", "no", "n", "off", "error", "fail"}:
            return False
    return None


def non_negative_or_sentinel(value: float | int | None) -> float | int:
    """Return *value* when it is a usable quantity, ``-1`` otherwise."""
    if value is None or value < 0:
        return -1
    return value
