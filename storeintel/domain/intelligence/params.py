"""Forgiving normalization of user-editable numeric parameters.

Dashboards pass whatever the user typed. Rather than rejecting odd values the
engine falls back to the default for missing, non-numeric or zero input and
clamps everything else into range.
"""

from __future__ import annotations

import math
from typing import Any


def clamp_param(raw: Any, default: int, lower: int, upper: int) -> int:
    """Normalize ``raw`` into ``[lower, upper]``.

    Examples:
        >>> clamp_param(None, 30, 1, 365)
        30
        >>> clamp_param("abc", 30, 1, 365)
        30
        >>> clamp_param("0", 30, 1, 365)
        30
        >>> clamp_param("-4", 30, 1, 365)
        1
        >>> clamp_param("9999", 7, 1, 60)
        60
    """
    try:
        value = float(raw) if raw is not None and str(raw).strip() != "" else 0.0
    except (TypeError, ValueError):
        value = 0.0

    if math.isnan(value) or value == 0:
        value = float(default)

    return int(min(max(value, lower), upper))
