from __future__ import annotations

import math
from typing import Any


def normalize_confidence(raw: Any) -> float:
    """Map an oracle confidence to [0, 1].

    Values above 1 are read as percentages. Anything non-numeric, negative or
    NaN becomes 0.
    """
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(value) or value <= 0:
        return 0.0
    if value > 1:
        value = value / 100
    return min(value, 1.0)


def format_confidence(raw: Any) -> str:
    return f"{round(normalize_confidence(raw) * 100)}%"
