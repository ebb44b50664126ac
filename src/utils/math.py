from __future__ import annotations

import math


def is_positive_finite(value: float | None) -> bool:
    if value is None:
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number > 0


def safe_ratio(numerator: float | None, denominator: float | None) -> float | None:
    """Return numerator / denominator, or None when either side is unusable."""
    if numerator is None or not is_positive_finite(denominator):
        return None
    value = float(numerator) / float(denominator)
    if not math.isfinite(value):
        return None
    return value


def mean_positive(values: list[float]) -> float:
    usable = [float(v) for v in values if is_positive_finite(v)]
    if not usable:
        return 0.0
    return sum(usable) / len(usable)
