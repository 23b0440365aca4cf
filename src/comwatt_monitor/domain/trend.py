"""Direction of a short series of samples."""

from __future__ import annotations

import math
from typing import Iterable

from comwatt_monitor.domain.models import Trend

DEFAULT_STABILITY_THRESHOLD = 0.1


def calculate_trend(
    values: Iterable[float], stability_threshold: float = DEFAULT_STABILITY_THRESHOLD
) -> Trend | None:
    """Classify a chronological series by the slope of its least-squares line.

    The slope over sample index is divided by the absolute mean so the
    threshold is a relative change per sample (raw slope when the mean is 0).
    Returns None when fewer than 2 non-NaN samples remain.
    """
    valid = [v for v in values if not math.isnan(v)]
    n = len(valid)
    if n < 2:
        return None

    sum_x = n * (n - 1) / 2
    sum_y = sum(valid)
    sum_xy = sum(i * y for i, y in enumerate(valid))
    sum_xx = sum(i * i for i in range(n))

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return Trend.STABLE

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    mean = sum_y / n
    normalized = slope / abs(mean) if mean != 0 else slope

    if normalized > stability_threshold:
        return Trend.INCREASING
    if normalized < -stability_threshold:
        return Trend.DECREASING
    return Trend.STABLE
