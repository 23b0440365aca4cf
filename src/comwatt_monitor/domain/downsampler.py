"""Shape-preserving reduction of chart series (largest triangle three buckets)."""

from __future__ import annotations

from datetime import datetime
from typing import Mapping

from comwatt_monitor.domain.time_range import TimeUnit

TARGET_POINTS = {
    TimeUnit.HOUR: 120,
    TimeUnit.DAY: 144,   # one point per 10 min
    TimeUnit.WEEK: 168,  # one point per hour
}
DEFAULT_TARGET_POINTS = 150


def target_points(time_unit: TimeUnit) -> int:
    return TARGET_POINTS.get(time_unit, DEFAULT_TARGET_POINTS)


def downsample(data: Mapping[datetime, float], time_unit: TimeUnit) -> dict[datetime, float]:
    return downsample_time_series(data, target_points(time_unit))


def downsample_time_series(data: Mapping[datetime, float], target: int) -> dict[datetime, float]:
    """Reduce ``data`` to exactly ``target`` points keeping the first and last.

    Points are (epoch seconds, value). The interior is split into
    ``target - 2`` buckets of near-equal size; from each bucket the point
    forming the largest triangle with the previously kept point and the
    centroid of the next bucket is kept. Small inputs come back unchanged.
    """
    if len(data) <= target or len(data) <= 2 or target < 3:
        return dict(data)

    points = sorted(data.items())
    xs = [ts.timestamp() for ts, _ in points]
    ys = [float(v) for _, v in points]
    n = len(points)

    interior = n - 2
    buckets = target - 2
    # Bucket i covers interior indices [bounds[i], bounds[i + 1])
    bounds = [1 + (i * interior) // buckets for i in range(buckets + 1)]

    selected = [0]
    prev = 0
    for i in range(buckets):
        start, end = bounds[i], bounds[i + 1]

        if i + 1 < buckets:
            next_start, next_end = bounds[i + 1], bounds[i + 2]
        else:
            next_start, next_end = n - 1, n
        count = next_end - next_start
        cx = sum(xs[next_start:next_end]) / count
        cy = sum(ys[next_start:next_end]) / count

        ax, ay = xs[prev], ys[prev]
        best, best_area = start, -1.0
        for j in range(start, end):
            area = abs((ax - cx) * (ys[j] - ay) - (ax - xs[j]) * (cy - ay)) * 0.5
            if area > best_area:
                best, best_area = j, area
        selected.append(best)
        prev = best
    selected.append(n - 1)

    return {points[k][0]: points[k][1] for k in selected}
