"""Tests for the trend calculator."""

from __future__ import annotations

import math

import pytest

from comwatt_monitor.domain.models import Trend
from comwatt_monitor.domain.trend import calculate_trend


class TestCalculateTrend:
    @pytest.mark.parametrize(
        "values, expected",
        [
            ([100, 120, 140, 160, 180], Trend.INCREASING),
            ([10, 10, 10, 10, 10], Trend.STABLE),
            ([180, 160, 140, 120, 100], Trend.DECREASING),
        ],
    )
    def test_direction(self, values, expected) -> None:
        assert calculate_trend(values) is expected

    @pytest.mark.parametrize("values", [[], [10.0], [math.nan, math.nan], [math.nan, 5.0]])
    def test_too_few_samples(self, values) -> None:
        assert calculate_trend(values) is None

    def test_threshold_sensitivity(self) -> None:
        values = [100, 102.5, 105]
        assert calculate_trend(values, 0.1) is Trend.STABLE
        assert calculate_trend(values, 0.02) is Trend.INCREASING

    def test_nan_samples_are_dropped(self) -> None:
        assert calculate_trend([100, math.nan, 120, 140, math.nan, 160]) is Trend.INCREASING

    def test_zero_mean_uses_raw_slope(self) -> None:
        assert calculate_trend([-1, 1]) is Trend.INCREASING
        assert calculate_trend([0.05, -0.05]) is Trend.STABLE

    def test_deterministic(self) -> None:
        values = [5.0, 7.0, 6.0, 9.0]
        assert {calculate_trend(values) for _ in range(10)} == {calculate_trend(values)}

    def test_accepts_generators(self) -> None:
        assert calculate_trend(v * 10.0 for v in range(1, 6)) is Trend.INCREASING
