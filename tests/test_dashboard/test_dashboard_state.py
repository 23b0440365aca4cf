"""Tests for the dashboard selection state."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from comwatt_monitor.client.errors import HttpError
from comwatt_monitor.client.types import AggregationType, MeasureKind
from comwatt_monitor.dashboard.state import DashboardState, RangeStep
from comwatt_monitor.domain.time_range import DashboardTimeUnit, TimeUnit
from comwatt_monitor.result import Failure
from fakes import FakeApi, site_series

UTC = timezone.utc
NOW = datetime(2024, 10, 9, 15, 30, tzinfo=UTC)


def make(settings=None) -> DashboardState:
    return DashboardState(UTC, settings, clock=lambda: NOW)


class TestSelection:
    def test_defaults_to_day(self) -> None:
        state = make()
        assert state.unit is DashboardTimeUnit.DAY
        assert state.selected_offset() == 0
        assert state.range_bounds() == (NOW - timedelta(days=1), NOW)

    def test_step_back_and_forward(self) -> None:
        state = make()
        state.step(RangeStep.PREV)
        state.step(RangeStep.PREV)
        assert state.selected_offset() == 2
        assert state.range_bounds()[1] == NOW - timedelta(days=2)

        state.step(RangeStep.NEXT)
        state.step(RangeStep.NEXT)
        state.step(RangeStep.NEXT)
        assert state.selected_offset() == 0

    def test_offsets_are_per_unit(self) -> None:
        state = make()
        state.step(RangeStep.PREV)
        state.unit = DashboardTimeUnit.WEEK
        assert state.selected_offset() == 0

    def test_custom_is_not_stepped(self) -> None:
        state = make()
        state.unit = DashboardTimeUnit.CUSTOM
        before = state.time_range
        assert state.step(RangeStep.PREV) == before
        assert state.selected_offset() is None

    def test_set_custom_range(self) -> None:
        state = make()
        assert state.set_custom_range(NOW - timedelta(days=3), NOW) is None
        assert state.set_custom_range(NOW, NOW - timedelta(days=3)) == "Start must be before end"


class TestFetchParameters:
    def test_rolling_unit_sends_only_end(self) -> None:
        state = make()
        state.unit = DashboardTimeUnit.WEEK
        state.jump_to(1)
        params = state.fetch_parameters()
        assert params.time_unit is TimeUnit.WEEK
        assert params.start_time is None
        assert params.end_time == datetime(2024, 10, 7, tzinfo=UTC)

    def test_custom_sends_both_ends(self) -> None:
        state = make()
        state.unit = DashboardTimeUnit.CUSTOM
        state.set_custom_range(NOW - timedelta(days=3), NOW - timedelta(days=1))
        params = state.fetch_parameters()
        assert params.time_unit is TimeUnit.CUSTOM
        assert params.start_time == NOW - timedelta(days=3)
        assert params.end_time == NOW - timedelta(days=1)

    def test_invalid_custom_gives_nothing(self) -> None:
        state = make()
        state.unit = DashboardTimeUnit.CUSTOM
        state.set_custom_range(NOW, NOW + timedelta(hours=2))
        assert state.fetch_parameters() is None


@pytest.mark.asyncio
class TestPersistence:
    async def test_unit_persisted_and_restored(self, settings_store) -> None:
        state = make(settings_store)
        assert await state.select_unit(2) is DashboardTimeUnit.WEEK

        restored = make(settings_store)
        await restored.load()
        assert restored.unit is DashboardTimeUnit.WEEK

    async def test_unknown_index_falls_back_to_day(self, settings_store) -> None:
        await settings_store.save_dashboard_selected_time_unit_index(7)
        state = make(settings_store)
        await state.load()
        assert state.unit is DashboardTimeUnit.DAY


@pytest.mark.asyncio
class TestRangeStats:
    async def test_stats_over_selected_range(self, settings_store) -> None:
        await settings_store.save_site_id(1)
        await settings_store.save_production_noise_threshold(0)
        api = FakeApi(fetch_site_time_series=site_series(
            timestamps=["2024-10-09T15:00:00Z"],
            productions=[1000.0], consumptions=[1200.0], injections=[200.0], withdrawals=[300.0],
        ))
        state = make(settings_store)

        stats = await state.refresh_range_stats(api)

        assert stats.self_consumption_rate == pytest.approx(0.8)
        assert stats.autonomy_rate == pytest.approx(0.75)
        assert state.range_stats is stats
        (args, kwargs), = api.calls_to("fetch_site_time_series")
        assert args == (1,)
        assert (kwargs["start_time"], kwargs["end_time"]) == state.range_bounds()
        assert kwargs["measure_kind"] is MeasureKind.QUANTITY
        assert kwargs["aggregation_type"] is AggregationType.SUM

    async def test_failure_keeps_previous_stats(self, settings_store) -> None:
        await settings_store.save_site_id(1)
        api = FakeApi(fetch_site_time_series=Failure(HttpError(message="", code=500)))
        state = make(settings_store)
        assert await state.refresh_range_stats(api) is None

    async def test_noise_threshold_applies_to_range_stats(self, settings_store) -> None:
        await settings_store.save_site_id(1)
        api = FakeApi(fetch_site_time_series=site_series(
            timestamps=["2024-10-09T15:00:00Z"],
            productions=[3.0], consumptions=[500.0], injections=[0.0], withdrawals=[500.0],
        ))
        state = DashboardState(UTC, settings_store, clock=lambda: NOW, default_noise_threshold=4)

        stats = await state.refresh_range_stats(api)
        assert stats.total_production == 0.0

        await settings_store.save_production_noise_threshold(2)
        stats = await state.refresh_range_stats(api)
        assert stats.total_production == 3.0
