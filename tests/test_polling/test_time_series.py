"""Tests for the chart time-series poll loop."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from comwatt_monitor.client.errors import HttpError
from comwatt_monitor.client.models import DeviceKindDto, TileResponseDto, TimeSeriesDto
from comwatt_monitor.client.types import (
    AggregationLevel,
    AggregationType,
    MeasureKind,
    TimeAgoUnit,
)
from comwatt_monitor.domain.errors import ApiDomainError, GenericDomainError
from comwatt_monitor.domain.models import ChartStatistics, TimeSeriesType
from comwatt_monitor.domain.time_range import TimeUnit
from comwatt_monitor.polling.time_series import (
    SITE_CHART_NAME,
    FetchParameters,
    FetchTimeSeriesUseCase,
    aggregation_level_for,
    measure_kind_for,
    series_type_for,
    time_ago_unit_for,
)
from comwatt_monitor.result import Failure, Success
from fakes import FakeApi, site_series

UTC = timezone.utc
END = datetime(2024, 10, 7, 12, 0, tzinfo=UTC)
DAY = FetchParameters(time_unit=TimeUnit.DAY, end_time=END)


def stamps(count: int) -> list[str]:
    return [(END - timedelta(minutes=2 * (count - i))).isoformat() for i in range(count)]


def site_response(*args, measure_kind=None, aggregation_type=None, **kwargs):
    if aggregation_type is AggregationType.SUM:
        return site_series(timestamps=[END.isoformat()], productions=[5000.0], consumptions=[7000.0])
    return site_series(
        timestamps=stamps(3), productions=[100.0, 200.0, 300.0], consumptions=[400.0, 500.0, 600.0]
    )


def device_response(device_id, *args, aggregation_type=None, **kwargs):
    if device_id == 12:
        return Failure(HttpError(message="", code=404))
    if aggregation_type is AggregationType.SUM:
        return Success(TimeSeriesDto(timestamps=[END.isoformat()], values=[321.0]))
    return Success(TimeSeriesDto(timestamps=stamps(2), values=[10.0, 30.0]))


def tile(name: str, tile_type: str, device_ids: list[int]) -> TileResponseDto:
    return TileResponseDto.model_validate({
        "tileType": tile_type,
        "id": len(name),
        "name": name,
        "tileChartDatas": [
            {"measureKey": {"device": {
                "id": device_id,
                "name": f"device {device_id}",
                "deviceKind": {"icon": "plug", "production": False},
            }}}
            for device_id in device_ids
        ],
    })


def make(api, settings, params=lambda: DAY) -> FetchTimeSeriesUseCase:
    return FetchTimeSeriesUseCase(api, settings, None, params)


class TestParameterMapping:
    @pytest.mark.parametrize(
        "unit, level, kind",
        [
            (TimeUnit.HOUR, AggregationLevel.NONE, MeasureKind.FLOW),
            (TimeUnit.DAY, AggregationLevel.NONE, MeasureKind.FLOW),
            (TimeUnit.WEEK, AggregationLevel.HOUR, MeasureKind.QUANTITY),
            (TimeUnit.MONTH, AggregationLevel.DAY, MeasureKind.FLOW),
        ],
    )
    def test_rolling_units(self, unit, level, kind) -> None:
        params = FetchParameters(time_unit=unit, end_time=END)
        assert aggregation_level_for(params) is level
        assert measure_kind_for(params) is kind

    @pytest.mark.parametrize(
        "duration, level, kind",
        [
            (timedelta(hours=6), AggregationLevel.NONE, MeasureKind.FLOW),
            (timedelta(days=3), AggregationLevel.HOUR, MeasureKind.QUANTITY),
            (timedelta(days=60), AggregationLevel.DAY, MeasureKind.QUANTITY),
            (timedelta(days=400), AggregationLevel.MONTH, MeasureKind.QUANTITY),
        ],
    )
    def test_custom_by_duration(self, duration, level, kind) -> None:
        params = FetchParameters(time_unit=TimeUnit.CUSTOM, end_time=END, start_time=END - duration)
        assert aggregation_level_for(params) is level
        assert measure_kind_for(params) is kind

    def test_time_ago_unit(self) -> None:
        assert time_ago_unit_for(TimeUnit.WEEK) is TimeAgoUnit.WEEK
        assert time_ago_unit_for(TimeUnit.CUSTOM) is TimeAgoUnit.DAY

    def test_series_type(self) -> None:
        assert series_type_for(DeviceKindDto(production=True)) is TimeSeriesType.PRODUCTION
        assert series_type_for(DeviceKindDto(injection=True)) is TimeSeriesType.INJECTION
        assert series_type_for(DeviceKindDto(withdrawal=True)) is TimeSeriesType.WITHDRAWAL
        assert series_type_for(None) is TimeSeriesType.CONSUMPTION


@pytest.mark.asyncio
class TestFetchTimeSeries:
    async def test_site_and_tile_charts(self, site_settings) -> None:
        api = FakeApi(
            fetch_site_time_series_ago=site_response,
            fetch_tiles=Success([tile("Heating", "VALUATION", [11, 12]), tile("Other", "THIRD_PARTY", [13])]),
            fetch_time_series_ago=device_response,
        )
        result = await make(api, site_settings).fetch_once()

        assert isinstance(result, Success)
        site_chart, heating = result.value
        assert site_chart.name == SITE_CHART_NAME
        assert [s.type for s in site_chart.time_series] == [
            TimeSeriesType.PRODUCTION, TimeSeriesType.CONSUMPTION,
        ]
        assert site_chart.statistics[0] == ChartStatistics(min=100.0, max=300.0, average=200.0, sum=5000.0)
        assert site_chart.statistics[1].sum == 7000.0

        # Device 12 fails and is left out; statistics stay aligned with series
        assert heating.name == "Heating"
        assert [s.title for s in heating.time_series] == ["device 11"]
        assert heating.time_series[0].icon == "plug"
        assert heating.statistics == [ChartStatistics(min=10.0, max=30.0, average=20.0, sum=321.0)]

        fetched_devices = {args[0] for args, _ in api.calls_to("fetch_time_series_ago")}
        assert fetched_devices == {11, 12}

    async def test_relative_window_for_rolling_units(self, site_settings) -> None:
        api = FakeApi(
            fetch_site_time_series_ago=site_response,
            fetch_tiles=Success([]),
        )
        await make(api, site_settings).fetch_once()

        (args, kwargs), _ = api.calls_to("fetch_site_time_series_ago")
        assert args == (1,)
        assert kwargs["time_ago_unit"] is TimeAgoUnit.DAY
        assert kwargs["time_ago_value"] == 1
        assert kwargs["end_time"] == END

    async def test_no_valid_devices_gives_site_chart_only(self, site_settings) -> None:
        api = FakeApi(
            fetch_site_time_series_ago=site_response,
            fetch_tiles=Success([tile("Broken", "VALUATION", [12])]),
            fetch_time_series_ago=device_response,
        )
        result = await make(api, site_settings).fetch_once()
        assert isinstance(result, Success)
        assert [chart.name for chart in result.value] == [SITE_CHART_NAME]

    async def test_tiles_error_fails_iteration(self, site_settings) -> None:
        error = HttpError(message="", code=500)
        api = FakeApi(fetch_site_time_series_ago=site_response, fetch_tiles=Failure(error))
        result = await make(api, site_settings).fetch_once()
        assert result == Failure(ApiDomainError(error))

    async def test_site_error_wins(self, site_settings) -> None:
        site_error = HttpError(message="", code=401)
        api = FakeApi(
            fetch_site_time_series_ago=Failure(site_error),
            fetch_tiles=Failure(HttpError(message="", code=500)),
        )
        result = await make(api, site_settings).fetch_once()
        assert result == Failure(ApiDomainError(site_error))
        assert result.error.is_unauthorized

    async def test_missing_totals_default_to_zero(self, site_settings) -> None:
        def no_totals(*args, aggregation_type=None, **kwargs):
            if aggregation_type is AggregationType.SUM:
                return Failure(HttpError(message="", code=500))
            return site_response()

        api = FakeApi(fetch_site_time_series_ago=no_totals, fetch_tiles=Success([]))
        result = await make(api, site_settings).fetch_once()
        assert [stats.sum for stats in result.value[0].statistics] == [0.0, 0.0]

    async def test_invalid_range(self, site_settings) -> None:
        api = FakeApi()
        result = await make(api, site_settings, params=lambda: None).fetch_once()
        assert result == Failure(GenericDomainError("Selected time range is invalid"))
        assert api.calls == []

    async def test_custom_range_uses_explicit_window(self, site_settings) -> None:
        api = FakeApi(fetch_site_time_series=site_response, fetch_tiles=Success([]))
        params = FetchParameters(
            time_unit=TimeUnit.CUSTOM, end_time=END, start_time=END - timedelta(days=3)
        )
        result = await make(api, site_settings).single_fetch(params)

        assert isinstance(result, Success)
        (args, kwargs), _ = api.calls_to("fetch_site_time_series")
        assert kwargs["start_time"] == END - timedelta(days=3)
        assert kwargs["aggregation_level"] is AggregationLevel.HOUR
        assert kwargs["measure_kind"] is MeasureKind.QUANTITY

    async def test_series_are_downsampled(self, site_settings) -> None:
        def long_series(*args, aggregation_type=None, **kwargs):
            if aggregation_type is AggregationType.SUM:
                return site_response(aggregation_type=aggregation_type)
            count = 720
            return site_series(
                timestamps=stamps(count),
                productions=[float(i % 50) for i in range(count)],
                consumptions=[float(i % 70) for i in range(count)],
            )

        api = FakeApi(fetch_site_time_series_ago=long_series, fetch_tiles=Success([]))
        result = await make(api, site_settings).fetch_once()
        production = result.value[0].time_series[0]
        assert len(production.values) == 144
