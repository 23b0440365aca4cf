"""Chart series for the dashboard's selected window.

One chart for site production/consumption plus one chart per valuation
tile built from its devices' series. Each series carries statistics
whose sum is the server-side aggregated quantity over the window.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from comwatt_monitor.client.api import ComwattApi
from comwatt_monitor.client.errors import ApiError
from comwatt_monitor.client.models import (
    DeviceDto,
    DeviceKindDto,
    SiteTimeSeriesDto,
    TileResponseDto,
    TimeSeriesDto,
)
from comwatt_monitor.client.types import (
    AggregationLevel,
    AggregationType,
    MeasureKind,
    TileType,
    TimeAgoUnit,
)
from comwatt_monitor.domain.downsampler import downsample
from comwatt_monitor.domain.errors import ApiDomainError, DomainError, GenericDomainError
from comwatt_monitor.domain.models import (
    ChartStatistics,
    ChartTimeSeries,
    TimeSeries,
    TimeSeriesType,
)
from comwatt_monitor.domain.time_range import TimeUnit
from comwatt_monitor.polling.base import PollingUseCase, ReAuthenticator, SiteSource, utcnow
from comwatt_monitor.result import Failure, Result, Success
from comwatt_monitor.timezone_utils import parse_api_instant

logger = logging.getLogger(__name__)

SITE_CHART_NAME = "Consumption / Production"
NO_VALID_DEVICES = "No valid devices found"


@dataclass(frozen=True)
class FetchParameters:
    """Window of a chart fetch.

    Without ``start_time`` the window is one ``time_unit`` back from
    ``end_time``, resolved server side.
    """

    time_unit: TimeUnit = TimeUnit.DAY
    end_time: datetime = field(default_factory=utcnow)
    start_time: datetime | None = None

    @property
    def duration(self) -> timedelta:
        if self.start_time is None:
            return timedelta(0)
        return self.end_time - self.start_time


def aggregation_level_for(params: FetchParameters) -> AggregationLevel:
    unit = params.time_unit
    if unit in (TimeUnit.HOUR, TimeUnit.DAY):
        return AggregationLevel.NONE
    if unit is TimeUnit.WEEK:
        return AggregationLevel.HOUR
    if unit is TimeUnit.MONTH:
        return AggregationLevel.DAY
    if unit is TimeUnit.CUSTOM:
        duration = params.duration
        if duration <= timedelta(days=1):
            return AggregationLevel.NONE
        if duration <= timedelta(days=7):
            return AggregationLevel.HOUR
        if duration <= timedelta(days=182):
            return AggregationLevel.DAY
        return AggregationLevel.MONTH
    return AggregationLevel.NONE


def measure_kind_for(params: FetchParameters) -> MeasureKind:
    unit = params.time_unit
    if unit in (TimeUnit.HOUR, TimeUnit.DAY, TimeUnit.MONTH):
        return MeasureKind.FLOW
    if unit is TimeUnit.WEEK:
        return MeasureKind.QUANTITY
    return MeasureKind.FLOW if params.duration < timedelta(days=1) else MeasureKind.QUANTITY


def time_ago_unit_for(unit: TimeUnit) -> TimeAgoUnit:
    try:
        return TimeAgoUnit(unit.value)
    except ValueError:
        return TimeAgoUnit.DAY


def series_type_for(kind: DeviceKindDto | None) -> TimeSeriesType:
    if kind is not None:
        if kind.production:
            return TimeSeriesType.PRODUCTION
        if kind.injection:
            return TimeSeriesType.INJECTION
        if kind.withdrawal:
            return TimeSeriesType.WITHDRAWAL
    return TimeSeriesType.CONSUMPTION


def _values(timestamps: list[str], values: list[float], unit: TimeUnit) -> dict[datetime, float]:
    points = {parse_api_instant(ts): float(v) for ts, v in zip(timestamps, values)}
    return downsample(points, unit)


class FetchTimeSeriesUseCase(PollingUseCase[list[ChartTimeSeries]]):
    name = "time_series"

    def __init__(
        self,
        api: ComwattApi,
        settings: SiteSource,
        session: ReAuthenticator | None,
        parameters: Callable[[], FetchParameters | None],
        *,
        interval: float = 30.0,
        retry_delay: float = 10.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(settings, session, success_delay=interval, retry_delay=retry_delay, clock=clock)
        self._api = api
        self._parameters = parameters

    async def single_fetch(
        self, parameters: FetchParameters | None = None
    ) -> Result[list[ChartTimeSeries], DomainError]:
        """Manual refresh, optionally for a window other than the provider's."""
        if parameters is None:
            return await self.fetch_once()
        return await self._guarded(lambda site_id: self._fetch_charts(site_id, parameters))

    async def _fetch(self, site_id: int) -> Result[list[ChartTimeSeries], DomainError]:
        return await self._fetch_charts(site_id, self._parameters())

    async def _fetch_charts(
        self, site_id: int, params: FetchParameters | None
    ) -> Result[list[ChartTimeSeries], DomainError]:
        if params is None:
            return Failure(GenericDomainError("Selected time range is invalid"))
        logger.debug("Fetching charts for site %d: %s", site_id, params)

        site_chart, tile_charts = await asyncio.gather(
            self._site_chart(site_id, params),
            self._tile_charts(site_id, params),
        )
        if isinstance(site_chart, Failure):
            return site_chart
        if isinstance(tile_charts, Failure):
            error = tile_charts.error
            if isinstance(error, GenericDomainError) and error.message == NO_VALID_DEVICES:
                logger.debug("No valuation tile with device data, site chart only")
                return Success([site_chart.value])
            return tile_charts
        return Success([site_chart.value, *tile_charts.value])

    # ── Site production / consumption ───────────────────────

    async def _fetch_site(
        self,
        site_id: int,
        params: FetchParameters,
        measure_kind: MeasureKind | None = None,
        aggregation_type: AggregationType | None = None,
    ) -> Result[SiteTimeSeriesDto, ApiError]:
        measure_kind = measure_kind or measure_kind_for(params)
        level = aggregation_level_for(params)
        if params.start_time is not None:
            return await self._api.fetch_site_time_series(
                site_id,
                start_time=params.start_time,
                end_time=params.end_time,
                measure_kind=measure_kind,
                aggregation_level=level,
                aggregation_type=aggregation_type,
            )
        return await self._api.fetch_site_time_series_ago(
            site_id,
            time_ago_unit=time_ago_unit_for(params.time_unit),
            time_ago_value=1,
            end_time=params.end_time,
            measure_kind=measure_kind,
            aggregation_level=level,
            aggregation_type=aggregation_type,
        )

    async def _site_chart(
        self, site_id: int, params: FetchParameters
    ) -> Result[ChartTimeSeries, DomainError]:
        result = await self._fetch_site(site_id, params)
        if isinstance(result, Failure):
            return Failure(ApiDomainError(result.error))
        dto = result.value

        production = TimeSeries(
            title="Production",
            type=TimeSeriesType.PRODUCTION,
            values=_values(dto.timestamps, dto.productions, params.time_unit),
        )
        consumption = TimeSeries(
            title="Consumption",
            type=TimeSeriesType.CONSUMPTION,
            values=_values(dto.timestamps, dto.consumptions, params.time_unit),
        )

        totals = await self._fetch_site(
            site_id, params, measure_kind=MeasureKind.QUANTITY, aggregation_type=AggregationType.SUM
        )
        if isinstance(totals, Success) and totals.value.productions and totals.value.consumptions:
            sums = (totals.value.productions[0], totals.value.consumptions[0])
        else:
            sums = (0.0, 0.0)

        return Success(
            ChartTimeSeries(
                name=SITE_CHART_NAME,
                time_series=[production, consumption],
                statistics=[
                    ChartStatistics.with_api_sum(production, sums[0]),
                    ChartStatistics.with_api_sum(consumption, sums[1]),
                ],
            )
        )

    # ── Valuation tiles ─────────────────────────────────────

    async def _fetch_device(
        self,
        device_id: int,
        params: FetchParameters,
        measure_kind: MeasureKind | None = None,
        aggregation_type: AggregationType | None = None,
    ) -> Result[TimeSeriesDto, ApiError]:
        measure_kind = measure_kind or measure_kind_for(params)
        level = aggregation_level_for(params)
        if params.start_time is not None:
            return await self._api.fetch_time_series(
                device_id,
                start_time=params.start_time,
                end_time=params.end_time,
                measure_kind=measure_kind,
                aggregation_level=level,
                aggregation_type=aggregation_type,
            )
        return await self._api.fetch_time_series_ago(
            device_id,
            time_ago_unit=time_ago_unit_for(params.time_unit),
            time_ago_value=1,
            end_time=params.end_time,
            measure_kind=measure_kind,
            aggregation_level=level,
            aggregation_type=aggregation_type,
        )

    async def _device_series(
        self, device: DeviceDto, params: FetchParameters
    ) -> tuple[TimeSeries, ChartStatistics] | None:
        result = await self._fetch_device(device.id, params)
        if isinstance(result, Failure):
            logger.debug("Skipping device %s: %s", device.id, result.error.error_message)
            return None

        series = TimeSeries(
            title=device.name or "",
            type=series_type_for(device.device_kind),
            values=_values(result.value.timestamps, result.value.values, params.time_unit),
            icon=device.device_kind.icon if device.device_kind else None,
        )
        total = await self._fetch_device(
            device.id, params, measure_kind=MeasureKind.QUANTITY, aggregation_type=AggregationType.SUM
        )
        total_value = total.value.values[0] if isinstance(total, Success) and total.value.values else 0.0
        return series, ChartStatistics.with_api_sum(series, total_value)

    async def _tile_chart(self, tile: TileResponseDto, params: FetchParameters) -> ChartTimeSeries | None:
        devices = [
            data.measure_key.device
            for data in tile.tile_chart_datas or []
            if data.measure_key.device is not None and data.measure_key.device.id is not None
        ]
        fetched = await asyncio.gather(*(self._device_series(d, params) for d in devices))
        present = [item for item in fetched if item is not None]
        if not present:
            return None
        return ChartTimeSeries(
            name=tile.name,
            time_series=[series for series, _ in present],
            statistics=[stats for _, stats in present],
        )

    async def _tile_charts(
        self, site_id: int, params: FetchParameters
    ) -> Result[list[ChartTimeSeries], DomainError]:
        tiles = await self._api.fetch_tiles(site_id)
        if isinstance(tiles, Failure):
            return Failure(ApiDomainError(tiles.error))

        valuation = [t for t in tiles.value if t.tile_type is TileType.VALUATION]
        charts = await asyncio.gather(*(self._tile_chart(t, params) for t in valuation))
        present = [chart for chart in charts if chart is not None]
        if not present:
            return Failure(GenericDomainError(NO_VALID_DEVICES))
        return Success(present)
