"""Totals of the selected site since local midnight."""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Callable

from comwatt_monitor.client.api import ComwattApi
from comwatt_monitor.client.types import AggregationLevel, AggregationType, MeasureKind
from comwatt_monitor.domain.errors import ApiDomainError, DomainError
from comwatt_monitor.domain.models import SiteDailyData
from comwatt_monitor.domain.stats import compute_site_stats
from comwatt_monitor.polling.base import PollingUseCase, ReAuthenticator, SiteSource, utcnow
from comwatt_monitor.result import Failure, Result, Success
from comwatt_monitor.timezone_utils import local_midnight, parse_api_instant


class FetchSiteDailyDataUseCase(PollingUseCase[SiteDailyData]):
    name = "daily"

    def __init__(
        self,
        api: ComwattApi,
        settings: SiteSource,
        session: ReAuthenticator | None,
        tz: tzinfo,
        *,
        interval: float = 60.0,
        retry_delay: float = 10.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(settings, session, success_delay=interval, retry_delay=retry_delay, clock=clock)
        self._api = api
        self._tz = tz

    async def _fetch(self, site_id: int) -> Result[SiteDailyData, DomainError]:
        now = self._clock()
        result = await self._api.fetch_site_time_series(
            site_id,
            start_time=local_midnight(now, self._tz),
            end_time=now,
            measure_kind=MeasureKind.QUANTITY,
            aggregation_level=AggregationLevel.NONE,
            aggregation_type=AggregationType.SUM,
        )
        if isinstance(result, Failure):
            return Failure(ApiDomainError(result.error))

        series = result.value
        return Success(
            compute_site_stats(
                productions=series.productions,
                consumptions=series.consumptions,
                injections=series.injections,
                withdrawals=series.withdrawals,
                last_timestamp=parse_api_instant(series.timestamps[-1]) if series.timestamps else None,
                refreshed_at=now,
            )
        )
