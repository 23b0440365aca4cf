"""Latest power sample of the selected site, re-polled when the next one is due."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from comwatt_monitor.client.api import ComwattApi
from comwatt_monitor.client.models import SiteTimeSeriesDto
from comwatt_monitor.client.types import AggregationLevel, MeasureKind
from comwatt_monitor.domain.errors import ApiDomainError, DomainError, GenericDomainError
from comwatt_monitor.domain.models import SiteRealtimeData
from comwatt_monitor.domain.trend import calculate_trend
from comwatt_monitor.polling.base import PollingUseCase, ReAuthenticator, SiteSource, utcnow
from comwatt_monitor.result import Failure, Result, Success
from comwatt_monitor.timezone_utils import parse_api_instant, rfc1123

logger = logging.getLogger(__name__)

MAX_POWER_W = 9000.0
SAMPLE_PERIOD = timedelta(minutes=2, seconds=5)  # server cadence + clock skew pad
FALLBACK_DELAY_SECONDS = 10.0


def compute_realtime_delay(
    last_sample: datetime,
    now: datetime,
    sample_period: timedelta = SAMPLE_PERIOD,
    fallback: float = FALLBACK_DELAY_SECONDS,
) -> float:
    """Seconds until the sample after ``last_sample`` should be available.

    Never negative; when that moment has already passed the fixed
    ``fallback`` is used instead of polling again immediately.
    """
    remaining = (last_sample + sample_period - now).total_seconds()
    return remaining if remaining > 0 else fallback


class FetchSiteRealtimeDataUseCase(PollingUseCase[SiteRealtimeData]):
    name = "realtime"

    def __init__(
        self,
        api: ComwattApi,
        settings: SiteSource,
        session: ReAuthenticator | None,
        *,
        retry_delay: float = 10.0,
        window: timedelta = timedelta(minutes=5),
        sample_period: timedelta = SAMPLE_PERIOD,
        fallback_delay: float = FALLBACK_DELAY_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(
            settings, session, success_delay=fallback_delay, retry_delay=retry_delay, clock=clock
        )
        self._api = api
        self._window = window
        self._sample_period = sample_period
        self._fallback_delay = fallback_delay

    async def _fetch(self, site_id: int) -> Result[SiteRealtimeData, DomainError]:
        now = self._clock()
        result = await self._api.fetch_site_time_series(
            site_id,
            start_time=now - self._window,
            end_time=now,
            measure_kind=MeasureKind.FLOW,
            aggregation_level=AggregationLevel.NONE,
        )
        if isinstance(result, Failure):
            return Failure(ApiDomainError(result.error))
        return self._map(result.value, now)

    def _map(self, series: SiteTimeSeriesDto, now: datetime) -> Result[SiteRealtimeData, DomainError]:
        if not series.timestamps or not all(
            (series.productions, series.consumptions, series.injections, series.withdrawals)
        ):
            return Failure(GenericDomainError("No realtime sample in the last window"))

        last_update = parse_api_instant(series.timestamps[-1])
        production = series.productions[-1]
        consumption = series.consumptions[-1]
        injection = series.injections[-1]
        withdrawals = series.withdrawals[-1]
        return Success(
            SiteRealtimeData(
                production=production,
                consumption=consumption,
                injection=injection,
                withdrawals=withdrawals,
                production_rate=production / MAX_POWER_W,
                consumption_rate=consumption / MAX_POWER_W,
                injection_rate=injection / MAX_POWER_W,
                withdrawals_rate=withdrawals / MAX_POWER_W,
                production_trend=calculate_trend(series.productions),
                consumption_trend=calculate_trend(series.consumptions),
                injection_trend=calculate_trend(series.injections),
                withdrawals_trend=calculate_trend(series.withdrawals),
                last_update_timestamp=last_update,
                update_date=rfc1123(last_update),
                last_refresh_date=rfc1123(now),
            )
        )

    def next_delay(self, value: SiteRealtimeData) -> float:
        delay = compute_realtime_delay(
            value.last_update_timestamp, self._clock(), self._sample_period, self._fallback_delay
        )
        if delay == self._fallback_delay:
            logger.debug("Next sample already due, using fallback delay %.0fs", delay)
        return delay
