"""Tempo tariff colors for today and tomorrow plus the season's day counts."""

from __future__ import annotations

from datetime import datetime, timedelta, tzinfo
from typing import Callable

from comwatt_monitor.client.api import ComwattApi
from comwatt_monitor.client.models import ElectricityPriceResponseDto, TempoDaySynthesisDto
from comwatt_monitor.domain.errors import ApiDomainError, DomainError
from comwatt_monitor.domain.models import DayCount, ElectricityPrice, TempoDayColor
from comwatt_monitor.polling.base import PollingUseCase, ReAuthenticator, SiteSource, utcnow
from comwatt_monitor.result import Failure, Result, Success


def _day_count(synthesis: TempoDaySynthesisDto) -> DayCount:
    return DayCount(used=synthesis.number_of_days, total=synthesis.total_number_of_days)


def _color(raw: str | None) -> TempoDayColor | None:
    if raw is None:
        return None
    try:
        return TempoDayColor(raw.upper())
    except ValueError:
        return None


def map_electricity_price(
    response: ElectricityPriceResponseDto, now: datetime, tz: tzinfo
) -> ElectricityPrice:
    """Pick today's and tomorrow's colors, as calendar days in ``tz``."""
    today = now.astimezone(tz).date()
    by_date = {day.date: day.day_value for day in response.daily}
    return ElectricityPrice(
        today_color=_color(by_date.get(today.isoformat())),
        tomorrow_color=_color(by_date.get((today + timedelta(days=1)).isoformat())),
        blue_days=_day_count(response.tempo_syntheses.blue),
        white_days=_day_count(response.tempo_syntheses.white),
        red_days=_day_count(response.tempo_syntheses.red),
        is_complete=response.tempo_syntheses_complete,
    )


class FetchElectricityPriceUseCase(PollingUseCase[ElectricityPrice]):
    """Tempo colors are national, so no site needs to be selected."""

    name = "electricity_price"
    requires_site = False

    def __init__(
        self,
        api: ComwattApi,
        settings: SiteSource,
        session: ReAuthenticator | None,
        tz: tzinfo,
        *,
        interval: float = 3600.0,
        retry_delay: float = 30.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(settings, session, success_delay=interval, retry_delay=retry_delay, clock=clock)
        self._api = api
        self._tz = tz

    async def _fetch(self, site_id: int | None) -> Result[ElectricityPrice, DomainError]:
        result = await self._api.fetch_electricity_price()
        if isinstance(result, Failure):
            return Failure(ApiDomainError(result.error))
        return Success(map_electricity_price(result.value, self._clock(), self._tz))
