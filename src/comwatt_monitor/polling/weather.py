"""Daily weather forecast at the selected site's postal address."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from comwatt_monitor.client.api import ComwattApi
from comwatt_monitor.client.models import DailyWeatherDto, DailyWeatherResponseDto, SiteDto
from comwatt_monitor.domain.errors import ApiDomainError, DomainError, GenericDomainError
from comwatt_monitor.domain.models import DailyWeather, WeatherCondition, WeatherForecast
from comwatt_monitor.polling.base import PollingUseCase, ReAuthenticator, SiteSource, utcnow
from comwatt_monitor.result import Failure, Result, Success

logger = logging.getLogger(__name__)


def _instant(epoch_seconds: int) -> datetime:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)


def site_location(site: SiteDto) -> Result[tuple[str, str], DomainError]:
    """(postal code, country code) of a site, or why it cannot be located."""
    address = site.address
    if address is None:
        logger.warning("No address for site %s", site.id)
        return Failure(GenericDomainError("Site address not available"))
    postal_code = address.postal_code.strip()
    country = address.country.strip()
    if not postal_code or not country:
        return Failure(GenericDomainError("Invalid site location data"))
    return Success((postal_code, country))


def map_daily_weather(dto: DailyWeatherDto) -> DailyWeather:
    primary = dto.weather[0] if dto.weather else None
    return DailyWeather(
        date=_instant(dto.dt),
        sunrise=_instant(dto.sunrise),
        sunset=_instant(dto.sunset),
        temperature_day=dto.temp.day,
        temperature_min=dto.temp.min,
        temperature_max=dto.temp.max,
        temperature_night=dto.temp.night,
        temperature_evening=dto.temp.eve,
        temperature_morning=dto.temp.morn,
        feels_like_day=dto.feels_like.day,
        feels_like_night=dto.feels_like.night,
        feels_like_evening=dto.feels_like.eve,
        feels_like_morning=dto.feels_like.morn,
        pressure=dto.pressure,
        humidity=dto.humidity,
        wind_speed=dto.speed,
        wind_direction=dto.deg,
        wind_gust=dto.gust,
        cloudiness=dto.clouds,
        precipitation_probability=dto.pop,
        rain_amount=dto.rain,
        weather_main=primary.main if primary else "Unknown",
        weather_description=primary.description if primary else "No description",
        weather_condition=WeatherCondition.from_openweather(
            primary.id if primary else None, primary.main if primary else None
        ),
    )


def map_weather_forecast(response: DailyWeatherResponseDto) -> WeatherForecast:
    return WeatherForecast(
        city_name=response.city.name,
        country_code=response.city.country,
        latitude=response.city.coord.lat,
        longitude=response.city.coord.lon,
        daily_forecasts=[map_daily_weather(day) for day in response.days],
    )


class FetchWeatherUseCase(PollingUseCase[WeatherForecast]):
    name = "weather"

    def __init__(
        self,
        api: ComwattApi,
        settings: SiteSource,
        session: ReAuthenticator | None,
        *,
        interval: float = 1800.0,
        retry_delay: float = 10.0,
        units: str = "metric",
        lang: str = "en",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(settings, session, success_delay=interval, retry_delay=retry_delay, clock=clock)
        self._api = api
        self._units = units
        self._lang = lang

    async def _fetch(self, site_id: int) -> Result[WeatherForecast, DomainError]:
        sites = await self._api.sites()
        if isinstance(sites, Failure):
            return Failure(ApiDomainError(sites.error))

        site = next((s for s in sites.value if s.id == site_id), None)
        if site is None:
            logger.warning("Site %d not found among %d sites", site_id, len(sites.value))
            return Failure(GenericDomainError("Site not found"))

        location = site_location(site)
        if isinstance(location, Failure):
            return location
        postal_code, country = location.value

        forecast = await self._api.fetch_daily_weather_forecast(
            postal_code, country, units=self._units, lang=self._lang
        )
        if isinstance(forecast, Failure):
            return Failure(ApiDomainError(forecast.error))
        return Success(map_weather_forecast(forecast.value))
