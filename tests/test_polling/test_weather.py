"""Tests for the weather forecast poll loop."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from comwatt_monitor.client.errors import HttpError
from comwatt_monitor.client.models import AddressDto, DailyWeatherResponseDto, SiteDto
from comwatt_monitor.domain.errors import ApiDomainError, GenericDomainError
from comwatt_monitor.domain.models import WeatherCondition
from comwatt_monitor.polling.weather import FetchWeatherUseCase, site_location
from comwatt_monitor.result import Failure, Success
from fakes import FakeApi, StaticSettings

SITE = SiteDto(id=1, name="Home", address=AddressDto(postal_code="69001", city="Lyon", country="FR"))

FORECAST = DailyWeatherResponseDto.model_validate({
    "city": {"id": 1, "name": "Lyon", "coord": {"lon": 4.85, "lat": 45.75}, "country": "FR"},
    "cod": 200,
    "cnt": 1,
    "list": [{
        "dt": 1728295200,
        "sunrise": 1728280000,
        "sunset": 1728320000,
        "temp": {"day": 18, "min": 10, "max": 20, "night": 11, "eve": 16, "morn": 12},
        "feels_like": {"day": 17, "night": 10, "eve": 15, "morn": 11},
        "pressure": 1015,
        "humidity": 70,
        "weather": [{"id": 502, "main": "Rain", "description": "heavy intensity rain"}],
        "speed": 3.2,
        "deg": 220,
        "clouds": 80,
    }],
})


class TestSiteLocation:
    def test_valid(self) -> None:
        assert site_location(SITE) == Success(("69001", "FR"))

    def test_no_address(self) -> None:
        result = site_location(SiteDto(id=1))
        assert result == Failure(GenericDomainError("Site address not available"))

    def test_blank_postal_code(self) -> None:
        site = SiteDto(id=1, address=AddressDto(postal_code=" ", country="FR"))
        assert site_location(site) == Failure(GenericDomainError("Invalid site location data"))


@pytest.mark.asyncio
class TestFetchWeather:
    async def test_forecast_for_site_address(self, site_settings) -> None:
        api = FakeApi(sites=Success([SITE]), fetch_daily_weather_forecast=Success(FORECAST))
        use_case = FetchWeatherUseCase(api, site_settings, None, lang="fr")
        result = await use_case.fetch_once()

        assert isinstance(result, Success)
        forecast = result.value
        assert forecast.city_name == "Lyon"
        assert forecast.latitude == 45.75
        day = forecast.daily_forecasts[0]
        assert day.date == datetime.fromtimestamp(1728295200, tz=timezone.utc)
        assert day.weather_condition is WeatherCondition.HEAVY_RAIN
        assert day.temperature_max == 20
        assert day.rain_amount is None
        assert day.wind_gust == 0.0

        (args, kwargs), = api.calls_to("fetch_daily_weather_forecast")
        assert args == ("69001", "FR")
        assert kwargs == {"units": "metric", "lang": "fr"}

    async def test_site_not_found(self) -> None:
        api = FakeApi(sites=Success([SITE]))
        use_case = FetchWeatherUseCase(api, StaticSettings(site_id=99), None)
        assert await use_case.fetch_once() == Failure(GenericDomainError("Site not found"))

    async def test_site_without_address(self, site_settings) -> None:
        api = FakeApi(sites=Success([SiteDto(id=1)]))
        result = await FetchWeatherUseCase(api, site_settings, None).fetch_once()
        assert result.error.message == "Site address not available"
        assert api.calls_to("fetch_daily_weather_forecast") == []

    async def test_sites_error(self, site_settings) -> None:
        error = HttpError(message="", code=401)
        api = FakeApi(sites=Failure(error))
        result = await FetchWeatherUseCase(api, site_settings, None).fetch_once()
        assert result == Failure(ApiDomainError(error))
        assert result.error.is_unauthorized

    async def test_retry_delay(self, site_settings) -> None:
        use_case = FetchWeatherUseCase(FakeApi(), site_settings, None)
        assert use_case._retry_delay == 10.0
        assert use_case._success_delay == 1800.0
