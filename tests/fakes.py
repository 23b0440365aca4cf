"""Test doubles for the API client, settings and session."""

from __future__ import annotations

from typing import Any

from comwatt_monitor.client.models import SiteTimeSeriesDto
from comwatt_monitor.domain.models import Settings
from comwatt_monitor.result import Success


class StaticSettings:
    """Site source returning fixed settings; mutate ``settings`` to change them."""

    def __init__(self, site_id: int | None = 1, **kwargs: Any) -> None:
        self.settings = Settings(site_id=site_id, **kwargs)

    async def get_site_id(self) -> int | None:
        return self.settings.site_id

    async def get_settings(self) -> Settings:
        return self.settings


class RecordingSession:
    """Counts re-authentication requests instead of logging in."""

    def __init__(self) -> None:
        self.invalidations: list[bool] = []

    def try_auto_login(self, on_success=None, on_failure=None, invalidate: bool = False):
        self.invalidations.append(invalidate)
        return None


class FakeApi:
    """Stand-in for ComwattApi with canned results per method.

    A response is either a result, a list of results consumed in order
    (the last one repeats) or a callable receiving the call arguments.
    Every call is recorded in ``calls`` as ``(method, args, kwargs)``.
    """

    def __init__(self, **responses: Any) -> None:
        self.responses = dict(responses)
        self.calls: list[tuple[str, tuple, dict]] = []

    def _respond(self, method: str, *args: Any, **kwargs: Any) -> Any:
        self.calls.append((method, args, kwargs))
        response = self.responses[method]
        if callable(response):
            return response(*args, **kwargs)
        if isinstance(response, list):
            return response.pop(0) if len(response) > 1 else response[0]
        return response

    def calls_to(self, method: str) -> list[tuple[tuple, dict]]:
        return [(args, kwargs) for name, args, kwargs in self.calls if name == method]

    async def authenticate(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("authenticate", *args, **kwargs)

    async def sites(self) -> Any:
        return self._respond("sites")

    async def fetch_tiles(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("fetch_tiles", *args, **kwargs)

    async def fetch_site_time_series(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("fetch_site_time_series", *args, **kwargs)

    async def fetch_site_time_series_ago(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("fetch_site_time_series_ago", *args, **kwargs)

    async def fetch_time_series(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("fetch_time_series", *args, **kwargs)

    async def fetch_time_series_ago(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("fetch_time_series_ago", *args, **kwargs)

    async def fetch_electricity_price(self) -> Any:
        return self._respond("fetch_electricity_price")

    async def fetch_daily_weather_forecast(self, *args: Any, **kwargs: Any) -> Any:
        return self._respond("fetch_daily_weather_forecast", *args, **kwargs)

    async def close(self) -> None:
        pass


def site_series(**fields: Any) -> Success[SiteTimeSeriesDto]:
    """A successful site time-series result built from snake_case fields."""
    return Success(SiteTimeSeriesDto(**fields))

