"""Domain values produced by the poll loops and consumed by the dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Trend(str, Enum):
    INCREASING = "INCREASING"
    STABLE = "STABLE"
    DECREASING = "DECREASING"


@dataclass(frozen=True)
class Settings:
    """Persisted user preferences. Every field is unset until chosen."""

    site_id: int | None = None
    dashboard_selected_time_unit_index: int | None = None
    max_power_gauge: int | None = None
    production_noise_threshold: int | None = None


@dataclass(frozen=True)
class SiteRealtimeData:
    """Latest instantaneous sample of a site, in watts."""

    production: float = float("nan")
    consumption: float = float("nan")
    injection: float = float("nan")
    withdrawals: float = float("nan")
    production_rate: float = float("nan")
    consumption_rate: float = float("nan")
    injection_rate: float = float("nan")
    withdrawals_rate: float = float("nan")
    production_trend: Trend | None = None
    consumption_trend: Trend | None = None
    injection_trend: Trend | None = None
    withdrawals_trend: Trend | None = None
    last_update_timestamp: datetime = EPOCH
    update_date: str = ""
    last_refresh_date: str = ""


@dataclass(frozen=True)
class SiteDailyData:
    """Totals since local midnight (or over any range) with derived ratios."""

    total_production: float = 0.0
    total_consumption: float = 0.0
    total_injection: float = 0.0
    total_withdrawals: float = 0.0
    self_consumption_rate: float = 0.0
    autonomy_rate: float = 0.0
    last_update_timestamp: datetime = EPOCH
    update_date: str = ""
    last_refresh_date: str = ""


# ── Tariff ──────────────────────────────────────────────────


class TempoDayColor(str, Enum):
    BLUE = "BLUE"
    WHITE = "WHITE"
    RED = "RED"


@dataclass(frozen=True)
class DayCount:
    used: int
    total: int

    @property
    def remaining(self) -> int:
        return self.total - self.used

    @property
    def percent_used(self) -> float:
        return self.used / self.total if self.total > 0 else 0.0


@dataclass(frozen=True)
class ElectricityPrice:
    today_color: TempoDayColor | None
    tomorrow_color: TempoDayColor | None
    blue_days: DayCount
    white_days: DayCount
    red_days: DayCount
    is_complete: bool


# ── Weather ─────────────────────────────────────────────────


class WeatherCondition(str, Enum):
    CLEAR = "CLEAR"
    PARTLY_CLOUDY = "PARTLY_CLOUDY"
    CLOUDY = "CLOUDY"
    RAIN = "RAIN"
    HEAVY_RAIN = "HEAVY_RAIN"
    DRIZZLE = "DRIZZLE"
    THUNDERSTORM = "THUNDERSTORM"
    TORNADO = "TORNADO"
    STRONG_THUNDERSTORM = "STRONG_THUNDERSTORM"
    SNOW = "SNOW"
    HEAVY_SNOW = "HEAVY_SNOW"
    MIST = "MIST"
    FOG = "FOG"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def from_openweather(cls, condition_id: int | None, main: str | None = None) -> WeatherCondition:
        """Map an OpenWeather condition code (falling back to its ``main`` group)."""
        if condition_id is not None:
            group = condition_id // 100
            if group == 2:
                return cls.STRONG_THUNDERSTORM if condition_id in (202, 212, 221, 232) else cls.THUNDERSTORM
            if group == 3:
                return cls.DRIZZLE
            if group == 5:
                return cls.RAIN if condition_id in (500, 501, 520) else cls.HEAVY_RAIN
            if group == 6:
                return cls.SNOW if condition_id in (600, 601, 615, 616, 620, 621) else cls.HEAVY_SNOW
            if condition_id == 741:
                return cls.FOG
            if condition_id == 781:
                return cls.TORNADO
            if group == 7:
                return cls.MIST
            if condition_id == 800:
                return cls.CLEAR
            if condition_id in (801, 802):
                return cls.PARTLY_CLOUDY
            if condition_id in (803, 804):
                return cls.CLOUDY
        return _MAIN_GROUPS.get((main or "").lower(), cls.UNKNOWN)


_MAIN_GROUPS = {
    "clear": WeatherCondition.CLEAR,
    "clouds": WeatherCondition.CLOUDY,
    "rain": WeatherCondition.RAIN,
    "drizzle": WeatherCondition.DRIZZLE,
    "thunderstorm": WeatherCondition.THUNDERSTORM,
    "snow": WeatherCondition.SNOW,
    "mist": WeatherCondition.MIST,
    "fog": WeatherCondition.FOG,
    "haze": WeatherCondition.MIST,
    "tornado": WeatherCondition.TORNADO,
}


@dataclass(frozen=True)
class DailyWeather:
    date: datetime
    sunrise: datetime
    sunset: datetime
    temperature_day: float
    temperature_min: float
    temperature_max: float
    temperature_night: float
    temperature_evening: float
    temperature_morning: float
    feels_like_day: float
    feels_like_night: float
    feels_like_evening: float
    feels_like_morning: float
    pressure: int
    humidity: int
    wind_speed: float
    wind_direction: int
    wind_gust: float
    cloudiness: int
    precipitation_probability: float
    rain_amount: float | None
    weather_main: str
    weather_description: str
    weather_condition: WeatherCondition


@dataclass(frozen=True)
class WeatherForecast:
    city_name: str
    country_code: str
    latitude: float
    longitude: float
    daily_forecasts: list[DailyWeather] = field(default_factory=list)


# ── Charts ──────────────────────────────────────────────────


class TimeSeriesType(str, Enum):
    CONSUMPTION = "CONSUMPTION"
    PRODUCTION = "PRODUCTION"
    INJECTION = "INJECTION"
    WITHDRAWAL = "WITHDRAWAL"


@dataclass(frozen=True)
class TimeSeries:
    """One plotted series. ``values`` is ordered by timestamp."""

    title: str
    type: TimeSeriesType
    values: dict[datetime, float]
    icon: str | None = None


@dataclass(frozen=True)
class ChartStatistics:
    min: float
    max: float
    average: float
    sum: float

    @classmethod
    def from_time_series(cls, series: TimeSeries) -> ChartStatistics:
        values = list(series.values.values())
        if not values:
            return cls(0.0, 0.0, 0.0, 0.0)
        return cls(
            min=float(min(values)),
            max=float(max(values)),
            average=sum(values) / len(values),
            sum=float(sum(values)),
        )

    @classmethod
    def with_api_sum(cls, series: TimeSeries, total: float) -> ChartStatistics:
        """Statistics whose sum is the server-side aggregated quantity for the window."""
        stats = cls.from_time_series(series)
        return cls(min=stats.min, max=stats.max, average=stats.average, sum=total)


@dataclass(frozen=True)
class ChartTimeSeries:
    name: str | None
    time_series: list[TimeSeries]
    statistics: list[ChartStatistics] = field(default_factory=list)
