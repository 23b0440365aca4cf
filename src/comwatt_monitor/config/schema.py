"""Pydantic configuration models for all client settings."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ApiConfig(BaseModel):
    base_url: str = "https://energy.comwatt.com/"
    weather_path: str = "weather/data/2.5/forecast/daily"
    electricity_price_path: str = "api/electricity-prices/tempo"
    timeout_seconds: float = Field(30.0, gt=0)


class AccountConfig(BaseModel):
    """Credentials used for the first login when no user is remembered yet.

    The password may be given in clear or as the already-hashed 64 char hex
    value stored by a previous login.
    """
    email: str = ""
    password: str = ""

    @property
    def configured(self) -> bool:
        return bool(self.email and self.password)


class SiteConfig(BaseModel):
    timezone: str = "Europe/Paris"  # IANA tz used for local midnight and tariff days
    production_noise_threshold: int = Field(5, ge=0)  # W, range stats fallback when unset in settings


class PollingConfig(BaseModel):
    realtime_window_seconds: int = 300
    realtime_sample_period_seconds: int = 125  # 2 min server cadence + 5 s pad
    realtime_fallback_seconds: float = 10
    realtime_retry_seconds: float = 10
    daily_interval_seconds: float = 60
    daily_retry_seconds: float = 10
    price_interval_seconds: float = 3600
    price_retry_seconds: float = 30
    weather_interval_seconds: float = 1800
    weather_retry_seconds: float = 10
    time_series_interval_seconds: float = 30
    time_series_retry_seconds: float = 10


class WeatherConfig(BaseModel):
    units: str = "metric"
    lang: str = "en"


class DashboardConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080
    sse_interval_seconds: int = 5
    max_power_gauge_w: int = 9000


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file: str = ""


class DBConfig(BaseModel):
    path: str = "comwatt_monitor.db"


class AppConfig(BaseModel):
    """Root configuration model containing all client settings."""

    api: ApiConfig = ApiConfig()
    account: AccountConfig = AccountConfig()
    site: SiteConfig = SiteConfig()
    polling: PollingConfig = PollingConfig()
    weather: WeatherConfig = WeatherConfig()
    dashboard: DashboardConfig = DashboardConfig()
    logging: LoggingConfig = LoggingConfig()
    db: DBConfig = DBConfig()
