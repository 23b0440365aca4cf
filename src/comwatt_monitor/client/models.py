"""Wire models for the Comwatt and weather endpoints.

Unknown fields are ignored so that additions on the server side do not
break parsing; a missing required field is a validation error.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from comwatt_monitor.client.types import TileType


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ── Sites, users, devices ───────────────────────────────────


class AddressDto(ApiModel):
    address: str = ""
    postal_code: str = ""
    city: str = ""
    country: str = ""

    def format_address(self) -> str:
        return f"{self.address}, {self.postal_code} {self.city}, {self.country}"


class UserDto(ApiModel):
    id: int
    login: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    language: str | None = None
    currency: str | None = None
    uuid: str = ""


class SiteDto(ApiModel):
    id: int | None = None
    name: str | None = None
    description: str | None = None
    address: AddressDto | None = None
    currency: str | None = None
    language: str | None = None
    timezone: str | None = None
    site_uid: str | None = None
    status: str | None = None
    site_kind: str | None = None


class DeviceKindDto(ApiModel):
    id: int | None = None
    code: str | None = None
    icon: str | None = None
    production: bool | None = None
    injection: bool | None = None
    withdrawal: bool | None = None
    category: str | None = None


class DeviceDto(ApiModel):
    id: int | None = None
    name: str | None = None
    device_kind: DeviceKindDto | None = None
    archived: bool | None = None


class MeasureKeyDto(ApiModel):
    id: int | None = None
    measure_kind: str | None = None
    measure_key: str | None = None
    device: DeviceDto | None = None


class TileChartDataDto(ApiModel):
    id: int | None = None
    measure_key: MeasureKeyDto
    color: str | None = None


class TileResponseDto(ApiModel):
    tile_type: TileType
    at_id: str | None = Field(None, alias="@id")
    id: int
    name: str
    position: int | None = None
    chart_type: str | None = None
    tile_chart_datas: list[TileChartDataDto] | None = None


# ── Time series ─────────────────────────────────────────────


class SiteTimeSeriesDto(ApiModel):
    timestamps: list[str]
    productions: list[float] = []
    consumptions: list[float] = []
    injections: list[float] = []
    withdrawals: list[float] = []
    charges: list[float] = []
    discharges: list[float] = []
    auto_production_rates: list[float] = Field(default_factory=list, alias="autoproductionRates")
    auto_consumption_rates: list[float] = Field(default_factory=list, alias="autoconsumptionRates")
    injection_rates: list[float] = []
    withdrawal_rates: list[float] = []


class TimeSeriesDto(ApiModel):
    timestamps: list[str]
    values: list[float]


# ── Electricity price (Tempo) ───────────────────────────────


class TempoDaySynthesisDto(ApiModel):
    number_of_days: int
    total_number_of_days: int


class TempoSynthesesDto(ApiModel):
    white: TempoDaySynthesisDto = Field(alias="WHITE")
    blue: TempoDaySynthesisDto = Field(alias="BLUE")
    red: TempoDaySynthesisDto = Field(alias="RED")


class DayStatusDto(ApiModel):
    value: str
    type: str
    start_time: str = Field(alias="start_time")
    end_time: str = Field(alias="end_time")


class DailyElectricityPriceDto(ApiModel):
    date: str  # yyyy-MM-dd
    day_value: str
    status: list[DayStatusDto] = []


class ElectricityPriceResponseDto(ApiModel):
    tempo_syntheses: TempoSynthesesDto
    daily: list[DailyElectricityPriceDto]
    tempo_syntheses_complete: bool


# ── Weather (OpenWeather daily forecast proxy) ──────────────


class CoordinateDto(ApiModel):
    lon: float
    lat: float


class CityDto(ApiModel):
    id: int
    name: str
    coord: CoordinateDto
    country: str
    population: int = 0
    timezone: int = 0


class TemperatureDto(ApiModel):
    day: float
    min: float
    max: float
    night: float
    eve: float
    morn: float


class FeelsLikeDto(ApiModel):
    day: float
    night: float
    eve: float
    morn: float


class WeatherConditionDto(ApiModel):
    id: int
    main: str
    description: str
    icon: str = ""


class DailyWeatherDto(ApiModel):
    dt: int
    sunrise: int
    sunset: int
    temp: TemperatureDto
    feels_like: FeelsLikeDto = Field(alias="feels_like")
    pressure: int
    humidity: int
    weather: list[WeatherConditionDto] = []
    speed: float
    deg: int
    gust: float = 0.0
    clouds: int
    pop: float = 0.0
    rain: float | None = None


class DailyWeatherResponseDto(ApiModel):
    city: CityDto
    cod: str | int
    message: float = 0.0
    cnt: int
    days: list[DailyWeatherDto] = Field(alias="list")
