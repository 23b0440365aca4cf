"""Async client for the Comwatt energy REST API.

Every public call returns ``Success(value)`` or ``Failure(ApiError)``;
expected failures (HTTP status, bad payload, network) are never raised.
The session cookie set by ``authenticate`` is kept in the underlying
httpx cookie jar and sent with every later request.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Sequence, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from comwatt_monitor.client.errors import ApiError, GenericError, HttpError, SerializationError
from comwatt_monitor.client.models import (
    DailyWeatherResponseDto,
    DeviceDto,
    ElectricityPriceResponseDto,
    SiteDto,
    SiteTimeSeriesDto,
    TileResponseDto,
    TimeSeriesDto,
    UserDto,
)
from comwatt_monitor.client.password import Password
from comwatt_monitor.client.types import (
    AggregationLevel,
    AggregationType,
    MeasureKind,
    TileType,
    TimeAgoUnit,
)
from comwatt_monitor.result import Failure, Result, Success
from comwatt_monitor.timezone_utils import parse_api_instant, to_api_iso

logger = logging.getLogger(__name__)

BASE_URL = "https://energy.comwatt.com/"
AUTH_PATH = "api/v1/authent"
EXPIRY_HEADER = "x-cwt-token"

T = TypeVar("T")


@dataclass(frozen=True)
class Session:
    """Authentication session. Held in memory only."""

    token: str
    expires: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires


class ComwattApi:
    """Thin typed wrapper over the vendor endpoints used by the poll loops."""

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
        tz: tzinfo | None = None,
        weather_path: str = "weather/data/2.5/forecast/daily",
        electricity_price_path: str = "api/electricity-prices/tempo",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._tz = tz or datetime.now().astimezone().tzinfo or timezone.utc
        self._weather_path = weather_path
        self._electricity_price_path = electricity_price_path
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    # ── Authentication ──────────────────────────────────────

    async def authenticate(self, email: str, password: Password) -> Result[Session, ApiError]:
        """Log in and return the session derived from the response cookies.

        The token is the value of the first cookie the server sets and the
        expiry comes from the ``x-cwt-token`` header; both must be present.
        """
        try:
            resp = await self._client.post(
                AUTH_PATH,
                json={"username": email, "password": password.encoded_value},
            )
        except httpx.HTTPError as e:
            return Failure(GenericError(message=str(e) or type(e).__name__))

        if resp.is_error:
            return Failure(HttpError(message="Authentication failed", code=resp.status_code, body=resp.text))

        token = _first_set_cookie_value(resp)
        expires_raw = resp.headers.get(EXPIRY_HEADER)
        expires: datetime | None = None
        if expires_raw:
            try:
                expires = parse_api_instant(expires_raw)
            except ValueError:
                logger.warning("Unparseable session expiry header: %s", expires_raw)

        if token is None or expires is None:
            return Failure(GenericError(message="Session token or expiration date is missing"))

        logger.info("Authenticated as %s, session valid until %s", email, expires.isoformat())
        return Success(Session(token=token, expires=expires))

    async def authenticated(self) -> Result[UserDto | None, ApiError]:
        """The user the current session belongs to."""
        return await self._get("api/users/authenticated", UserDto | None)

    # ── Sites and devices ───────────────────────────────────

    async def sites(self) -> Result[list[SiteDto], ApiError]:
        return await self._get("api/sites", list[SiteDto])

    async def fetch_devices(self, site_id: int) -> Result[list[DeviceDto], ApiError]:
        return await self._get("api/devices", list[DeviceDto], params={"siteId": site_id})

    async def fetch_tiles(
        self,
        site_id: int,
        tile_types: Sequence[TileType] = tuple(TileType),
    ) -> Result[list[TileResponseDto], ApiError]:
        params: list[tuple[str, Any]] = [("siteId", site_id)]
        params.extend(("tileTypes", t.value) for t in tile_types)
        return await self._get("api/tiles", list[TileResponseDto], params=params)

    # ── Aggregated time series ──────────────────────────────

    async def fetch_site_time_series(
        self,
        site_id: int,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        measure_kind: MeasureKind = MeasureKind.FLOW,
        aggregation_level: AggregationLevel = AggregationLevel.NONE,
        aggregation_type: AggregationType | None = None,
    ) -> Result[SiteTimeSeriesDto, ApiError]:
        """Site series over an explicit window; defaults to the last 5 minutes."""
        end_time = end_time or datetime.now(timezone.utc)
        if start_time is None:
            start_time = end_time - timedelta(minutes=5)
        params = self._series_params(
            site_id, start_time, end_time, None, None,
            measure_kind, aggregation_level, aggregation_type,
        )
        return await self._get("api/aggregations/site-time-series", SiteTimeSeriesDto, params=params)

    async def fetch_site_time_series_ago(
        self,
        site_id: int,
        time_ago_unit: TimeAgoUnit,
        time_ago_value: int = 1,
        end_time: datetime | None = None,
        measure_kind: MeasureKind = MeasureKind.FLOW,
        aggregation_level: AggregationLevel = AggregationLevel.NONE,
        aggregation_type: AggregationType | None = None,
    ) -> Result[SiteTimeSeriesDto, ApiError]:
        """Site series over a window relative to ``end_time`` (``time_ago_value`` units back)."""
        params = self._series_params(
            site_id, None, end_time or datetime.now(timezone.utc), time_ago_unit, time_ago_value,
            measure_kind, aggregation_level, aggregation_type,
        )
        return await self._get("api/aggregations/site-time-series", SiteTimeSeriesDto, params=params)

    async def fetch_time_series(
        self,
        device_id: int,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        measure_kind: MeasureKind = MeasureKind.FLOW,
        aggregation_level: AggregationLevel = AggregationLevel.NONE,
        aggregation_type: AggregationType | None = None,
    ) -> Result[TimeSeriesDto, ApiError]:
        end_time = end_time or datetime.now(timezone.utc)
        if start_time is None:
            start_time = end_time - timedelta(minutes=5)
        params = self._series_params(
            device_id, start_time, end_time, None, None,
            measure_kind, aggregation_level, aggregation_type,
        )
        return await self._get("api/aggregations/time-series", TimeSeriesDto, params=params)

    async def fetch_time_series_ago(
        self,
        device_id: int,
        time_ago_unit: TimeAgoUnit = TimeAgoUnit.DAY,
        time_ago_value: int = 1,
        end_time: datetime | None = None,
        measure_kind: MeasureKind = MeasureKind.FLOW,
        aggregation_level: AggregationLevel = AggregationLevel.NONE,
        aggregation_type: AggregationType | None = None,
    ) -> Result[TimeSeriesDto, ApiError]:
        params = self._series_params(
            device_id, None, end_time or datetime.now(timezone.utc), time_ago_unit, time_ago_value,
            measure_kind, aggregation_level, aggregation_type,
        )
        return await self._get("api/aggregations/time-series", TimeSeriesDto, params=params)

    # ── Tariff and weather ──────────────────────────────────

    async def fetch_electricity_price(self) -> Result[ElectricityPriceResponseDto, ApiError]:
        return await self._get(self._electricity_price_path, ElectricityPriceResponseDto)

    async def fetch_daily_weather_forecast(
        self,
        postal_code: str,
        country_code: str = "FR",
        units: str = "metric",
        lang: str = "en",
    ) -> Result[DailyWeatherResponseDto, ApiError]:
        params = {"zip": f"{postal_code},{country_code}", "units": units, "lang": lang}
        return await self._get(self._weather_path, DailyWeatherResponseDto, params=params)

    # ── Internals ───────────────────────────────────────────

    def _series_params(
        self,
        entity_id: int,
        start_time: datetime | None,
        end_time: datetime,
        time_ago_unit: TimeAgoUnit | None,
        time_ago_value: int | None,
        measure_kind: MeasureKind,
        aggregation_level: AggregationLevel,
        aggregation_type: AggregationType | None,
    ) -> list[tuple[str, Any]]:
        params: list[tuple[str, Any]] = [
            ("id", entity_id),
            ("measureKind", measure_kind.value),
            ("aggregationLevel", aggregation_level.value),
        ]
        if start_time is not None:
            params.append(("start", to_api_iso(start_time, self._tz)))
        if time_ago_unit is not None:
            params.append(("timeAgoUnit", time_ago_unit.value))
        if time_ago_value is not None:
            params.append(("timeAgoValue", time_ago_value))
        if aggregation_type is not None:
            params.append(("aggregationType", aggregation_type.value))
        params.append(("end", to_api_iso(end_time, self._tz)))
        return params

    async def _get(self, path: str, model: Any, params: Any = None) -> Result[Any, ApiError]:
        """GET ``path`` and validate the JSON body against ``model``.

        ``model`` is a pydantic model class or any type ``TypeAdapter`` accepts.
        """
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            logger.warning("Request to %s failed: %s", path, e)
            return Failure(GenericError(message=str(e) or type(e).__name__))

        if resp.is_error:
            logger.debug("GET %s -> HTTP %d", path, resp.status_code)
            return Failure(HttpError(message="", code=resp.status_code, body=resp.text))

        try:
            if isinstance(model, type) and issubclass(model, BaseModel):
                return Success(model.model_validate_json(resp.content))
            return Success(TypeAdapter(model).validate_json(resp.content))
        except (ValidationError, json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Unexpected payload from %s: %s", path, e)
            return Failure(SerializationError(message=str(e)))


def _first_set_cookie_value(resp: httpx.Response) -> str | None:
    headers = resp.headers.get_list("set-cookie")
    if not headers:
        return None
    first = headers[0].split(";", 1)[0]
    if "=" not in first:
        return None
    value = first.split("=", 1)[1].strip()
    return value or None
