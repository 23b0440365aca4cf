"""Dashboard selection state: time unit, resolved ranges and range statistics."""

from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from enum import Enum
from typing import Callable

from comwatt_monitor.client.api import ComwattApi
from comwatt_monitor.client.types import AggregationLevel, AggregationType, MeasureKind
from comwatt_monitor.domain.models import SiteDailyData
from comwatt_monitor.domain.stats import compute_site_stats
from comwatt_monitor.domain.time_range import DashboardTimeUnit, SelectedTimeRange
from comwatt_monitor.polling.base import utcnow
from comwatt_monitor.polling.time_series import FetchParameters
from comwatt_monitor.result import Failure
from comwatt_monitor.settings_store import SettingsStore
from comwatt_monitor.timezone_utils import parse_api_instant

logger = logging.getLogger(__name__)

DEFAULT_PRODUCTION_NOISE_THRESHOLD = 5


class RangeStep(str, Enum):
    PREV = "PREV"
    NEXT = "NEXT"


class DashboardState:
    """What the dashboard currently shows.

    Offsets count units back from now; PREV moves one unit further into the
    past and NEXT one unit closer, never past offset 0. Custom ranges have
    no offset and are not stepped.
    """

    def __init__(
        self,
        tz: tzinfo,
        settings: SettingsStore | None = None,
        clock: Callable[[], datetime] = utcnow,
        default_noise_threshold: int = DEFAULT_PRODUCTION_NOISE_THRESHOLD,
    ) -> None:
        self._tz = tz
        self._default_noise_threshold = default_noise_threshold
        self._settings = settings
        self._clock = clock
        self.unit = DashboardTimeUnit.DAY
        self.time_range = SelectedTimeRange.initial(clock(), tz)
        self.range_stats: SiteDailyData | None = None

    async def load(self) -> None:
        """Restore the persisted unit selection."""
        if self._settings is None:
            return
        settings = await self._settings.get_settings()
        if settings.dashboard_selected_time_unit_index is not None:
            self.unit = DashboardTimeUnit.from_index(settings.dashboard_selected_time_unit_index)

    async def select_unit(self, index: int) -> DashboardTimeUnit:
        self.unit = DashboardTimeUnit.from_index(index)
        if self._settings is not None:
            await self._settings.save_dashboard_selected_time_unit_index(self.unit.value)
        return self.unit

    def selected_offset(self) -> int | None:
        selected = self.time_range.for_unit(self.unit)
        return getattr(selected, "selected_offset", None)

    def jump_to(self, offset: int) -> SelectedTimeRange:
        now = self._clock()
        if self.unit is DashboardTimeUnit.HOUR:
            self.time_range = self.time_range.with_updated_hour_range(offset, now)
        elif self.unit is DashboardTimeUnit.DAY:
            self.time_range = self.time_range.with_updated_day_range(offset, now)
        elif self.unit is DashboardTimeUnit.WEEK:
            self.time_range = self.time_range.with_updated_week_range(offset, now)
        return self.time_range

    def step(self, direction: RangeStep) -> SelectedTimeRange:
        offset = self.selected_offset()
        if offset is None:
            return self.time_range
        delta = 1 if direction is RangeStep.PREV else -1
        return self.jump_to(max(0, offset + delta))

    def set_custom_range(self, start: datetime, end: datetime) -> str | None:
        """Store a custom window; returns its validation error, if any."""
        self.time_range = self.time_range.with_updated_custom_range(start, end)
        return self.time_range.custom.validation_error(self._clock())

    def refresh(self) -> SelectedTimeRange:
        """Slide the rolling ranges to the current time."""
        self.time_range = self.time_range.with_updated_range(self._clock())
        return self.time_range

    def range_bounds(self) -> tuple[datetime, datetime]:
        return self.time_range.bounds(self.unit)

    def fetch_parameters(self) -> FetchParameters | None:
        """Parameters of the chart fetch for the current selection.

        Hour, day and week send only the end and let the server take one
        unit back from it; custom sends both ends, and nothing is fetched
        while it is invalid.
        """
        self.refresh()
        start, end = self.range_bounds()
        if self.unit is DashboardTimeUnit.CUSTOM:
            if not self.time_range.custom.is_valid(self._clock()):
                return None
            return FetchParameters(time_unit=self.unit.time_unit, end_time=end, start_time=start)
        return FetchParameters(time_unit=self.unit.time_unit, end_time=end)

    async def refresh_range_stats(self, api: ComwattApi) -> SiteDailyData | None:
        """Totals and rates over the selected range, kept in ``range_stats``."""
        if self._settings is None:
            return None
        settings = await self._settings.get_settings()
        if settings.site_id is None:
            return None

        start, end = self.range_bounds()
        result = await api.fetch_site_time_series(
            settings.site_id,
            start_time=start,
            end_time=end,
            measure_kind=MeasureKind.QUANTITY,
            aggregation_level=AggregationLevel.NONE,
            aggregation_type=AggregationType.SUM,
        )
        if isinstance(result, Failure):
            logger.warning("Range statistics fetch failed: %s", result.error.error_message)
            return self.range_stats

        series = result.value
        threshold = settings.production_noise_threshold
        self.range_stats = compute_site_stats(
            productions=series.productions,
            consumptions=series.consumptions,
            injections=series.injections,
            withdrawals=series.withdrawals,
            production_noise_threshold=(
                threshold if threshold is not None else self._default_noise_threshold
            ),
            last_timestamp=parse_api_instant(series.timestamps[-1]) if series.timestamps else None,
            refreshed_at=self._clock(),
        )
        return self.range_stats
