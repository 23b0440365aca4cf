"""Resolution of "N units back" selections into concrete start/end instants.

Hour and day ranges are rolling windows ending ``offset`` units before now.
Week offset 0 is the rolling last 7 days; offsets from 1 on are calendar
Monday-to-Sunday weeks anchored on the most recent Sunday, so they tile
without gap or overlap.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum

from comwatt_monitor.timezone_utils import shift_days


class TimeUnit(str, Enum):
    """Window kinds understood by the chart fetch."""

    HOUR = "HOUR"
    DAY = "DAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    YEAR = "YEAR"
    CUSTOM = "CUSTOM"


class DashboardTimeUnit(int, Enum):
    """Units offered by the dashboard, persisted by index."""

    HOUR = 0
    DAY = 1
    WEEK = 2
    CUSTOM = 3

    @property
    def time_unit(self) -> TimeUnit:
        return TimeUnit[self.name]

    @classmethod
    def from_index(cls, index: int | None) -> DashboardTimeUnit:
        try:
            return cls(index)
        except ValueError:
            return cls.DAY


@dataclass(frozen=True)
class HourRange:
    selected_offset: int
    start: datetime
    end: datetime


@dataclass(frozen=True)
class DayRange:
    selected_offset: int
    start: datetime
    end: datetime


@dataclass(frozen=True)
class WeekRange:
    selected_offset: int
    start: datetime
    end: datetime
    start_date: date
    end_date: date


@dataclass(frozen=True)
class CustomRange:
    """User-chosen window. May be invalid; see ``validation_error``."""

    start: datetime
    end: datetime

    def validation_error(self, now: datetime) -> str | None:
        if self.start > self.end:
            return "Start must be before end"
        if self.start > now:
            return "Start cannot be in the future"
        if self.end > now:
            return "End cannot be in the future"
        return None

    def is_valid(self, now: datetime) -> bool:
        return self.validation_error(now) is None


def hour_range(offset: int, now: datetime) -> HourRange:
    end = now - timedelta(hours=offset)
    return HourRange(selected_offset=offset, start=end - timedelta(hours=1), end=end)


def day_range(offset: int, now: datetime, tz: tzinfo) -> DayRange:
    end = shift_days(now, -offset, tz)
    return DayRange(selected_offset=offset, start=shift_days(end, -1, tz), end=end)


def previous_sunday(day: date) -> date:
    """The Sunday on or before ``day``, found by walking back a day at a time."""
    current = day
    while current.weekday() != 6:
        current -= timedelta(days=1)
    return current


def previous_sunday_modulo(day: date) -> date:
    return day - timedelta(days=(day.weekday() + 1) % 7)


def week_range(offset: int, now: datetime, tz: tzinfo) -> WeekRange:
    today = now.astimezone(tz).date()
    if offset <= 0:
        return WeekRange(
            selected_offset=0,
            start=shift_days(now, -6, tz),
            end=now,
            start_date=today - timedelta(days=6),
            end_date=today,
        )

    end_date = previous_sunday(today) - timedelta(days=7 * (offset - 1))
    start_date = end_date - timedelta(days=6)
    start = datetime.combine(start_date, time.min, tzinfo=tz)
    # Offset 1 is the current week when today is Sunday; do not reach past now.
    end = min(datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=tz), now)
    return WeekRange(
        selected_offset=offset, start=start, end=end, start_date=start_date, end_date=end_date
    )


def custom_range(start: datetime, end: datetime) -> CustomRange:
    return CustomRange(start=start, end=end)


@dataclass(frozen=True)
class SelectedTimeRange:
    """All four sub-ranges, kept resolved side by side.

    Every ``with_*`` method returns a new value; only the targeted
    sub-range is recomputed.
    """

    hour: HourRange
    day: DayRange
    week: WeekRange
    custom: CustomRange
    tz: tzinfo = field(default=timezone.utc, compare=False)

    @classmethod
    def initial(cls, now: datetime, tz: tzinfo) -> SelectedTimeRange:
        return cls(
            hour=hour_range(0, now),
            day=day_range(0, now, tz),
            week=week_range(0, now, tz),
            custom=custom_range(shift_days(now, -1, tz), now),
            tz=tz,
        )

    def with_updated_hour_range(self, offset: int, now: datetime) -> SelectedTimeRange:
        return replace(self, hour=hour_range(max(0, offset), now))

    def with_updated_day_range(self, offset: int, now: datetime) -> SelectedTimeRange:
        return replace(self, day=day_range(max(0, offset), now, self.tz))

    def with_updated_week_range(self, offset: int, now: datetime) -> SelectedTimeRange:
        return replace(self, week=week_range(max(0, offset), now, self.tz))

    def with_updated_custom_range(self, start: datetime, end: datetime) -> SelectedTimeRange:
        return replace(self, custom=custom_range(start, end))

    def with_updated_range(self, now: datetime) -> SelectedTimeRange:
        """Re-resolve every rolling sub-range for a new ``now``, keeping offsets."""
        return replace(
            self,
            hour=hour_range(self.hour.selected_offset, now),
            day=day_range(self.day.selected_offset, now, self.tz),
            week=week_range(self.week.selected_offset, now, self.tz),
        )

    def for_unit(self, unit: DashboardTimeUnit) -> HourRange | DayRange | WeekRange | CustomRange:
        if unit is DashboardTimeUnit.HOUR:
            return self.hour
        if unit is DashboardTimeUnit.DAY:
            return self.day
        if unit is DashboardTimeUnit.WEEK:
            return self.week
        return self.custom

    def bounds(self, unit: DashboardTimeUnit) -> tuple[datetime, datetime]:
        selected = self.for_unit(unit)
        return selected.start, selected.end
