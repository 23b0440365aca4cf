"""Timezone helpers: IANA resolution, local midnight and wire formatting."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone, tzinfo
from email.utils import format_datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Used when IANA tzdata is unavailable (Windows hosts without the tzdata wheel).
_FIXED_FALLBACKS: dict[str, tzinfo] = {
    "Europe/Paris": timezone(timedelta(hours=1)),
    "UTC": timezone.utc,
}


def resolve_timezone(tz_name: str) -> tzinfo:
    """Resolve an IANA timezone name with safe fallbacks.

    Order:
    1. IANA database via ZoneInfo.
    2. Known fixed-offset fallback map.
    3. Host local timezone.
    4. UTC.
    """
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        pass

    if tz_name in _FIXED_FALLBACKS:
        return _FIXED_FALLBACKS[tz_name]

    local_tz = datetime.now().astimezone().tzinfo
    if local_tz is not None:
        return local_tz
    return timezone.utc


def local_midnight(now: datetime, tz: tzinfo) -> datetime:
    """Start of the calendar day containing ``now`` in ``tz``."""
    local = now.astimezone(tz)
    return datetime.combine(local.date(), time.min, tzinfo=tz)


def shift_days(moment: datetime, days: int, tz: tzinfo) -> datetime:
    """Move ``moment`` by whole calendar days keeping its wall-clock time in ``tz``.

    Across a DST change this is not the same as adding ``24h * days``.
    """
    local = moment.astimezone(tz).replace(tzinfo=None) + timedelta(days=days)
    return local.replace(tzinfo=tz)


def to_api_iso(moment: datetime, tz: tzinfo) -> str:
    """ISO-8601 with offset in ``tz``, as the vendor API expects."""
    return moment.astimezone(tz).isoformat(timespec="seconds")


def parse_api_instant(value: str) -> datetime:
    """Parse an ISO timestamp returned by the API into an aware datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def rfc1123(moment: datetime) -> str:
    """RFC 1123 date string in GMT, e.g. ``Mon, 07 Oct 2024 10:02:00 GMT``."""
    return format_datetime(moment.astimezone(timezone.utc), usegmt=True)
