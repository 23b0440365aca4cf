"""Totals and self-consumption/autonomy ratios of a site over a window."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Sequence

from comwatt_monitor.domain.models import EPOCH, SiteDailyData
from comwatt_monitor.timezone_utils import rfc1123


def _ratio(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return min(1.0, max(0.0, numerator / denominator))


def compute_site_stats(
    productions: Sequence[float],
    consumptions: Sequence[float],
    injections: Sequence[float],
    withdrawals: Sequence[float],
    production_noise_threshold: float = 0.0,
    last_timestamp: datetime | None = None,
    refreshed_at: datetime | None = None,
) -> SiteDailyData:
    """Sum each series and derive the two rates.

    self consumption = (production - injection) / production
    autonomy         = (consumption - withdrawals) / consumption

    Both are clamped to [0, 1] and are 0 when the denominator is not
    positive. A total production within [0, production_noise_threshold] is
    inverter standby draw and counts as no production.
    """
    raw_production = float(sum(productions))
    total_production = 0.0 if 0.0 <= raw_production <= production_noise_threshold else raw_production
    total_consumption = float(sum(consumptions))
    total_injection = float(sum(injections))
    total_withdrawals = float(sum(withdrawals))

    ts = last_timestamp or EPOCH
    refreshed = refreshed_at or datetime.now(timezone.utc)
    return SiteDailyData(
        total_production=total_production,
        total_consumption=total_consumption,
        total_injection=total_injection,
        total_withdrawals=total_withdrawals,
        self_consumption_rate=_ratio(total_production - total_injection, total_production),
        autonomy_rate=_ratio(total_consumption - total_withdrawals, total_consumption),
        last_update_timestamp=ts,
        update_date=rfc1123(ts),
        last_refresh_date=rfc1123(refreshed),
    )
