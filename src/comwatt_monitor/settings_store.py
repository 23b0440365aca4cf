"""Persisted user settings with change notification."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from comwatt_monitor.db.repository import Repository
from comwatt_monitor.domain.models import Settings

logger = logging.getLogger(__name__)

SITE_ID = "site_id"
DASHBOARD_SELECTED_TIME_UNIT_INDEX = "dashboard_selected_time_unit_index"
MAX_POWER_GAUGE = "max_power_gauge"
PRODUCTION_NOISE_THRESHOLD = "production_noise_threshold"

_KEYS = (SITE_ID, DASHBOARD_SELECTED_TIME_UNIT_INDEX, MAX_POWER_GAUGE, PRODUCTION_NOISE_THRESHOLD)


def _as_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer setting value %r", raw)
        return None


class SettingsStore:
    """Key/value settings on top of the repository.

    ``get_settings`` always reads the database, so callers see the value
    current at call time. ``subscribe`` yields the current settings and
    then the new settings after every mutation.
    """

    def __init__(self, repo: Repository) -> None:
        self._repo = repo
        self._subscribers: set[asyncio.Queue[Settings]] = set()

    async def get_settings(self) -> Settings:
        raw = await self._repo.get_all_settings()
        return Settings(**{key: _as_int(raw.get(key)) for key in _KEYS})

    async def get_site_id(self) -> int | None:
        return _as_int(await self._repo.get_setting(SITE_ID))

    async def subscribe(self) -> AsyncIterator[Settings]:
        queue: asyncio.Queue[Settings] = asyncio.Queue()
        self._subscribers.add(queue)
        try:
            yield await self.get_settings()
            while True:
                yield await queue.get()
        finally:
            self._subscribers.discard(queue)

    # ── Mutations ───────────────────────────────────────────

    async def save_site_id(self, site_id: int) -> None:
        await self._set(SITE_ID, site_id)
        logger.info("Selected site %d", site_id)

    async def clear_site_id(self) -> None:
        await self._repo.delete_setting(SITE_ID)
        await self._notify()

    async def save_dashboard_selected_time_unit_index(self, index: int) -> None:
        await self._set(DASHBOARD_SELECTED_TIME_UNIT_INDEX, index)

    async def save_max_power_gauge(self, watts: int) -> None:
        await self._set(MAX_POWER_GAUGE, watts)

    async def save_production_noise_threshold(self, watts: int) -> None:
        await self._set(PRODUCTION_NOISE_THRESHOLD, watts)

    async def clear(self) -> None:
        await self._repo.clear_settings()
        await self._notify()

    async def _set(self, key: str, value: int) -> None:
        await self._repo.set_setting(key, str(int(value)))
        await self._notify()

    async def _notify(self) -> None:
        if not self._subscribers:
            return
        settings = await self.get_settings()
        for queue in list(self._subscribers):
            queue.put_nowait(settings)
