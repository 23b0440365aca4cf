"""Comwatt Monitor entry point and lifecycle.

Startup order:
  SQLite → settings store → API client → session (auto-login) →
  dashboard state → poll loops → HTTP dashboard

Shutdown runs the same chain backwards.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import sys
from datetime import timedelta
from pathlib import Path
from typing import Sequence

import uvicorn

from comwatt_monitor import __version__
from comwatt_monitor.client.api import ComwattApi
from comwatt_monitor.config.manager import ConfigManager
from comwatt_monitor.config.schema import AppConfig
from comwatt_monitor.dashboard.app import create_app
from comwatt_monitor.dashboard.state import DashboardState
from comwatt_monitor.db.engine import close_db, init_db
from comwatt_monitor.db.repository import Repository
from comwatt_monitor.logging.structured import setup_logging
from comwatt_monitor.polling.base import PollerGroup, PollingUseCase
from comwatt_monitor.polling.current_site import FetchCurrentSiteUseCase
from comwatt_monitor.polling.daily import FetchSiteDailyDataUseCase
from comwatt_monitor.polling.electricity_price import FetchElectricityPriceUseCase
from comwatt_monitor.polling.realtime import FetchSiteRealtimeDataUseCase
from comwatt_monitor.polling.slot import LatestValue
from comwatt_monitor.polling.time_series import FetchTimeSeriesUseCase
from comwatt_monitor.polling.weather import FetchWeatherUseCase
from comwatt_monitor.session import SessionManager
from comwatt_monitor.settings_store import SettingsStore
from comwatt_monitor.timezone_utils import resolve_timezone

logger = logging.getLogger(__name__)


def build_use_cases(
    config: AppConfig,
    api: ComwattApi,
    settings: SettingsStore,
    session: SessionManager | None,
    dashboard: DashboardState,
) -> list[PollingUseCase]:
    """One use case per polled domain, configured from ``config.polling``."""
    tz = resolve_timezone(config.site.timezone)
    polling = config.polling
    return [
        FetchSiteRealtimeDataUseCase(
            api, settings, session,
            retry_delay=polling.realtime_retry_seconds,
            window=timedelta(seconds=polling.realtime_window_seconds),
            sample_period=timedelta(seconds=polling.realtime_sample_period_seconds),
            fallback_delay=polling.realtime_fallback_seconds,
        ),
        FetchSiteDailyDataUseCase(
            api, settings, session, tz,
            interval=polling.daily_interval_seconds,
            retry_delay=polling.daily_retry_seconds,
        ),
        FetchElectricityPriceUseCase(
            api, settings, session, tz,
            interval=polling.price_interval_seconds,
            retry_delay=polling.price_retry_seconds,
        ),
        FetchWeatherUseCase(
            api, settings, session,
            interval=polling.weather_interval_seconds,
            retry_delay=polling.weather_retry_seconds,
            units=config.weather.units,
            lang=config.weather.lang,
        ),
        FetchTimeSeriesUseCase(
            api, settings, session, dashboard.fetch_parameters,
            interval=polling.time_series_interval_seconds,
            retry_delay=polling.time_series_retry_seconds,
        ),
    ]


class Application:
    """Owns every long-lived component and tears them down in reverse order."""

    def __init__(self, config: AppConfig, config_manager: ConfigManager) -> None:
        self.config = config
        self.config_manager = config_manager
        self._running = False

        self._api: ComwattApi | None = None
        self._session: SessionManager | None = None
        self._pollers: PollerGroup | None = None
        self._server: uvicorn.Server | None = None

    async def start(self) -> None:
        """Bring everything up, then serve the dashboard until told to exit."""
        logger.info("Starting Comwatt Monitor v%s", __version__)
        self._running = True
        tz = resolve_timezone(self.config.site.timezone)

        repo = Repository(await init_db(self.config.db.path))
        settings = SettingsStore(repo)

        api_cfg = self.config.api
        self._api = ComwattApi(
            base_url=api_cfg.base_url,
            timeout=api_cfg.timeout_seconds,
            tz=tz,
            weather_path=api_cfg.weather_path,
            electricity_price_path=api_cfg.electricity_price_path,
        )
        self._session = SessionManager(self._api, repo, settings)
        await self._initial_login(self._session, repo)

        dashboard = DashboardState(
            tz, settings, default_noise_threshold=self.config.site.production_noise_threshold
        )
        await dashboard.load()
        use_cases = build_use_cases(self.config, self._api, settings, self._session, dashboard)
        slots = self._start_pollers(use_cases)

        app = create_app(self.config, settings)
        app.state.application = self
        app.state.repo = repo
        app.state.api = self._api
        app.state.session = self._session
        app.state.dashboard = dashboard
        app.state.slots = slots
        app.state.use_cases = {use_case.name: use_case for use_case in use_cases}
        app.state.current_site = FetchCurrentSiteUseCase(self._api, settings)

        self._server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=self.config.dashboard.host,
                port=self.config.dashboard.port,
                log_level="warning",
            )
        )
        # Signals are handled by main(), not uvicorn.
        self._server.install_signal_handlers = lambda: None
        logger.info(
            "Dashboard listening on http://%s:%d",
            self.config.dashboard.host,
            self.config.dashboard.port,
        )
        await self._server.serve()

    def _start_pollers(self, use_cases: list[PollingUseCase]) -> dict[str, LatestValue]:
        slots: dict[str, LatestValue] = {}
        self._pollers = PollerGroup()
        for use_case in use_cases:
            slots[use_case.name] = LatestValue(use_case.name)
            self._pollers.add(use_case, slots[use_case.name])
        self._pollers.start()
        return slots

    async def _initial_login(self, session: SessionManager, repo: Repository) -> None:
        """Remembered user first, then the configured account."""
        if await repo.get_remembered_user() is not None:
            if await session.try_auto_login():
                return
        account = self.config.account
        if account.configured:
            await session.login(account.email, account.password)
        else:
            logger.warning("No remembered user and no configured account; waiting for login")

    async def stop(self) -> None:
        if not self._running:
            return
        logger.info("Shutting down Comwatt Monitor")
        self._running = False

        if self._server is not None:
            self._server.should_exit = True
        if self._pollers is not None:
            await self._pollers.stop()
        if self._session is not None:
            await self._session.close()
        if self._api is not None:
            await self._api.close()
        await close_db()

        self._server = None
        logger.info("Shutdown complete")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="comwatt-monitor", description=__doc__.splitlines()[0])
    parser.add_argument("--config", default="config.yaml", help="user override file")
    parser.add_argument("--defaults", default="config.defaults.yaml")
    parser.add_argument("--host", default="", help="dashboard bind address")
    parser.add_argument("--port", type=int, default=0, help="dashboard port")
    parser.add_argument("--log-level", default="")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def load_config(args: argparse.Namespace) -> tuple[AppConfig, ConfigManager]:
    """Config files plus environment, then command-line overrides on top."""
    manager = ConfigManager(defaults_path=Path(args.defaults), user_path=Path(args.config))
    config = manager.load()
    if args.host:
        config.dashboard.host = args.host
    if args.port:
        config.dashboard.port = args.port
    if args.log_level:
        config.logging.level = args.log_level
    return config, manager


def _install_stop_handlers(loop: asyncio.AbstractEventLoop, request_stop) -> None:
    if sys.platform == "win32":
        signal.signal(signal.SIGINT, lambda *_: request_stop())
        signal.signal(signal.SIGTERM, lambda *_: request_stop())
        return
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, request_stop)


def main(argv: Sequence[str] | None = None) -> None:
    config, manager = load_config(parse_args(argv))
    setup_logging(
        level=config.logging.level,
        fmt=config.logging.format,
        log_file=config.logging.file,
    )
    application = Application(config, manager)
    signals_seen = 0

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def request_stop() -> None:
        nonlocal signals_seen
        signals_seen += 1
        if signals_seen > 1:
            # Second Ctrl+C: give up on a clean shutdown.
            os._exit(130)
        if not loop.is_closed():
            loop.call_soon_threadsafe(lambda: loop.create_task(application.stop()))

    async def run() -> None:
        try:
            await application.start()
        finally:
            with contextlib.suppress(Exception):
                await application.stop()

    _install_stop_handlers(loop, request_stop)
    try:
        loop.run_until_complete(run())
    except KeyboardInterrupt:
        with contextlib.suppress(Exception):
            loop.run_until_complete(application.stop())
    finally:
        leftovers = [t for t in asyncio.all_tasks(loop) if not t.done()]
        for task in leftovers:
            task.cancel()
        if leftovers:
            loop.run_until_complete(asyncio.gather(*leftovers, return_exceptions=True))
        loop.close()


if __name__ == "__main__":
    main()
