"""FastAPI application factory for the Comwatt Monitor dashboard."""

from __future__ import annotations

from fastapi import FastAPI, Request

from comwatt_monitor import __version__
from comwatt_monitor.config.schema import AppConfig
from comwatt_monitor.settings_store import SettingsStore
from comwatt_monitor.timezone_utils import resolve_timezone


def create_app(config: AppConfig, settings: SettingsStore) -> FastAPI:
    """Create the app.

    The caller attaches the runtime objects to ``app.state`` before serving:
    ``slots`` and ``use_cases`` (keyed by loop name), ``dashboard``
    (DashboardState), ``api``, ``session`` and ``current_site``.
    """
    app = FastAPI(
        title="Comwatt Monitor",
        description="Energy monitoring poll loops over the Comwatt API",
        version=__version__,
    )

    @app.middleware("http")
    async def disable_browser_cache(request: Request, call_next):
        response = await call_next(request)
        if request.method in {"GET", "HEAD"}:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        return response

    app.state.config = config
    app.state.settings = settings
    app.state.tz = resolve_timezone(config.site.timezone)
    app.state.slots = {}
    app.state.use_cases = {}

    from comwatt_monitor.dashboard.routes.api import router as api_router
    from comwatt_monitor.dashboard.routes.sse import router as sse_router

    app.include_router(api_router, prefix="/api")
    app.include_router(sse_router, prefix="/api")

    return app
