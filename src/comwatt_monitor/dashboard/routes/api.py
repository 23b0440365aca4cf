"""REST API endpoints returning JSON views of the poll slots and settings."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from comwatt_monitor.dashboard.serialize import error_view, slot_view, to_jsonable
from comwatt_monitor.dashboard.state import RangeStep
from comwatt_monitor.domain.time_range import (
    day_range,
    hour_range,
    week_range,
)
from comwatt_monitor.polling.base import utcnow
from comwatt_monitor.result import Failure

router = APIRouter()
logger = logging.getLogger(__name__)

# Route name -> poll loop name
SLOT_ROUTES = {
    "realtime": "realtime",
    "daily": "daily",
    "price": "electricity_price",
    "weather": "weather",
    "charts": "time_series",
}


# ── Request models ───────────────────────────────────

class SiteRequest(BaseModel):
    site_id: int


class DisplayRequest(BaseModel):
    max_power_gauge: int | None = Field(None, gt=0)
    production_noise_threshold: int | None = Field(None, ge=0)
    dashboard_selected_time_unit_index: int | None = Field(None, ge=0, le=3)


class LoginRequest(BaseModel):
    email: str
    password: str
    remember: bool = True


class UnitRequest(BaseModel):
    index: int


class StepRequest(BaseModel):
    direction: RangeStep


class CustomRangeRequest(BaseModel):
    start: datetime
    end: datetime


# ── Status ───────────────────────────────────────────

@router.get("/status")
async def system_status(request: Request) -> dict:
    """Latest result and loop state of every poller."""
    state = request.app.state
    session = getattr(state, "session", None)
    loops = {}
    for name, slot in state.slots.items():
        view = slot_view(slot)
        use_case = state.use_cases.get(name)
        if use_case is not None:
            view["loop"] = to_jsonable(use_case.state)
        loops[name] = view
    return {
        "status": "running",
        "logged_in": session.is_logged_in if session is not None else False,
        "site_id": await state.settings.get_site_id(),
        "loops": loops,
    }


# ── Slots ────────────────────────────────────────────

def _slot_response(request: Request, route: str) -> dict | JSONResponse:
    slot = request.app.state.slots.get(SLOT_ROUTES[route])
    if slot is None:
        return JSONResponse({"status": "error", "message": f"{route} is not polled"}, 404)
    return slot_view(slot)


@router.get("/realtime")
async def realtime(request: Request):
    return _slot_response(request, "realtime")


@router.get("/daily")
async def daily(request: Request):
    return _slot_response(request, "daily")


@router.get("/price")
async def electricity_price(request: Request):
    return _slot_response(request, "price")


@router.get("/weather")
async def weather(request: Request):
    return _slot_response(request, "weather")


@router.get("/charts")
async def charts(request: Request):
    return _slot_response(request, "charts")


@router.post("/refresh")
async def refresh(request: Request) -> dict:
    """Fetch every domain once, outside the loop schedules."""
    state = request.app.state
    names = [name for name in state.use_cases if name in state.slots]
    results = await asyncio.gather(*(state.use_cases[name].single_fetch() for name in names))
    for name, result in zip(names, results):
        state.slots[name].publish(result)
    return {name: slot_view(state.slots[name]) for name in names}


# ── Settings ─────────────────────────────────────────

@router.get("/settings")
async def get_settings(request: Request) -> dict:
    settings = await request.app.state.settings.get_settings()
    view = to_jsonable(settings)
    if view["max_power_gauge"] is None:
        view["max_power_gauge"] = request.app.state.config.dashboard.max_power_gauge_w
    return view


@router.put("/settings/site")
async def select_site(request: Request, body: SiteRequest) -> dict:
    await request.app.state.settings.save_site_id(body.site_id)
    return {"status": "ok", "site_id": body.site_id}


@router.delete("/settings/site")
async def clear_site(request: Request) -> dict:
    await request.app.state.settings.clear_site_id()
    return {"status": "ok", "site_id": None}


@router.put("/settings/display")
async def update_display(request: Request, body: DisplayRequest) -> dict:
    store = request.app.state.settings
    if body.max_power_gauge is not None:
        await store.save_max_power_gauge(body.max_power_gauge)
    if body.production_noise_threshold is not None:
        await store.save_production_noise_threshold(body.production_noise_threshold)
    if body.dashboard_selected_time_unit_index is not None:
        dashboard = getattr(request.app.state, "dashboard", None)
        if dashboard is not None:
            await dashboard.select_unit(body.dashboard_selected_time_unit_index)
        else:
            await store.save_dashboard_selected_time_unit_index(
                body.dashboard_selected_time_unit_index
            )
    return to_jsonable(await store.get_settings())


# ── Sites and session ────────────────────────────────

@router.get("/sites")
async def list_sites(request: Request):
    result = await request.app.state.api.sites()
    if isinstance(result, Failure):
        return JSONResponse({"status": "error", "message": result.error.error_message}, 502)
    return [to_jsonable(site) for site in result.value]


@router.get("/sites/current")
async def current_site(request: Request):
    result = await request.app.state.current_site.single_fetch()
    if isinstance(result, Failure):
        return JSONResponse({"status": "error", "error": error_view(result.error)}, 502)
    return {"site": to_jsonable(result.value)}


@router.post("/login")
async def login(request: Request, body: LoginRequest):
    result = await request.app.state.session.login(body.email, body.password, body.remember)
    if isinstance(result, Failure):
        return JSONResponse({"status": "error", "message": result.error.error_message}, 401)
    return {"status": "ok", "expires": result.value.expires.isoformat()}


@router.post("/logout")
async def logout(request: Request) -> dict:
    await request.app.state.session.logout()
    return {"status": "ok"}


# ── Time ranges ──────────────────────────────────────

@router.get("/time-range")
async def resolve_time_range(request: Request, unit: str = "DAY", offset: int = 0):
    """Resolve the window ``offset`` units back from now."""
    if offset < 0:
        return JSONResponse({"status": "error", "message": "offset must be >= 0"}, 400)
    now = utcnow()
    tz = request.app.state.tz
    unit = unit.upper()
    if unit == "HOUR":
        resolved = hour_range(offset, now)
    elif unit == "DAY":
        resolved = day_range(offset, now, tz)
    elif unit == "WEEK":
        resolved = week_range(offset, now, tz)
    else:
        return JSONResponse({"status": "error", "message": f"Unsupported unit {unit}"}, 400)
    return {"unit": unit, **to_jsonable(resolved)}


@router.get("/dashboard")
async def dashboard_view(request: Request) -> dict:
    dashboard = request.app.state.dashboard
    dashboard.refresh()
    return _dashboard_view(dashboard)


@router.put("/dashboard/unit")
async def dashboard_unit(request: Request, body: UnitRequest) -> dict:
    dashboard = request.app.state.dashboard
    await dashboard.select_unit(body.index)
    return _dashboard_view(dashboard)


@router.post("/dashboard/step")
async def dashboard_step(request: Request, body: StepRequest) -> dict:
    dashboard = request.app.state.dashboard
    dashboard.step(body.direction)
    return _dashboard_view(dashboard)


@router.put("/dashboard/custom")
async def dashboard_custom(request: Request, body: CustomRangeRequest):
    dashboard = request.app.state.dashboard
    error = dashboard.set_custom_range(body.start, body.end)
    if error is not None:
        return JSONResponse({"status": "error", "message": error}, 400)
    return _dashboard_view(dashboard)


@router.post("/dashboard/stats")
async def dashboard_stats(request: Request) -> dict:
    state = request.app.state
    await state.dashboard.refresh_range_stats(state.api)
    return _dashboard_view(state.dashboard)


def _dashboard_view(dashboard) -> dict:
    start, end = dashboard.range_bounds()
    return {
        "unit": dashboard.unit.name,
        "unit_index": dashboard.unit.value,
        "offset": dashboard.selected_offset(),
        "start": start.isoformat(),
        "end": end.isoformat(),
        "range_stats": to_jsonable(dashboard.range_stats),
    }
