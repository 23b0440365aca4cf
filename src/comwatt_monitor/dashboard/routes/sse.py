"""Server-Sent Events for live dashboard updates."""

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Request
from starlette.responses import StreamingResponse

from comwatt_monitor.dashboard.serialize import slot_view
from comwatt_monitor.polling.slot import LatestValue

router = APIRouter()
logger = logging.getLogger(__name__)


def collect_updates(slots: dict[str, LatestValue], seen: dict[str, int]) -> list[dict]:
    """Views of the slots published since ``seen``; updates ``seen`` in place.

    Only the newest value of each slot is reported, however many were
    published in between.
    """
    updates = []
    for name, slot in slots.items():
        if slot.version > seen.get(name, 0):
            seen[name] = slot.version
            updates.append({"slot": name, **slot_view(slot)})
    return updates


def format_event(data: dict) -> str:
    return f"data: {json.dumps(data)}\n\n"


@router.get("/events")
async def event_stream(request: Request) -> StreamingResponse:
    """SSE endpoint pushing each slot's latest result when it changes."""
    slots = request.app.state.slots
    interval = request.app.state.config.dashboard.sse_interval_seconds

    async def generate():
        seen: dict[str, int] = {}
        while True:
            if await request.is_disconnected():
                break

            try:
                updates = collect_updates(slots, seen)
            except Exception as e:
                logger.error("SSE update error: %s", e)
                updates = []

            if updates:
                for update in updates:
                    yield format_event(update)
            else:
                yield ": keepalive\n\n"

            await asyncio.sleep(interval)

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
