"""JSON views of domain values and slot results."""

from __future__ import annotations

import dataclasses
import math
from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel

from comwatt_monitor.client.errors import ApiError, HttpError
from comwatt_monitor.domain.errors import ApiDomainError, DomainError
from comwatt_monitor.polling.slot import LatestValue
from comwatt_monitor.result import Failure, Success


def to_jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, float):
        return None if math.isnan(value) or math.isinf(value) else value
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        data = {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
        # Derived properties the UI shows next to the raw counts
        if hasattr(value, "remaining") and hasattr(value, "percent_used"):
            data["remaining"] = value.remaining
            data["percent_used"] = value.percent_used
        return data
    if isinstance(value, dict):
        return {_key(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def _key(key: Any) -> str:
    if isinstance(key, (datetime, date)):
        return key.isoformat()
    if isinstance(key, Enum):
        return str(key.value)
    return str(key)


def error_view(error: DomainError) -> dict[str, Any]:
    view: dict[str, Any] = {"kind": type(error).__name__, "message": error.message}
    if isinstance(error, ApiDomainError):
        api_error: ApiError = error.error
        view["api_error"] = type(api_error).__name__
        if isinstance(api_error, HttpError):
            view["code"] = api_error.code
    return view


def result_view(result: Success | Failure | None) -> dict[str, Any]:
    if result is None:
        return {"status": "pending"}
    if isinstance(result, Success):
        return {"status": "ok", "data": to_jsonable(result.value)}
    return {"status": "error", "error": error_view(result.error)}


def slot_view(slot: LatestValue) -> dict[str, Any]:
    view = result_view(slot.get() if slot.has_value else None)
    view["version"] = slot.version
    view["updated_at"] = slot.updated_at.isoformat() if slot.updated_at else None
    return view
