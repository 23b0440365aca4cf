"""Query enums of the aggregation endpoints, sent by name."""

from __future__ import annotations

from enum import Enum


class MeasureKind(str, Enum):
    FLOW = "FLOW"
    QUANTITY = "QUANTITY"


class AggregationLevel(str, Enum):
    NONE = "NONE"
    HOUR = "HOUR"
    DAY = "DAY"
    MONTH = "MONTH"


class AggregationType(str, Enum):
    SUM = "SUM"
    AVERAGE = "AVERAGE"
    MIN = "MIN"
    MAX = "MAX"


class TimeAgoUnit(str, Enum):
    HOUR = "HOUR"
    DAY = "DAY"
    WEEK = "WEEK"
    MONTH = "MONTH"
    YEAR = "YEAR"


class TileType(str, Enum):
    THIRD_PARTY = "THIRD_PARTY"
    VALUATION = "VALUATION"
