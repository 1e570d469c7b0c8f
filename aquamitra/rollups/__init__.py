"""Rollup package."""

from aquamitra.rollups.engine import (
    DEFAULT_SERIES,
    local_date,
    local_midnight,
    period_key,
    period_label,
    period_start_date,
    rollup,
    to_chart,
)

__all__ = [
    "DEFAULT_SERIES",
    "local_date",
    "local_midnight",
    "period_key",
    "period_label",
    "period_start_date",
    "rollup",
    "to_chart",
]
