"""
Daily energy breakdown and self-powered percentages.

Pure functions over a :class:`~dashboard.src.models.DayDelta`. Percentages
round half up (62.5 becomes 63) and are clamped to 0..100. kWh values are
one-decimal strings, ready for display.

CHANGELOG:
- 2026-10-04: Initial creation

TODO:
- None
"""

from __future__ import annotations

import math

from dashboard.src.models import DailyBreakdown, DayDelta

KWH_DIVISOR = 1e6
"""Cumulative counter units per displayed kWh."""


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounding towards +inf."""
    return int(math.floor(value + 0.5))


def clamp_percent(value: int) -> int:
    """Clamp a percentage to 0..100."""
    return max(0, min(100, value))


def to_kwh(value: float) -> str:
    """Format a cumulative counter value as a one-decimal kWh string."""
    return f"{value / KWH_DIVISOR:.1f}"


def daily_breakdown(delta: DayDelta) -> DailyBreakdown:
    """Compute each source's share of today's load.

    Percentages are zero while no load has accumulated today.

    Args:
        delta: Day-to-date energy per channel.

    Returns:
        DailyBreakdown with integer percentages and kWh strings.
    """
    if delta.day_load > 0:
        solar_pct = round_half_up(delta.day_solar / delta.day_load * 100)
        battery_pct = round_half_up(delta.day_battery / delta.day_load * 100)
        grid_pct = round_half_up(delta.day_grid / delta.day_load * 100)
    else:
        solar_pct = battery_pct = grid_pct = 0

    return DailyBreakdown(
        solar_pct=solar_pct,
        battery_pct=battery_pct,
        grid_pct=grid_pct,
        solar_kwh=to_kwh(delta.day_solar),
        battery_kwh=to_kwh(delta.day_battery),
        grid_kwh=to_kwh(delta.day_grid),
        load_kwh=to_kwh(delta.day_load),
    )


def daily_self_powered(delta: DayDelta, instant_percent: int) -> int:
    """Share of today's load met by solar plus battery.

    Falls back to *instant_percent* until some load has accumulated today
    (just after midnight, or on a fresh install).
    """
    if delta.day_load <= 0:
        return instant_percent
    covered = (delta.day_solar + delta.day_battery) / delta.day_load * 100
    return clamp_percent(round_half_up(covered))
