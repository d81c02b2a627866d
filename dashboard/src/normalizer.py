"""
Turn a raw gateway snapshot into a derived :class:`Reading`.

Pure functions: no I/O, no clock. The caller supplies the day-to-date
delta (from :mod:`dashboard.src.baseline`) and the reading timestamp.

Sign conventions follow the gateway meters:

- grid: positive = importing, negative = exporting
- battery: positive = discharging, negative = charging

CHANGELOG:
- 2026-10-16: Derive status and percentages from rounded watts
- 2026-10-11: Carry grid_status / operation into Reading.system
- 2026-10-04: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from dashboard.src.gateway import GatewaySnapshot
from dashboard.src.metrics import (
    clamp_percent,
    daily_breakdown,
    daily_self_powered,
    round_half_up,
    to_kwh,
)
from dashboard.src.models import (
    BatteryChannel,
    BatteryStatus,
    CumulativeCounters,
    DayDelta,
    GridChannel,
    LoadChannel,
    Reading,
    SolarChannel,
    SystemStatus,
)

BATTERY_DEADBAND_W = 10
"""Battery power within +/- this many watts is reported as standby."""

GRID_SUPPLYING_BELOW_W = -100
"""Grid power below this (exporting) marks the grid channel as supplied by the site."""


def battery_status(battery_power: int) -> BatteryStatus:
    """Classify battery power with a dead-band around zero.

    Returns:
        ``discharging`` above +10 W, ``charging`` below -10 W, otherwise
        ``standby``.
    """
    if battery_power > BATTERY_DEADBAND_W:
        return "discharging"
    if battery_power < -BATTERY_DEADBAND_W:
        return "charging"
    return "standby"


def self_powered_percent(load_power: int, grid_power: int) -> int:
    """Instantaneous share of the load not imported from the grid.

    Exporting (negative grid) counts as zero grid supply. A non-positive
    load yields 0.
    """
    if load_power <= 0:
        return 0
    grid_supplied = max(0, grid_power)
    return clamp_percent(round_half_up((load_power - grid_supplied) / load_power * 100))


def _meter(aggregates: dict[str, Any], channel: str) -> dict[str, Any]:
    meter = aggregates.get(channel)
    if not isinstance(meter, dict):
        raise ValueError(f"aggregates channel '{channel}' missing or malformed")
    return meter


def _number(meter: dict[str, Any], key: str, default: float | None = 0.0) -> float | None:
    value = meter.get(key)
    if value is None:
        return default
    return float(value)


def _power(meter: dict[str, Any], channel: str) -> float:
    if meter.get("instant_power") is None:
        raise ValueError(f"aggregates channel '{channel}' has no instant_power")
    return float(meter["instant_power"])


def cumulative_counters(aggregates: dict[str, Any]) -> CumulativeCounters:
    """Extract the cumulative energy counters from an aggregates payload."""
    site = _meter(aggregates, "site")
    battery = _meter(aggregates, "battery")
    load = _meter(aggregates, "load")
    solar = _meter(aggregates, "solar")
    return CumulativeCounters(
        solar_exported_wh=_number(solar, "energy_exported"),
        battery_exported_wh=_number(battery, "energy_exported"),
        battery_imported_wh=_number(battery, "energy_imported"),
        grid_imported_wh=_number(site, "energy_imported"),
        grid_exported_wh=_number(site, "energy_exported"),
        load_imported_wh=_number(load, "energy_imported"),
    )


def _system_status(snapshot: GatewaySnapshot) -> SystemStatus:
    return SystemStatus(
        grid_status=str(snapshot.grid_status.get("grid_status") or ""),
        operation_mode=str(snapshot.operation.get("real_mode") or ""),
        backup_reserve_percent=float(snapshot.operation.get("backup_reserve_percent") or 0),
    )


def normalize(snapshot: GatewaySnapshot, *, delta: DayDelta, ts: datetime) -> Reading:
    """Build a :class:`Reading` from a gateway snapshot.

    Args:
        snapshot: Raw payloads from one gateway exchange.
        delta: Day-to-date energy for the reading's calendar date.
        ts: Reading timestamp (UTC).

    Returns:
        A fully populated, frozen Reading.

    Raises:
        ValueError: If a channel or its instantaneous power is missing.
    """
    aggregates = snapshot.aggregates
    site = _meter(aggregates, "site")
    battery = _meter(aggregates, "battery")
    load = _meter(aggregates, "load")
    solar = _meter(aggregates, "solar")

    # Status and percentages derive from the published integer watts.
    grid_power = round_half_up(_power(site, "site"))
    battery_power = round_half_up(_power(battery, "battery"))
    load_power = round_half_up(_power(load, "load"))
    solar_power = round_half_up(_power(solar, "solar"))

    instant_percent = self_powered_percent(load_power, grid_power)

    return Reading(
        timestamp=ts,
        grid=GridChannel(
            power=grid_power,
            voltage=_number(site, "instant_average_voltage", None),
            current=_number(site, "instant_average_current", None),
            energy_exported=to_kwh(_number(site, "energy_exported")),
            energy_imported=to_kwh(_number(site, "energy_imported")),
            is_supplying=grid_power < GRID_SUPPLYING_BELOW_W,
        ),
        battery=BatteryChannel(
            power=battery_power,
            soe=snapshot.soe,
            voltage=_number(battery, "instant_average_voltage", None),
            current=_number(battery, "instant_average_current", None),
            energy_exported=to_kwh(_number(battery, "energy_exported")),
            energy_imported=to_kwh(_number(battery, "energy_imported")),
            status=battery_status(battery_power),
        ),
        load=LoadChannel(
            power=load_power,
            voltage=_number(load, "instant_average_voltage", None),
            current=_number(load, "instant_average_current", None),
            energy_imported=to_kwh(_number(load, "energy_imported")),
        ),
        solar=SolarChannel(
            power=solar_power,
            voltage=_number(solar, "instant_average_voltage", None),
            energy_exported=to_kwh(_number(solar, "energy_exported")),
        ),
        system=_system_status(snapshot),
        self_powered_percent=daily_self_powered(delta, instant_percent),
        instant_self_powered_percent=instant_percent,
        daily_breakdown=daily_breakdown(delta),
    )
