"""
Pydantic models for energy readings, samples, alerts and analytics.

Wire models that reach the browser use camelCase aliases (the wall display
front-end reads ``selfPoweredPercent``, ``dailyBreakdown`` and friends);
models that mirror database rows keep their snake_case column names.

A :class:`Reading` is frozen: every poll builds a new one that replaces the
cached latest value wholesale.

CHANGELOG:
- 2026-10-11: Add SystemStatus for best-effort grid/operation status
- 2026-10-04: Add Timer and DashboardPreferences
- 2026-10-02: Initial creation

TODO:
- None
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

BatteryStatus = Literal["charging", "discharging", "standby"]
Severity = Literal["low", "medium", "high", "critical"]


class CamelModel(BaseModel):
    """Base for models serialised to the front-end with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Cumulative counters and day deltas
# ---------------------------------------------------------------------------


class CumulativeCounters(BaseModel):
    """Cumulative energy counters reported by the gateway since its epoch.

    Values are raw meter units (the gateway reports them as watt-hours;
    the kWh conversion in :mod:`dashboard.src.metrics` divides by 1e6).
    """

    model_config = ConfigDict(frozen=True)

    solar_exported_wh: float = 0.0
    battery_exported_wh: float = 0.0
    battery_imported_wh: float = 0.0
    grid_imported_wh: float = 0.0
    grid_exported_wh: float = 0.0
    load_imported_wh: float = 0.0


class DailyBaseline(CumulativeCounters):
    """First cumulative snapshot observed on a calendar date (``YYYY-MM-DD``)."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    date: str


class DayDelta(BaseModel):
    """Day-to-date energy per channel, each clamped at zero."""

    model_config = ConfigDict(frozen=True)

    day_solar: float = 0.0
    day_battery: float = 0.0
    day_grid: float = 0.0
    day_load: float = 0.0


# ---------------------------------------------------------------------------
# Reading (ephemeral, one per successful poll)
# ---------------------------------------------------------------------------


class GridChannel(CamelModel):
    """Utility grid meter. Positive power = importing, negative = exporting."""

    power: int
    voltage: float | None = None
    current: float | None = None
    energy_exported: str = "0.0"
    energy_imported: str = "0.0"
    is_supplying: bool = False


class BatteryChannel(CamelModel):
    """Battery meter. Positive power = discharging, negative = charging."""

    power: int
    soe: float
    voltage: float | None = None
    current: float | None = None
    energy_exported: str = "0.0"
    energy_imported: str = "0.0"
    status: BatteryStatus = "standby"


class LoadChannel(CamelModel):
    """House load meter."""

    power: int
    voltage: float | None = None
    current: float | None = None
    energy_imported: str = "0.0"


class SolarChannel(CamelModel):
    """Solar production meter."""

    power: int
    voltage: float | None = None
    energy_exported: str = "0.0"


class SystemStatus(CamelModel):
    """Extended gateway status. Empty/zero when the best-effort read fails."""

    grid_status: str = ""
    operation_mode: str = ""
    backup_reserve_percent: float = 0.0


class DailyBreakdown(CamelModel):
    """Share of today's load covered by each source, plus kWh strings."""

    solar_pct: int = 0
    battery_pct: int = 0
    grid_pct: int = 0
    solar_kwh: str = "0.0"
    battery_kwh: str = "0.0"
    grid_kwh: str = "0.0"
    load_kwh: str = "0.0"


class Reading(CamelModel):
    """A fully derived energy reading, as cached and pushed to displays.

    Attributes:
        timestamp: When the reading was taken (UTC).
        self_powered_percent: Day-to-date self-powered %, falling back to
            the instantaneous value before any load has accumulated today.
        instant_self_powered_percent: Self-powered % from this poll alone.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    timestamp: datetime
    grid: GridChannel
    battery: BatteryChannel
    load: LoadChannel
    solar: SolarChannel
    system: SystemStatus = Field(default_factory=SystemStatus)
    self_powered_percent: int
    instant_self_powered_percent: int
    daily_breakdown: DailyBreakdown = Field(default_factory=DailyBreakdown)


# ---------------------------------------------------------------------------
# Persistent rows
# ---------------------------------------------------------------------------


class Sample(BaseModel):
    """One persisted poll result (a row of ``power_samples``)."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    ts: datetime
    solar_w: float
    battery_w: float
    grid_w: float
    load_w: float
    battery_soe: float
    battery_status: str


class Alert(CamelModel):
    """A raised alert. ``id`` names the alert kind, not the occurrence."""

    id: str
    type: str
    severity: Severity
    title: str
    message: str
    timestamp: datetime


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


class PowerStats(CamelModel):
    """Average (rounded), maximum and minimum of a power channel in watts."""

    avg: int
    max: float
    min: float


class GridStats(PowerStats):
    samples: int


class EnergyStats(PowerStats):
    total_kwh: float


class BatteryStats(CamelModel):
    avg_soe: int
    max_soe: float
    min_soe: float


class AnalyticsEntry(CamelModel):
    """Hourly roll-up of the samples in the preceding 60 minutes."""

    hour: datetime
    grid: GridStats
    solar: EnergyStats
    load: EnergyStats
    battery: BatteryStats


# ---------------------------------------------------------------------------
# Settings document, temperatures, timers
# ---------------------------------------------------------------------------


class AlertThresholds(CamelModel):
    """User-editable alert thresholds."""

    battery_low: float = 20
    battery_high: float = 95
    grid_down: bool = True
    high_load: float = 5000
    high_temp: float = 85
    low_temp: float = 50


class DashboardPreferences(CamelModel):
    """The mutable settings document. Unknown display keys are preserved."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    theme: str = "dark"
    timezone: str = "America/New_York"
    alerts: AlertThresholds = Field(default_factory=AlertThresholds)


class ZoneTemperature(CamelModel):
    temp: float | None = None
    humidity: float | None = None


class TemperatureReading(CamelModel):
    """Temperatures by zone in degrees Fahrenheit."""

    inside: ZoneTemperature = Field(default_factory=ZoneTemperature)
    basement: ZoneTemperature = Field(default_factory=ZoneTemperature)
    outside: ZoneTemperature = Field(default_factory=ZoneTemperature)
    pool: ZoneTemperature = Field(default_factory=ZoneTemperature)
    spa: ZoneTemperature = Field(default_factory=ZoneTemperature)


class Timer(CamelModel):
    """An admin-managed countdown timer shown on the displays."""

    id: str
    name: str = "Timer"
    target_time: str | None = None
    color: str = "#4caf50"
    created_at: datetime
