"""
Tests for snapshot normalisation into Readings.

Covers the battery dead-band, instantaneous self-powered %, cumulative
counter extraction, best-effort system status and malformed payloads.

CHANGELOG:
- 2026-10-16: Classify from rounded watts in normalize()
- 2026-10-11: Cover Reading.system defaults
- 2026-10-04: Initial creation
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from dashboard.src.gateway import GatewaySnapshot
from dashboard.src.models import DayDelta
from dashboard.src.normalizer import (
    battery_status,
    cumulative_counters,
    normalize,
    self_powered_percent,
)

TS = datetime(2026, 10, 14, 12, 0, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Battery status dead-band
# ---------------------------------------------------------------------------


class TestBatteryStatus:
    @pytest.mark.parametrize(
        ("power", "expected"),
        [
            (10, "standby"),
            (11, "discharging"),
            (-10, "standby"),
            (-11, "charging"),
            (0, "standby"),
            (2500, "discharging"),
            (-3000, "charging"),
        ],
    )
    def test_deadband_boundaries(self, power: int, expected: str) -> None:
        assert battery_status(power) == expected


# ---------------------------------------------------------------------------
# Instantaneous self-powered %
# ---------------------------------------------------------------------------


class TestSelfPoweredPercent:
    def test_mostly_grid_supplied(self) -> None:
        """(990 - 980) / 990 * 100 = 1.01 rounds to 1."""
        assert self_powered_percent(load_power=990, grid_power=980) == 1

    def test_exporting_counts_as_zero_grid(self) -> None:
        assert self_powered_percent(load_power=990, grid_power=-20) == 100

    @pytest.mark.parametrize("load", [0, -5])
    def test_non_positive_load_is_zero(self, load: float) -> None:
        assert self_powered_percent(load_power=load, grid_power=100) == 0

    def test_grid_exceeding_load_clamps_to_zero(self) -> None:
        assert self_powered_percent(load_power=1000, grid_power=1500) == 0

    def test_half_rounds_up(self) -> None:
        """(200 - 199) / 200 * 100 = 0.5 rounds up to 1."""
        assert self_powered_percent(load_power=200, grid_power=199) == 1


# ---------------------------------------------------------------------------
# Cumulative counters
# ---------------------------------------------------------------------------


class TestCumulativeCounters:
    def test_maps_each_channel(self, aggregates_factory) -> None:
        counters = cumulative_counters(aggregates_factory())

        assert counters.solar_exported_wh == 5_000_000.0
        assert counters.battery_exported_wh == 2_000_000.0
        assert counters.battery_imported_wh == 2_500_000.0
        assert counters.grid_imported_wh == 3_000_000.0
        assert counters.grid_exported_wh == 1_000_000.0
        assert counters.load_imported_wh == 9_000_000.0

    def test_missing_channel_raises(self, aggregates_factory) -> None:
        aggregates = aggregates_factory()
        del aggregates["solar"]
        with pytest.raises(ValueError, match="solar"):
            cumulative_counters(aggregates)


# ---------------------------------------------------------------------------
# normalize()
# ---------------------------------------------------------------------------


class TestNormalize:
    def test_rounds_power_and_derives_fields(self, snapshot_factory) -> None:
        snapshot = snapshot_factory(grid=499.6, battery=-1200.4, load=1800.5, solar=2500.2)
        reading = normalize(snapshot, delta=DayDelta(), ts=TS)

        assert reading.timestamp == TS
        assert reading.grid.power == 500
        assert reading.battery.power == -1200
        assert reading.load.power == 1801
        assert reading.solar.power == 2500
        assert reading.battery.status == "charging"
        assert reading.battery.soe == 80.0

    def test_energy_strings_use_million_divisor(self, snapshot_factory) -> None:
        reading = normalize(snapshot_factory(), delta=DayDelta(), ts=TS)

        assert reading.solar.energy_exported == "5.0"
        assert reading.grid.energy_imported == "3.0"
        assert reading.grid.energy_exported == "1.0"
        assert reading.load.energy_imported == "9.0"

    @pytest.mark.parametrize(("grid", "supplying"), [(-101, True), (-100, False), (50, False)])
    def test_grid_is_supplying_threshold(
        self, snapshot_factory, grid: float, supplying: bool
    ) -> None:
        reading = normalize(snapshot_factory(grid=grid), delta=DayDelta(), ts=TS)
        assert reading.grid.is_supplying is supplying

    @pytest.mark.parametrize("battery", [10.4, -10.4])
    def test_battery_status_matches_published_power(
        self, snapshot_factory, battery: float
    ) -> None:
        reading = normalize(snapshot_factory(battery=battery), delta=DayDelta(), ts=TS)

        assert abs(reading.battery.power) == 10
        assert reading.battery.status == "standby"

    def test_grid_is_supplying_uses_rounded_power(self, snapshot_factory) -> None:
        reading = normalize(snapshot_factory(grid=-100.4), delta=DayDelta(), ts=TS)

        assert reading.grid.power == -100
        assert reading.grid.is_supplying is False

    def test_instant_percent_matches_published_power(self, snapshot_factory) -> None:
        reading = normalize(snapshot_factory(grid=99.6, load=100.4), delta=DayDelta(), ts=TS)

        assert reading.grid.power == 100
        assert reading.load.power == 100
        assert reading.instant_self_powered_percent == 0

    def test_daily_fields_fall_back_to_instant_without_load(self, snapshot_factory) -> None:
        reading = normalize(snapshot_factory(grid=900, load=1000), delta=DayDelta(), ts=TS)

        assert reading.instant_self_powered_percent == 10
        assert reading.self_powered_percent == 10
        assert reading.daily_breakdown.solar_pct == 0

    def test_daily_self_powered_uses_delta(self, snapshot_factory) -> None:
        delta = DayDelta(day_solar=3_000_000, day_battery=1_000_000, day_grid=1_000_000, day_load=5_000_000)
        reading = normalize(snapshot_factory(grid=900, load=1000), delta=delta, ts=TS)

        assert reading.self_powered_percent == 80
        assert reading.instant_self_powered_percent == 10
        assert reading.daily_breakdown.grid_pct == 20

    def test_system_status_from_extended_reads(self, snapshot_factory) -> None:
        reading = normalize(snapshot_factory(), delta=DayDelta(), ts=TS)

        assert reading.system.grid_status == "SystemGridConnected"
        assert reading.system.operation_mode == "self_consumption"
        assert reading.system.backup_reserve_percent == 20.0

    def test_system_status_defaults_when_extended_reads_empty(self, aggregates_factory) -> None:
        snapshot = GatewaySnapshot(aggregates=aggregates_factory(), soe=55.0)
        reading = normalize(snapshot, delta=DayDelta(), ts=TS)

        assert reading.system.grid_status == ""
        assert reading.system.operation_mode == ""
        assert reading.system.backup_reserve_percent == 0.0

    def test_missing_instant_power_raises(self, aggregates_factory) -> None:
        aggregates = aggregates_factory()
        del aggregates["load"]["instant_power"]
        snapshot = GatewaySnapshot(aggregates=aggregates, soe=50.0)
        with pytest.raises(ValueError, match="instant_power"):
            normalize(snapshot, delta=DayDelta(), ts=TS)

    def test_serialises_with_camel_case_keys(self, snapshot_factory) -> None:
        reading = normalize(snapshot_factory(), delta=DayDelta(), ts=TS)
        body = reading.model_dump(mode="json", by_alias=True)

        assert "selfPoweredPercent" in body
        assert "instantSelfPoweredPercent" in body
        assert "solarPct" in body["dailyBreakdown"]
        assert "isSupplying" in body["grid"]
