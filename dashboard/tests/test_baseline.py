"""
Tests for per-day baseline tracking and day deltas.

CHANGELOG:
- 2026-10-09: Cover per-date high-water marks
- 2026-10-04: Initial creation
"""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from dashboard.src.baseline import BaselineTracker, compute_day_delta, local_date_key
from dashboard.src.models import CumulativeCounters, DailyBaseline
from dashboard.src.store import EnergyStore


def _counters(
    solar: float = 0.0,
    battery_out: float = 0.0,
    grid_in: float = 0.0,
    load: float = 0.0,
) -> CumulativeCounters:
    return CumulativeCounters(
        solar_exported_wh=solar,
        battery_exported_wh=battery_out,
        grid_imported_wh=grid_in,
        load_imported_wh=load,
    )


class TestLocalDateKey:
    def test_format(self) -> None:
        key = local_date_key(datetime(2026, 10, 14, 12, 0, tzinfo=UTC))
        assert len(key) == 10
        assert key[4] == "-" and key[7] == "-"

    def test_naive_is_taken_as_local(self) -> None:
        assert local_date_key(datetime(2026, 3, 5, 12, 0)) == "2026-03-05"


class TestComputeDayDelta:
    def test_subtracts_per_channel(self) -> None:
        delta = compute_day_delta(
            _counters(100, 200, 300, 400), _counters(150, 260, 370, 480)
        )
        assert (delta.day_solar, delta.day_battery, delta.day_grid, delta.day_load) == (
            50,
            60,
            70,
            80,
        )

    def test_clamped_at_zero(self) -> None:
        delta = compute_day_delta(_counters(solar=500, load=500), _counters(solar=400, load=600))
        assert delta.day_solar == 0
        assert delta.day_load == 100


class TestBaselineTracker:
    @pytest.mark.asyncio
    async def test_first_poll_creates_baseline_with_zero_delta(self, database_url: str) -> None:
        async with EnergyStore(database_url) as store:
            tracker = BaselineTracker(store)
            delta = await tracker.day_delta("2026-10-14", _counters(1000, 500, 300, 2000))
            stored = await store.get_baseline("2026-10-14")

        assert delta.day_solar == 0
        assert delta.day_load == 0
        assert stored is not None
        assert stored.solar_exported_wh == 1000

    @pytest.mark.asyncio
    async def test_later_poll_subtracts_baseline(self, database_url: str) -> None:
        async with EnergyStore(database_url) as store:
            tracker = BaselineTracker(store)
            await tracker.day_delta("2026-10-14", _counters(1000, 500, 300, 2000))
            delta = await tracker.day_delta("2026-10-14", _counters(1600, 700, 450, 3000))

        assert delta.day_solar == 600
        assert delta.day_battery == 200
        assert delta.day_grid == 150
        assert delta.day_load == 1000

    @pytest.mark.asyncio
    async def test_existing_baseline_is_reused_after_restart(self, database_url: str) -> None:
        async with EnergyStore(database_url) as store:
            await BaselineTracker(store).day_delta("2026-10-14", _counters(solar=1000))
            # New tracker simulates a service restart mid-day.
            delta = await BaselineTracker(store).day_delta("2026-10-14", _counters(solar=1800))

        assert delta.day_solar == 800

    @pytest.mark.asyncio
    async def test_counter_dip_never_decreases_delta(self, database_url: str) -> None:
        async with EnergyStore(database_url) as store:
            tracker = BaselineTracker(store)
            await tracker.day_delta("2026-10-14", _counters(solar=1000))
            high = await tracker.day_delta("2026-10-14", _counters(solar=1500))
            dipped = await tracker.day_delta("2026-10-14", _counters(solar=1200))
            below = await tracker.day_delta("2026-10-14", _counters(solar=900))

        assert high.day_solar == 500
        assert dipped.day_solar == 500
        assert below.day_solar == 500

    @pytest.mark.asyncio
    async def test_new_date_starts_from_zero(self, database_url: str) -> None:
        async with EnergyStore(database_url) as store:
            tracker = BaselineTracker(store)
            await tracker.day_delta("2026-10-14", _counters(solar=1000))
            await tracker.day_delta("2026-10-14", _counters(solar=5000))
            delta = await tracker.day_delta("2026-10-15", _counters(solar=5200))
            later = await tracker.day_delta("2026-10-15", _counters(solar=5300))

        assert delta.day_solar == 0
        assert later.day_solar == 300

    @pytest.mark.asyncio
    async def test_baseline_cached_after_first_lookup(self) -> None:
        store = AsyncMock(spec=EnergyStore)
        store.get_baseline = AsyncMock(
            return_value=DailyBaseline(date="2026-10-14", solar_exported_wh=100)
        )
        tracker = BaselineTracker(store)

        await tracker.day_delta("2026-10-14", _counters(solar=150))
        await tracker.day_delta("2026-10-14", _counters(solar=200))

        store.get_baseline.assert_awaited_once_with("2026-10-14")
        store.insert_baseline_if_absent.assert_not_awaited()
