"""
Per-day baseline tracking for day-to-date energy deltas.

The first successful poll of a calendar date records the cumulative
counters as that date's baseline (first writer wins, see
:meth:`EnergyStore.insert_baseline_if_absent`). Every later poll on the
same date subtracts the baseline from the current counters.

Deltas are clamped at zero and held at their high-water mark for the
date, so a counter that dips momentarily never makes today's totals go
backwards.

The date key is the host's local calendar date, so the day rolls over at
local midnight.

CHANGELOG:
- 2026-10-09: Hold per-date high-water marks
- 2026-10-04: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from dashboard.src.models import CumulativeCounters, DailyBaseline, DayDelta
from dashboard.src.store import EnergyStore

logger = logging.getLogger(__name__)


def local_date_key(when: datetime | None = None) -> str:
    """Return the host-local calendar date of *when* as ``YYYY-MM-DD``.

    Args:
        when: Aware or naive datetime (naive is taken as local). Defaults
            to now.
    """
    if when is None:
        when = datetime.now()
    return when.astimezone().date().isoformat()


def compute_day_delta(baseline: CumulativeCounters, counters: CumulativeCounters) -> DayDelta:
    """Subtract *baseline* from *counters* per channel, clamped at zero."""
    return DayDelta(
        day_solar=max(0.0, counters.solar_exported_wh - baseline.solar_exported_wh),
        day_battery=max(0.0, counters.battery_exported_wh - baseline.battery_exported_wh),
        day_grid=max(0.0, counters.grid_imported_wh - baseline.grid_imported_wh),
        day_load=max(0.0, counters.load_imported_wh - baseline.load_imported_wh),
    )


def _high_water(previous: DayDelta, current: DayDelta) -> DayDelta:
    return DayDelta(
        day_solar=max(previous.day_solar, current.day_solar),
        day_battery=max(previous.day_battery, current.day_battery),
        day_grid=max(previous.day_grid, current.day_grid),
        day_load=max(previous.day_load, current.day_load),
    )


class BaselineTracker:
    """Resolve the baseline for a date and compute its day delta.

    Baselines never change once written, so the current date's row is
    cached after the first lookup.

    Args:
        store: Opened energy store.
    """

    def __init__(self, store: EnergyStore) -> None:
        self._store = store
        self._baseline: DailyBaseline | None = None
        self._peak: DayDelta = DayDelta()
        self._lock = asyncio.Lock()

    async def day_delta(self, date_key: str, counters: CumulativeCounters) -> DayDelta:
        """Return today's delta for *counters*, creating the baseline if absent.

        Args:
            date_key: Calendar date (``YYYY-MM-DD``).
            counters: Current cumulative counters from the gateway.

        Returns:
            DayDelta for *date_key*, non-decreasing across calls on that date.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the baseline cannot be read
                or written.
        """
        async with self._lock:
            baseline = await self._resolve(date_key, counters)
            delta = _high_water(self._peak, compute_day_delta(baseline, counters))
            self._peak = delta
            return delta

    async def _resolve(self, date_key: str, counters: CumulativeCounters) -> DailyBaseline:
        if self._baseline is not None and self._baseline.date == date_key:
            return self._baseline

        baseline = await self._store.get_baseline(date_key)
        if baseline is None:
            baseline = await self._store.insert_baseline_if_absent(date_key, counters)
        logger.debug("Using baseline for %s", date_key)
        self._baseline = baseline
        self._peak = DayDelta()
        return baseline
