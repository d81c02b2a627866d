"""
Hourly analytics roll-up over persisted samples.

:func:`rollup_last_hour` summarises the samples in ``(now - 1h, now]``.
Energy totals use a one-term-per-sample Riemann sum,
``sum(power_w / 3600 / 1000)``, which assumes nothing about poll spacing
and is kept as-is so totals stay comparable with earlier entries.

:class:`AnalyticsLog` keeps the most recent 720 entries (about 30 days)
in ``analytics.json`` and serves range queries and the 24-hour summary.

CHANGELOG:
- 2026-10-07: Add summary() for the 24h overview card
- 2026-10-06: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from dashboard.src.documents import load_json, save_json
from dashboard.src.metrics import round_half_up
from dashboard.src.models import (
    AnalyticsEntry,
    BatteryStats,
    EnergyStats,
    GridStats,
    Sample,
)

logger = logging.getLogger(__name__)

ANALYTICS_FILENAME = "analytics.json"
ANALYTICS_LIMIT = 720
ROLLUP_WINDOW = timedelta(hours=1)

RANGE_ENTRIES: dict[str, int] = {"24h": 24, "7d": 168, "30d": 720}
"""Named ranges and the number of hourly entries each covers."""

SUMMARY_ENTRIES = 24


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def _riemann_kwh(values: Sequence[float]) -> float:
    return sum(value / 3600 / 1000 for value in values)


def rollup_last_hour(samples: Sequence[Sample], now: datetime) -> AnalyticsEntry | None:
    """Summarise the samples that fall in the hour ending at *now*.

    Args:
        samples: Candidate samples; those outside ``(now - 1h, now]`` are
            ignored.
        now: End of the roll-up window (aware UTC).

    Returns:
        An AnalyticsEntry stamped with *now*, or ``None`` if no samples fall
        in the window.
    """
    start = now - ROLLUP_WINDOW
    hourly = [s for s in samples if start < s.ts <= now]
    if not hourly:
        return None

    grid = [s.grid_w for s in hourly]
    solar = [s.solar_w for s in hourly]
    load = [s.load_w for s in hourly]
    soe = [s.battery_soe for s in hourly]

    return AnalyticsEntry(
        hour=now,
        grid=GridStats(
            avg=round_half_up(_mean(grid)), max=max(grid), min=min(grid), samples=len(hourly)
        ),
        solar=EnergyStats(
            avg=round_half_up(_mean(solar)),
            max=max(solar),
            min=min(solar),
            total_kwh=_riemann_kwh(solar),
        ),
        load=EnergyStats(
            avg=round_half_up(_mean(load)),
            max=max(load),
            min=min(load),
            total_kwh=_riemann_kwh(load),
        ),
        battery=BatteryStats(
            avg_soe=round_half_up(_mean(soe)), max_soe=max(soe), min_soe=min(soe)
        ),
    )


class AnalyticsLog:
    """Bounded, persisted list of hourly analytics entries (oldest first).

    Args:
        path: Location of the JSON document.
        limit: Maximum number of entries retained.
    """

    def __init__(self, path: str | Path, limit: int = ANALYTICS_LIMIT) -> None:
        self._path = Path(path)
        self._limit = limit
        self._entries: list[AnalyticsEntry] = []
        for item in load_json(self._path, []):
            try:
                self._entries.append(AnalyticsEntry.model_validate(item))
            except ValueError:
                logger.warning("Skipping malformed stored analytics entry")
        self._entries = self._entries[-self._limit :]

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: AnalyticsEntry) -> None:
        """Append *entry*, trim to the limit and persist.

        A failed write is logged; the entry is kept in memory.
        """
        self._entries.append(entry)
        self._entries = self._entries[-self._limit :]
        try:
            save_json(
                self._path,
                [e.model_dump(mode="json", by_alias=True) for e in self._entries],
            )
        except OSError:
            logger.error("Failed to persist analytics to %s", self._path, exc_info=True)

    def recent(self, range_key: str = "24h") -> list[AnalyticsEntry]:
        """Return the entries covering *range_key*, oldest first.

        Raises:
            ValueError: If *range_key* is not one of ``24h``, ``7d``, ``30d``.
        """
        if range_key not in RANGE_ENTRIES:
            raise ValueError(f"Unknown range '{range_key}'")
        return self._entries[-RANGE_ENTRIES[range_key] :]

    def summary(self) -> dict[str, Any] | None:
        """Summarise the last 24 entries, or ``None`` when there are none."""
        window = self._entries[-SUMMARY_ENTRIES:]
        if not window:
            return None

        avg_solar = round_half_up(_mean([e.solar.avg for e in window]))
        avg_load = round_half_up(_mean([e.load.avg for e in window]))
        return {
            "period": "24h",
            "grid": {"avg": round_half_up(_mean([e.grid.avg for e in window]))},
            "solar": {"avg": avg_solar, "total": f"{sum(e.solar.total_kwh for e in window):.2f}"},
            "load": {"avg": avg_load, "total": f"{sum(e.load.total_kwh for e in window):.2f}"},
            "trend": "surplus" if avg_solar > avg_load else "deficit",
            "peakLoad": max(e.load.max for e in window),
            "peakSolar": max(e.solar.max for e in window),
        }
