"""
Shared test fixtures for dashboard tests.

Cleans every DashboardSettings environment variable before each test and
runs the test from its own tmp directory so no stray ``.env`` file or data
directory leaks in. Also provides payload builders for gateway aggregates
and ready-made readings.

CHANGELOG:
- 2026-10-03: Initial creation
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

from dashboard.src.gateway import GatewaySnapshot
from dashboard.src.models import DayDelta, Reading
from dashboard.src.normalizer import normalize

# All DashboardSettings environment variable names, used for cleanup.
_ALL_DASHBOARD_ENV_VARS = (
    "GATEWAY_HOST",
    "GATEWAY_USERNAME",
    "GATEWAY_PASSWORD",
    "GATEWAY_TIMEOUT_S",
    "POLL_INTERVAL_S",
    "DIRECT_CACHE_TTL_S",
    "ANALYTICS_INTERVAL_S",
    "SAMPLE_RETENTION_DAYS",
    "DATA_DIR",
    "DATABASE_URL",
    "PUBLIC_DIR",
    "CODE_WATCH_INTERVAL_S",
    "OPENWEATHER_API_KEY",
    "WEATHER_LAT",
    "WEATHER_LON",
    "WEATHER_LOCATION",
    "AMBIENT_APP_KEY",
    "AMBIENT_API_KEY",
    "HOST",
    "PORT",
    "LOG_LEVEL",
)

READING_TS = datetime(2026, 10, 14, 12, 0, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _clean_dashboard_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove all dashboard env vars and isolate from .env files."""
    for var in _ALL_DASHBOARD_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def env_vars_required_only(monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Set only the required environment variables."""
    env = {
        "GATEWAY_HOST": "192.168.1.50",
        "GATEWAY_PASSWORD": "ABCDE",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'energy-test.db'}"


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def _make_aggregates(
    *,
    grid: float = 500.0,
    battery: float = -1200.0,
    load: float = 1800.0,
    solar: float = 2500.0,
    solar_exported: float = 5_000_000.0,
    battery_exported: float = 2_000_000.0,
    battery_imported: float = 2_500_000.0,
    grid_imported: float = 3_000_000.0,
    grid_exported: float = 1_000_000.0,
    load_imported: float = 9_000_000.0,
) -> dict[str, Any]:
    """Build a ``/api/meters/aggregates`` body with plausible values."""
    return {
        "site": {
            "instant_power": grid,
            "instant_average_voltage": 240.1,
            "instant_average_current": 2.1,
            "energy_exported": grid_exported,
            "energy_imported": grid_imported,
        },
        "battery": {
            "instant_power": battery,
            "instant_average_voltage": 239.8,
            "instant_average_current": -5.0,
            "energy_exported": battery_exported,
            "energy_imported": battery_imported,
        },
        "load": {
            "instant_power": load,
            "instant_average_voltage": 240.1,
            "instant_average_current": 7.5,
            "energy_exported": 0,
            "energy_imported": load_imported,
        },
        "solar": {
            "instant_power": solar,
            "instant_average_voltage": 241.0,
            "instant_average_current": 10.4,
            "energy_exported": solar_exported,
            "energy_imported": 0,
        },
    }


def _make_snapshot(soe: float = 80.0, **aggregates: float) -> GatewaySnapshot:
    return GatewaySnapshot(
        aggregates=_make_aggregates(**aggregates),
        soe=soe,
        grid_status={"grid_status": "SystemGridConnected"},
        operation={"real_mode": "self_consumption", "backup_reserve_percent": 20.0},
    )


def _make_reading(
    soe: float = 80.0,
    ts: datetime = READING_TS,
    delta: DayDelta | None = None,
    **aggregates: float,
) -> Reading:
    """Build a Reading through the real normalizer."""
    return normalize(_make_snapshot(soe, **aggregates), delta=delta or DayDelta(), ts=ts)


@pytest.fixture()
def aggregates_factory():
    """Builder for aggregates payloads; keyword overrides per channel."""
    return _make_aggregates


@pytest.fixture()
def snapshot_factory():
    """Builder for GatewaySnapshot objects."""
    return _make_snapshot


@pytest.fixture()
def reading_factory():
    """Builder for normalised Readings."""
    return _make_reading
