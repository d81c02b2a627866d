"""
Energy pipeline: one poll cycle end to end, plus the read side.

A poll cycle runs strictly in order:

1. fetch a snapshot from the gateway (``None`` ends the cycle quietly)
2. resolve today's baseline and day delta
3. normalise into a :class:`Reading` and cache it as the latest value
4. persist a sample
5. evaluate alerts and record new ones
6. broadcast new alerts, then the reading

Persistence failures are logged and the cycle continues: the reading is
still cached and broadcast. If the baseline cannot be resolved the day
delta is zero, so daily figures fall back to their instantaneous values.

The read side (history, baselines, analytics, alerts) is exposed here so
HTTP handlers depend on one object.

CHANGELOG:
- 2026-10-09: Add retention trim
- 2026-10-07: Stale-reading fallback for on-demand refresh
- 2026-10-05: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from dashboard.src.alerts import AlertEngine, AlertLog
from dashboard.src.analytics import AnalyticsLog, rollup_last_hour
from dashboard.src.baseline import BaselineTracker, local_date_key
from dashboard.src.broadcast import Broadcaster, StreamEvent, Subscription
from dashboard.src.gateway import GatewayClient
from dashboard.src.models import (
    Alert,
    AnalyticsEntry,
    DailyBaseline,
    DayDelta,
    Reading,
    Sample,
)
from dashboard.src.normalizer import cumulative_counters, normalize
from dashboard.src.state import DashboardState
from dashboard.src.store import EnergyStore

logger = logging.getLogger(__name__)

HISTORY_RANGES: dict[str, timedelta] = {
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def sample_from_reading(reading: Reading) -> Sample:
    """Project a reading onto the persisted sample columns."""
    return Sample(
        ts=reading.timestamp,
        solar_w=reading.solar.power,
        battery_w=reading.battery.power,
        grid_w=reading.grid.power,
        load_w=reading.load.power,
        battery_soe=reading.battery.soe,
        battery_status=reading.battery.status,
    )


class EnergyPipeline:
    """Poll, derive, persist, alert and broadcast energy readings.

    Args:
        gateway: Gateway client.
        store: Opened energy store.
        alert_engine: Threshold evaluator.
        alert_log: Persisted alert list.
        analytics_log: Persisted analytics list.
        broadcaster: Live subscriber registry.
        state: Process-scoped caches.
        direct_cache_ttl_s: Freshness window for :meth:`refresh`.
        clock: Returns the current aware UTC time.
    """

    def __init__(
        self,
        *,
        gateway: GatewayClient,
        store: EnergyStore,
        alert_engine: AlertEngine,
        alert_log: AlertLog,
        analytics_log: AnalyticsLog,
        broadcaster: Broadcaster,
        state: DashboardState,
        direct_cache_ttl_s: float = 15.0,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._baselines = BaselineTracker(store)
        self._alert_engine = alert_engine
        self._alert_log = alert_log
        self._analytics_log = analytics_log
        self._broadcaster = broadcaster
        self._state = state
        self._direct_cache_ttl_s = direct_cache_ttl_s
        self._clock = clock

    # ------------------------------------------------------------------
    # Poll cycle
    # ------------------------------------------------------------------

    async def poll_once(self) -> Reading | None:
        """Run one poll cycle.

        Returns:
            The new reading, or ``None`` if the gateway produced nothing
            usable this cycle.
        """
        snapshot = await self._gateway.fetch()
        if snapshot is None:
            return None

        ts = self._clock()
        try:
            counters = cumulative_counters(snapshot.aggregates)
        except (TypeError, ValueError) as exc:
            logger.warning("Malformed gateway counters, skipping cycle: %s", exc)
            return None

        try:
            delta = await self._baselines.day_delta(local_date_key(ts), counters)
        except SQLAlchemyError:
            logger.error("Baseline lookup failed, using zero day delta", exc_info=True)
            delta = DayDelta()

        try:
            reading = normalize(snapshot, delta=delta, ts=ts)
        except (TypeError, ValueError) as exc:
            logger.warning("Malformed gateway snapshot, skipping cycle: %s", exc)
            return None

        self._state.reading.set(reading)

        try:
            await self._store.insert_sample(sample_from_reading(reading))
        except SQLAlchemyError:
            logger.error("Failed to persist sample", exc_info=True)

        temps = self._state.temps.peek()
        new_alerts = self._alert_log.add_new(self._alert_engine.evaluate(reading, temps))
        for alert in new_alerts:
            self._broadcaster.broadcast(StreamEvent(type="alert", data=alert))
        self._broadcaster.broadcast(StreamEvent(type="powerwall", data=reading))

        logger.info(
            "Poll: solar=%dW battery=%dW (%.1f%%) grid=%dW load=%dW",
            reading.solar.power,
            reading.battery.power,
            reading.battery.soe,
            reading.grid.power,
            reading.load.power,
        )
        return reading

    async def refresh(self) -> Reading | None:
        """Return a reading no older than the direct-cache window.

        Polls the gateway when the cached reading is stale. If that poll
        fails, the stale reading (if any) is returned.
        """
        cached = self._state.reading.get(self._direct_cache_ttl_s)
        if cached is not None:
            return cached
        reading = await self.poll_once()
        if reading is not None:
            return reading
        return self._state.reading.peek()

    def get_latest_reading(self) -> Reading | None:
        """Most recent reading, regardless of age."""
        return self._state.reading.peek()

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self) -> Subscription:
        return self._broadcaster.subscribe()

    def unsubscribe(self, subscription: Subscription) -> None:
        self._broadcaster.unsubscribe(subscription)

    @property
    def subscriber_count(self) -> int:
        return self._broadcaster.subscriber_count

    def broadcast(self, event: StreamEvent) -> int:
        """Push an out-of-band event (e.g. code updates) to live views."""
        return self._broadcaster.broadcast(event)

    # ------------------------------------------------------------------
    # History and baselines
    # ------------------------------------------------------------------

    async def get_history(self, range_key: str = "24h") -> list[Sample]:
        """Samples within a named range (``24h``, ``7d`` or ``30d``).

        Raises:
            ValueError: If *range_key* is unknown.
        """
        if range_key not in HISTORY_RANGES:
            raise ValueError(f"Unknown range '{range_key}'")
        return await self._store.samples_since(self._clock() - HISTORY_RANGES[range_key])

    async def get_energy_history(self, days: int = 1) -> list[Sample]:
        """Samples from the last *days* days."""
        return await self._store.samples_since(self._clock() - timedelta(days=days))

    async def list_baselines(self, limit: int = 90) -> list[DailyBaseline]:
        return await self._store.list_baselines(limit)

    async def count_samples(self) -> int:
        return await self._store.count_samples()

    async def trim_history(self, retention_days: int) -> int:
        """Delete samples older than *retention_days*. Returns rows removed."""
        removed = await self._store.trim_samples(self._clock() - timedelta(days=retention_days))
        if removed:
            logger.info("Trimmed %d samples older than %d days", removed, retention_days)
        return removed

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    async def run_analytics_rollup(self) -> AnalyticsEntry | None:
        """Roll up the last hour of samples, record and broadcast the entry."""
        now = self._clock()
        samples = await self._store.samples_between(now - timedelta(hours=1), now)
        entry = rollup_last_hour(samples, now)
        if entry is None:
            logger.info("No samples in the last hour, skipping analytics roll-up")
            return None
        self._analytics_log.append(entry)
        self._broadcaster.broadcast(StreamEvent(type="analytics", data=entry))
        logger.info("Hourly analytics saved: %s", entry.hour.isoformat())
        return entry

    def get_analytics(self, range_key: str = "24h") -> list[AnalyticsEntry]:
        """Raises ValueError for an unknown range."""
        return self._analytics_log.recent(range_key)

    def analytics_summary(self) -> dict | None:
        return self._analytics_log.summary()

    @property
    def analytics_count(self) -> int:
        return len(self._analytics_log)

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def get_alerts(self, limit: int = 20) -> list[Alert]:
        return self._alert_log.recent(limit)

    def clear_alert(self, alert_id: str) -> bool:
        return self._alert_log.clear(alert_id)

    @property
    def alert_count(self) -> int:
        return len(self._alert_log)

    def active_alert_count(self) -> int:
        return self._alert_log.active_count()
