"""
Threshold alerts raised from readings and zone temperatures.

Two parts:

- :class:`AlertEngine` evaluates one reading (plus the latest cached
  temperatures, if any) against the current thresholds. Pure, no I/O.
- :class:`AlertLog` keeps the bounded list of raised alerts, persisted as
  ``alerts.json``.

An alert's ``id`` names its kind (``battery-low``, ``grid-down``, ...).
While an alert of a given kind is in the log, the same kind is not raised
again. Alerts are never resolved automatically when the condition clears;
an operator removes them with :meth:`AlertLog.clear`, after which the kind
can be raised again.

CHANGELOG:
- 2026-10-06: Add low-temp alert
- 2026-10-05: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from pathlib import Path

from dashboard.src.documents import load_json, save_json
from dashboard.src.models import Alert, AlertThresholds, Reading, TemperatureReading

logger = logging.getLogger(__name__)

ALERTS_FILENAME = "alerts.json"
ALERT_LIST_LIMIT = 100
"""Only the most recent alerts are retained."""

ACTIVE_SEVERITIES = ("critical", "high")


def _fmt(value: float) -> str:
    return f"{value:g}"


class AlertEngine:
    """Evaluate readings against the current alert thresholds.

    Args:
        thresholds: Callable returning the current thresholds, read on
            every evaluation so settings changes apply immediately.
    """

    def __init__(self, thresholds: Callable[[], AlertThresholds]) -> None:
        self._thresholds = thresholds

    def evaluate(
        self,
        reading: Reading,
        temps: TemperatureReading | None = None,
        *,
        now: datetime | None = None,
    ) -> list[Alert]:
        """Return candidate alerts for *reading* and *temps*.

        Temperature checks are skipped when *temps* is ``None`` or the
        inside zone has no temperature.
        """
        t = self._thresholds()
        now = now or datetime.now(tz=UTC)
        candidates: list[Alert] = []

        soe = reading.battery.soe
        if soe <= t.battery_low:
            candidates.append(
                Alert(
                    id="battery-low",
                    type="warning",
                    severity="high",
                    title="🔋 Battery Low",
                    message=f"Battery at {_fmt(soe)}% (threshold: {_fmt(t.battery_low)}%)",
                    timestamp=now,
                )
            )
        if soe >= t.battery_high:
            candidates.append(
                Alert(
                    id="battery-high",
                    type="info",
                    severity="low",
                    title="🔋 Battery Full",
                    message=f"Battery at {_fmt(soe)}% (threshold: {_fmt(t.battery_high)}%)",
                    timestamp=now,
                )
            )

        if t.grid_down and reading.grid.power <= 0:
            candidates.append(
                Alert(
                    id="grid-down",
                    type="error",
                    severity="critical",
                    title="⚡ Grid Down",
                    message="Grid power is off - running on battery/solar only",
                    timestamp=now,
                )
            )

        if reading.load.power >= t.high_load:
            candidates.append(
                Alert(
                    id="high-load",
                    type="warning",
                    severity="medium",
                    title="📊 High Load",
                    message=f"Load at {reading.load.power}W (threshold: {_fmt(t.high_load)}W)",
                    timestamp=now,
                )
            )

        inside = temps.inside.temp if temps is not None else None
        if inside is not None:
            if inside >= t.high_temp:
                candidates.append(
                    Alert(
                        id="high-temp",
                        type="warning",
                        severity="high",
                        title="🌡️ High Temperature",
                        message=f"Inside temp at {_fmt(inside)}°F (threshold: {_fmt(t.high_temp)}°F)",
                        timestamp=now,
                    )
                )
            if inside <= t.low_temp:
                candidates.append(
                    Alert(
                        id="low-temp",
                        type="warning",
                        severity="medium",
                        title="🌡️ Low Temperature",
                        message=f"Inside temp at {_fmt(inside)}°F (threshold: {_fmt(t.low_temp)}°F)",
                        timestamp=now,
                    )
                )

        return candidates


class AlertLog:
    """Bounded, persisted list of raised alerts (oldest first).

    A failed write is logged and the in-memory list stays authoritative
    until the next successful write.

    Args:
        path: Location of the JSON document.
        limit: Maximum number of alerts retained.
    """

    def __init__(self, path: str | Path, limit: int = ALERT_LIST_LIMIT) -> None:
        self._path = Path(path)
        self._limit = limit
        self._alerts: list[Alert] = []
        for item in load_json(self._path, []):
            try:
                self._alerts.append(Alert.model_validate(item))
            except ValueError:
                logger.warning("Skipping malformed stored alert: %r", item)
        self._alerts = self._alerts[-self._limit :]

    def __len__(self) -> int:
        return len(self._alerts)

    def add_new(self, candidates: Iterable[Alert]) -> list[Alert]:
        """Append the candidates whose kind is not already in the log.

        Returns:
            The alerts actually added, in evaluation order.
        """
        present = {alert.id for alert in self._alerts}
        added: list[Alert] = []
        for alert in candidates:
            if alert.id in present:
                continue
            present.add(alert.id)
            added.append(alert)
            logger.warning("Alert raised: %s - %s", alert.id, alert.message)

        if added:
            self._alerts.extend(added)
            self._alerts = self._alerts[-self._limit :]
            self._save()
        return added

    def recent(self, limit: int = 20) -> list[Alert]:
        """Return up to *limit* alerts, newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._alerts[-limit:]))

    def clear(self, alert_id: str) -> bool:
        """Remove alerts with *alert_id*. Returns True if any were removed."""
        kept = [alert for alert in self._alerts if alert.id != alert_id]
        if len(kept) == len(self._alerts):
            return False
        self._alerts = kept
        self._save()
        logger.info("Alert cleared: %s", alert_id)
        return True

    def active_count(self) -> int:
        """Number of logged alerts at high or critical severity."""
        return sum(1 for alert in self._alerts if alert.severity in ACTIVE_SEVERITIES)

    def _save(self) -> None:
        try:
            save_json(
                self._path,
                [alert.model_dump(mode="json", by_alias=True) for alert in self._alerts],
            )
        except OSError:
            logger.error("Failed to persist alerts to %s", self._path, exc_info=True)
