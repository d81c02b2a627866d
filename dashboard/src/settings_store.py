"""
User-editable settings document (thresholds and display preferences).

Held in memory as an immutable snapshot and persisted to
``settings.json`` in the data directory. Updates build a new snapshot
and swap it in, so readers such as the alert engine always see either
the old or the new document in full.

CHANGELOG:
- 2026-10-16: Fall back to defaults on an invalid stored document;
  accept snake_case threshold keys
- 2026-10-05: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from dashboard.src.documents import load_json, save_json
from dashboard.src.models import AlertThresholds, DashboardPreferences

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"


def threshold_aliases(patch: dict[str, Any]) -> dict[str, Any]:
    """Rewrite snake_case threshold names in *patch* to their camelCase keys.

    Raises:
        ValueError: If *patch* names a threshold that does not exist.
    """
    fields = AlertThresholds.model_fields
    aliases = {field.alias or name for name, field in fields.items()}
    normalised: dict[str, Any] = {}
    for key, value in patch.items():
        if key in fields:
            key = fields[key].alias or key
        elif key not in aliases:
            raise ValueError(f"Unknown alert threshold: {key}")
        normalised[key] = value
    return normalised


class SettingsStore:
    """Load, merge and persist the settings document.

    Args:
        path: Location of the JSON document.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        try:
            self._current = DashboardPreferences.model_validate(load_json(self._path, {}))
        except ValidationError:
            logger.warning("Invalid settings document %s, using defaults", self._path, exc_info=True)
            self._current = DashboardPreferences()

    @property
    def current(self) -> DashboardPreferences:
        """The current settings snapshot."""
        return self._current

    @property
    def thresholds(self) -> AlertThresholds:
        return self._current.alerts

    def update(self, patch: dict[str, Any]) -> DashboardPreferences:
        """Shallow-merge *patch* into the document and persist it.

        Top-level keys in *patch* replace existing keys. An ``alerts`` key
        replaces the whole threshold block; use :meth:`update_alerts` to
        change individual thresholds.

        Raises:
            pydantic.ValidationError: If the merged document is invalid.
            OSError: If the document cannot be written.
        """
        merged = {**self._current.model_dump(by_alias=True), **patch}
        updated = DashboardPreferences.model_validate(merged)
        self._persist(updated)
        return updated

    def update_alerts(self, patch: dict[str, Any]) -> AlertThresholds:
        """Merge *patch* into the alert thresholds and persist the document.

        Keys may be given in camelCase or snake_case.

        Raises:
            ValueError: If a key is not a known threshold.
            pydantic.ValidationError: If a threshold has the wrong type.
            OSError: If the document cannot be written.
        """
        alerts = {**self._current.alerts.model_dump(by_alias=True), **threshold_aliases(patch)}
        document = self._current.model_dump(by_alias=True)
        document["alerts"] = alerts
        updated = DashboardPreferences.model_validate(document)
        self._persist(updated)
        return updated.alerts

    def _persist(self, updated: DashboardPreferences) -> None:
        save_json(self._path, updated.model_dump(mode="json", by_alias=True))
        self._current = updated
        logger.info("Settings updated")
