"""
Admin-managed countdown timers, persisted as ``timers.json``.

CHANGELOG:
- 2026-10-16: Skip malformed stored timers; random hex ids
- 2026-10-04: Initial creation
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path

from dashboard.src.documents import load_json, save_json
from dashboard.src.models import Timer

logger = logging.getLogger(__name__)

TIMERS_FILENAME = "timers.json"


class TimerList:
    """Ordered list of timers.

    Args:
        path: Location of the JSON document.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._timers: list[Timer] = []
        stored = load_json(self._path, [])
        if not isinstance(stored, list):
            logger.warning("Ignoring malformed timers document: %s", self._path)
            stored = []
        for item in stored:
            try:
                self._timers.append(Timer.model_validate(item))
            except ValueError:
                logger.warning("Skipping malformed stored timer: %r", item)

    def all(self) -> list[Timer]:
        return list(self._timers)

    def add(
        self,
        name: str | None = None,
        target_time: str | None = None,
        color: str | None = None,
    ) -> Timer:
        """Create and persist a timer under a fresh random id.

        Raises:
            OSError: If the document cannot be written.
        """
        timer = Timer(
            id=uuid.uuid4().hex,
            name=name or "Timer",
            target_time=target_time,
            color=color or "#4caf50",
            created_at=datetime.now(tz=UTC),
        )
        self._save([*self._timers, timer])
        logger.info("Timer added: %s (%s)", timer.name, timer.id)
        return timer

    def remove(self, timer_id: str) -> bool:
        """Delete timers with *timer_id*. Returns True if any were removed."""
        kept = [t for t in self._timers if t.id != timer_id]
        if len(kept) == len(self._timers):
            return False
        self._save(kept)
        return True

    def _save(self, timers: list[Timer]) -> None:
        save_json(self._path, [t.model_dump(mode="json", by_alias=True) for t in timers])
        self._timers = timers
