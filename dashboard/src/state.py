"""
Process-scoped cached state shared by the loops and HTTP handlers.

Holds the latest reading and the third-party adapter caches, each as a
:class:`TimedValue` stamped with a monotonic clock. Values are replaced
wholesale, never mutated in place, so a reader sees either the old or the
new value.

CHANGELOG:
- 2026-10-05: Initial creation

TODO:
- None
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from dashboard.src.models import Reading, TemperatureReading

T = TypeVar("T")


class TimedValue(Generic[T]):
    """A single cached value with the time it was set.

    Args:
        clock: Monotonic clock in seconds (injectable for tests).
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._value: T | None = None
        self._set_at: float | None = None

    def set(self, value: T) -> None:
        self._value = value
        self._set_at = self._clock()

    def peek(self) -> T | None:
        """Return the value regardless of age."""
        return self._value

    def get(self, max_age_s: float) -> T | None:
        """Return the value if it is at most *max_age_s* seconds old."""
        age = self.age()
        if age is None or age > max_age_s:
            return None
        return self._value

    def age(self) -> float | None:
        """Seconds since the value was set, or ``None`` if never set."""
        if self._set_at is None:
            return None
        return self._clock() - self._set_at


@dataclass
class DashboardState:
    """Latest reading plus adapter caches for one running service."""

    reading: TimedValue[Reading] = field(default_factory=TimedValue)
    weather: TimedValue[dict[str, Any]] = field(default_factory=TimedValue)
    temps: TimedValue[TemperatureReading] = field(default_factory=TimedValue)
    crypto: TimedValue[dict[str, Any]] = field(default_factory=TimedValue)
