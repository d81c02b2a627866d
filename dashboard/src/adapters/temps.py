"""
Ambient Weather adapter for zone temperatures.

Reads the first device's ``lastData`` from the Ambient Weather REST API
and maps its sensor channels onto dashboard zones. Cached for ten
minutes; the cached value is also what the alert engine evaluates
temperature thresholds against.

CHANGELOG:
- 2026-10-06: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dashboard.src.metrics import round_half_up
from dashboard.src.models import TemperatureReading, ZoneTemperature
from dashboard.src.state import TimedValue

logger = logging.getLogger(__name__)

DEVICES_URL = "https://rt.ambientweather.net/v1/devices"
TEMPS_CACHE_TTL_S = 600.0
REQUEST_TIMEOUT_S = 10.0


def _temp(data: dict[str, Any], key: str) -> float | None:
    value = data.get(key)
    return round_half_up(value) if value is not None else None


def shape_temps(devices: list[dict[str, Any]]) -> TemperatureReading:
    """Map the first device's latest data onto zones.

    Raises:
        ValueError: If no devices are returned.
        KeyError, TypeError: If the payload is malformed.
    """
    if not devices:
        raise ValueError("No Ambient Weather devices found")
    data = devices[0]["lastData"]
    return TemperatureReading(
        inside=ZoneTemperature(temp=_temp(data, "tempinf"), humidity=data.get("humidityin")),
        basement=ZoneTemperature(temp=_temp(data, "temp2f"), humidity=data.get("humidity2")),
        outside=ZoneTemperature(temp=_temp(data, "tempf"), humidity=data.get("humidity")),
        pool=ZoneTemperature(temp=_temp(data, "temp1f")),
        spa=ZoneTemperature(temp=_temp(data, "temp3f")),
    )


class TempsAdapter:
    """Cached Ambient Weather client.

    Args:
        app_key: Ambient Weather application key.
        api_key: Ambient Weather API key.
        cache: Shared cache slot, also read by the alert engine.
        transport: Optional httpx transport for tests.
    """

    def __init__(
        self,
        *,
        app_key: str,
        api_key: str,
        cache: TimedValue[TemperatureReading],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._app_key = app_key
        self._api_key = api_key
        self._cache = cache
        self._transport = transport

    async def get(self) -> TemperatureReading | None:
        """Return zone temperatures, or ``None`` if they are unavailable."""
        cached = self._cache.get(TEMPS_CACHE_TTL_S)
        if cached is not None:
            return cached
        if not (self._app_key and self._api_key):
            logger.warning("Ambient Weather keys not set, temperatures unavailable")
            return None

        try:
            async with httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT_S, transport=self._transport
            ) as client:
                response = await client.get(
                    DEVICES_URL,
                    params={"applicationKey": self._app_key, "apiKey": self._api_key},
                )
            response.raise_for_status()
            reading = shape_temps(response.json())
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
            logger.error("Temps API error: %s: %s", type(exc).__name__, exc)
            return None

        self._cache.set(reading)
        return reading
