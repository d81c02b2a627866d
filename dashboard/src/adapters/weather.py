"""
OpenWeather adapter: current conditions plus the 5-day / 3-hour forecast.

Both endpoints are queried in parallel (imperial units). The shaped result
is cached for five minutes in the shared :class:`DashboardState`. Daily
highs and lows are folded from the 3-hourly forecast by UTC date.

Moonrise and moonset are reported as ``None``; no astronomy source is
wired in.

CHANGELOG:
- 2026-10-06: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from dashboard.src.metrics import round_half_up
from dashboard.src.state import TimedValue

logger = logging.getLogger(__name__)

CURRENT_URL = "https://api.openweathermap.org/data/2.5/weather"
FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"
WEATHER_CACHE_TTL_S = 300.0
FORECAST_ENTRIES = 40
DAILY_FORECAST_DAYS = 5
REQUEST_TIMEOUT_S = 10.0


def _iso(epoch_s: float) -> str:
    return datetime.fromtimestamp(epoch_s, tz=UTC).isoformat()


def _daily_forecast(entries: list[dict[str, Any]]) -> list[dict[str, Any]]:
    days: dict[str, dict[str, Any]] = {}
    for entry in entries:
        date_str = datetime.fromtimestamp(entry["dt"], tz=UTC).date().isoformat()
        temp = round_half_up(entry["main"]["temp"])
        day = days.get(date_str)
        if day is None:
            days[date_str] = {
                "date": date_str,
                "high": temp,
                "low": temp,
                "description": entry["weather"][0]["main"],
                "icon": entry["weather"][0]["icon"],
            }
        else:
            day["high"] = max(day["high"], temp)
            day["low"] = min(day["low"], temp)
    return list(days.values())[:DAILY_FORECAST_DAYS]


def shape_weather(
    current: dict[str, Any],
    forecast: dict[str, Any],
    location: str,
) -> dict[str, Any]:
    """Build the dashboard weather document from the two raw payloads.

    Raises:
        KeyError, IndexError, TypeError: If a payload is missing fields.
    """
    entries = forecast["list"]
    return {
        "current": {
            "temp": round_half_up(current["main"]["temp"]),
            "feelsLike": round_half_up(current["main"]["feels_like"]),
            "description": current["weather"][0]["main"],
            "icon": current["weather"][0]["icon"],
            "humidity": current["main"]["humidity"],
            "windSpeed": round_half_up(current["wind"]["speed"]),
            "pressure": current["main"]["pressure"],
            "cloudiness": current["clouds"]["all"],
        },
        "sunrise": _iso(current["sys"]["sunrise"]),
        "sunset": _iso(current["sys"]["sunset"]),
        "moonrise": None,
        "moonset": None,
        "forecast": [
            {
                "time": _iso(f["dt"]),
                "temp": round_half_up(f["main"]["temp"]),
                "description": f["weather"][0]["main"],
                "icon": f["weather"][0]["icon"],
                "precipitation": (f.get("rain") or {}).get("3h", 0),
                "precipitationProb": f.get("pop", 0) * 100,
            }
            for f in entries[:FORECAST_ENTRIES]
        ],
        "dailyForecast": _daily_forecast(entries),
        "location": location,
    }


class WeatherAdapter:
    """Cached OpenWeather client.

    Args:
        api_key: OpenWeather API key. Empty disables the adapter.
        lat: Latitude.
        lon: Longitude.
        location: Display name included in the result.
        cache: Shared cache slot for the shaped document.
        transport: Optional httpx transport for tests.
    """

    def __init__(
        self,
        *,
        api_key: str,
        lat: float,
        lon: float,
        location: str,
        cache: TimedValue[dict[str, Any]],
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._lat = lat
        self._lon = lon
        self._location = location
        self._cache = cache
        self._transport = transport

    async def get(self) -> dict[str, Any] | None:
        """Return the weather document, or ``None`` if it is unavailable."""
        cached = self._cache.get(WEATHER_CACHE_TTL_S)
        if cached is not None:
            return cached
        if not self._api_key:
            logger.warning("OPENWEATHER_API_KEY not set, weather unavailable")
            return None

        params = {
            "lat": self._lat,
            "lon": self._lon,
            "units": "imperial",
            "appid": self._api_key,
        }
        try:
            async with httpx.AsyncClient(
                timeout=REQUEST_TIMEOUT_S, transport=self._transport
            ) as client:
                current_res, forecast_res = await asyncio.gather(
                    client.get(CURRENT_URL, params=params),
                    client.get(FORECAST_URL, params=params),
                )
            current_res.raise_for_status()
            forecast_res.raise_for_status()
            document = shape_weather(current_res.json(), forecast_res.json(), self._location)
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as exc:
            logger.error("Weather API error: %s: %s", type(exc).__name__, exc)
            return None

        self._cache.set(document)
        return document
