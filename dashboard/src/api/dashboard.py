"""
Third-party dashboard widgets: weather, zone temperatures, crypto prices.

Each adapter caches its result; a failed upstream call with an empty
cache returns 500 with an ``error`` message.

CHANGELOG:
- 2026-10-06: Initial creation
"""

from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from dashboard.src.api.deps import Crypto, Temps, Weather
from dashboard.src.models import TemperatureReading

router = APIRouter(prefix="/api", tags=["dashboard"])


def _unavailable(what: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": f"{what} data unavailable"})


@router.get("/weather", response_model=None)
async def weather(adapter: Weather) -> dict[str, Any] | JSONResponse:
    document = await adapter.get()
    return document if document is not None else _unavailable("Weather")


@router.get("/temps", response_model=None)
async def temps(adapter: Temps) -> TemperatureReading | JSONResponse:
    reading = await adapter.get()
    return reading if reading is not None else _unavailable("Temperature")


@router.get("/crypto", response_model=None)
async def crypto(adapter: Crypto) -> dict[str, Any] | JSONResponse:
    prices = await adapter.get()
    return prices if prices is not None else _unavailable("Crypto")
