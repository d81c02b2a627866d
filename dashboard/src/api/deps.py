"""
FastAPI dependency providers.

Every long-lived component is built once in the application lifespan and
stored on ``app.state``; these providers hand them to route handlers so
tests can swap any of them through ``app.dependency_overrides``.

CHANGELOG:
- 2026-10-06: Initial creation
"""

from typing import Annotated

from fastapi import Depends, Request

from dashboard.src.adapters.crypto import CryptoAdapter
from dashboard.src.adapters.temps import TempsAdapter
from dashboard.src.adapters.weather import WeatherAdapter
from dashboard.src.codewatch import CodeVersion
from dashboard.src.pipeline import EnergyPipeline
from dashboard.src.settings_store import SettingsStore
from dashboard.src.timers import TimerList


def get_pipeline(request: Request) -> EnergyPipeline:
    return request.app.state.pipeline


def get_settings_store(request: Request) -> SettingsStore:
    return request.app.state.settings_store


def get_timers(request: Request) -> TimerList:
    return request.app.state.timers


def get_code_version(request: Request) -> CodeVersion:
    return request.app.state.code_version


def get_weather(request: Request) -> WeatherAdapter:
    return request.app.state.weather


def get_temps(request: Request) -> TempsAdapter:
    return request.app.state.temps


def get_crypto(request: Request) -> CryptoAdapter:
    return request.app.state.crypto


# Type aliases for route handler signatures, e.g.
#   async def powerwall(pipeline: Pipeline): ...
Pipeline = Annotated[EnergyPipeline, Depends(get_pipeline)]
Settings = Annotated[SettingsStore, Depends(get_settings_store)]
Timers = Annotated[TimerList, Depends(get_timers)]
Version = Annotated[CodeVersion, Depends(get_code_version)]
Weather = Annotated[WeatherAdapter, Depends(get_weather)]
Temps = Annotated[TempsAdapter, Depends(get_temps)]
Crypto = Annotated[CryptoAdapter, Depends(get_crypto)]
