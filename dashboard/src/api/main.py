"""
FastAPI application for the wall-display energy dashboard.

The lifespan loads :class:`DashboardSettings` from the environment, opens
the energy store, builds the pipeline and adapters, and starts the
background loops. Components live on ``app.state`` and reach handlers
through :mod:`dashboard.src.api.deps`. On shutdown the loops are
signalled, awaited, and the store is closed.

The static front-end in ``PUBLIC_DIR`` is served at ``/`` when present.

CHANGELOG:
- 2026-10-08: Register system router, start code watch loop
- 2026-10-06: Initial creation

TODO:
- None
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from dashboard.src.adapters.crypto import CryptoAdapter
from dashboard.src.adapters.temps import TempsAdapter
from dashboard.src.adapters.weather import WeatherAdapter
from dashboard.src.alerts import ALERTS_FILENAME, AlertEngine, AlertLog
from dashboard.src.analytics import ANALYTICS_FILENAME, AnalyticsLog
from dashboard.src.api.admin import router as admin_router
from dashboard.src.api.alerts import router as alerts_router
from dashboard.src.api.analytics import router as analytics_router
from dashboard.src.api.dashboard import router as dashboard_router
from dashboard.src.api.energy import router as energy_router
from dashboard.src.api.system import router as system_router
from dashboard.src.broadcast import Broadcaster
from dashboard.src.codewatch import CodeVersion
from dashboard.src.config import DashboardSettings
from dashboard.src.gateway import GatewayClient
from dashboard.src.pipeline import EnergyPipeline
from dashboard.src.scheduler import run_loops
from dashboard.src.settings_store import SETTINGS_FILENAME, SettingsStore
from dashboard.src.state import DashboardState
from dashboard.src.store import EnergyStore
from dashboard.src.timers import TIMERS_FILENAME, TimerList

logger = logging.getLogger(__name__)

STATIC_MOUNT_NAME = "public"


def _mount_public(app: FastAPI, public_dir: Path) -> None:
    if not public_dir.is_dir():
        logger.warning("Public directory %s not found, front-end not served", public_dir)
        return
    if any(getattr(route, "name", None) == STATIC_MOUNT_NAME for route in app.routes):
        return
    app.mount("/", StaticFiles(directory=public_dir, html=True), name=STATIC_MOUNT_NAME)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build components, run loops, clean up.

    Raises:
        pydantic.ValidationError: If required environment variables are
            missing or invalid.
    """
    settings = DashboardSettings()
    data_path = settings.data_path
    data_path.mkdir(parents=True, exist_ok=True)

    store = EnergyStore(settings.database_url)
    await store.open()

    state = DashboardState()
    broadcaster = Broadcaster()
    settings_store = SettingsStore(data_path / SETTINGS_FILENAME)
    pipeline = EnergyPipeline(
        gateway=GatewayClient(
            host=settings.gateway_host,
            username=settings.gateway_username,
            password=settings.gateway_password,
            timeout_s=settings.gateway_timeout_s,
        ),
        store=store,
        alert_engine=AlertEngine(lambda: settings_store.thresholds),
        alert_log=AlertLog(data_path / ALERTS_FILENAME),
        analytics_log=AnalyticsLog(data_path / ANALYTICS_FILENAME),
        broadcaster=broadcaster,
        state=state,
        direct_cache_ttl_s=settings.direct_cache_ttl_s,
    )
    public_dir = Path(settings.public_dir)
    code_version = CodeVersion(public_dir / "index.html")

    app.state.settings = settings
    app.state.state = state
    app.state.pipeline = pipeline
    app.state.settings_store = settings_store
    app.state.timers = TimerList(data_path / TIMERS_FILENAME)
    app.state.code_version = code_version
    app.state.weather = WeatherAdapter(
        api_key=settings.openweather_api_key,
        lat=settings.weather_lat,
        lon=settings.weather_lon,
        location=settings.weather_location,
        cache=state.weather,
    )
    app.state.temps = TempsAdapter(
        app_key=settings.ambient_app_key,
        api_key=settings.ambient_api_key,
        cache=state.temps,
    )
    app.state.crypto = CryptoAdapter(cache=state.crypto)
    _mount_public(app, public_dir)

    shutdown_event = asyncio.Event()
    loops = asyncio.create_task(
        run_loops(
            pipeline=pipeline,
            code_version=code_version,
            poll_interval_s=settings.poll_interval_s,
            analytics_interval_s=settings.analytics_interval_s,
            code_watch_interval_s=settings.code_watch_interval_s,
            retention_days=settings.sample_retention_days,
            shutdown_event=shutdown_event,
        )
    )

    logger.info("Wall dashboard ready")
    try:
        yield
    finally:
        logger.info("Wall dashboard shutting down")
        shutdown_event.set()
        await loops
        await store.close()


def create_app() -> FastAPI:
    """Build the FastAPI application with all routers registered."""
    application = FastAPI(
        title="Wall Dashboard API",
        description="Home energy monitoring backend for wall-mounted displays.",
        version="0.5.0",
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type"],
    )
    application.include_router(energy_router)
    application.include_router(alerts_router)
    application.include_router(analytics_router)
    application.include_router(admin_router)
    application.include_router(dashboard_router)
    application.include_router(system_router)
    return application


app = create_app()
