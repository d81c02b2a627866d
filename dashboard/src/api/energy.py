"""
Energy endpoints: latest reading, live stream, and persisted history.

- ``GET /api/powerwall``: latest reading, polling the gateway if the
  cached one is older than the direct-cache window. Falls back to the
  stale reading if the poll fails; 503 only when nothing was ever read.
- ``GET /api/powerwall/stream``: Server-Sent Events. Sends the cached
  reading on connect, then every broadcast event. A comment line is sent
  while idle so proxies keep the connection open.
- ``GET /api/energy/history?days=N``: samples from the last N days.
- ``GET /api/energy/daily``: the last 90 daily baselines, newest first.
- ``GET /api/admin/history?range=24h|7d|30d``: samples in a named range.

CHANGELOG:
- 2026-10-08: Stream keep-alive comments
- 2026-10-06: Initial creation

TODO:
- None
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse

from dashboard.src.api.deps import Pipeline
from dashboard.src.broadcast import StreamEvent, Subscription
from dashboard.src.models import DailyBaseline, Reading, Sample
from dashboard.src.pipeline import EnergyPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["energy"])

KEEPALIVE_S = 15.0
BASELINE_LIST_LIMIT = 90


# ---------------------------------------------------------------------------
# Live stream
# ---------------------------------------------------------------------------


async def event_stream(
    request: Request,
    pipeline: EnergyPipeline,
    subscription: Subscription,
    keepalive_s: float = KEEPALIVE_S,
) -> AsyncIterator[str]:
    """Yield SSE frames for one subscriber until it disconnects.

    The subscription is always released when the generator ends.
    """
    try:
        latest = pipeline.get_latest_reading()
        if latest is not None:
            yield f"data: {StreamEvent(type='powerwall', data=latest).to_json()}\n\n"

        while not subscription.closed or subscription.pending():
            if await request.is_disconnected():
                break
            try:
                payload = await asyncio.wait_for(subscription.get(), timeout=keepalive_s)
            except TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"data: {payload}\n\n"
    finally:
        pipeline.unsubscribe(subscription)


@router.get("/powerwall/stream")
async def powerwall_stream(request: Request, pipeline: Pipeline) -> StreamingResponse:
    subscription = pipeline.subscribe()
    return StreamingResponse(
        event_stream(request, pipeline, subscription),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


# ---------------------------------------------------------------------------
# Latest reading
# ---------------------------------------------------------------------------


@router.get("/powerwall", response_model=None)
async def powerwall(pipeline: Pipeline) -> Reading | JSONResponse:
    """Return the latest reading, refreshing it if stale."""
    reading = await pipeline.refresh()
    if reading is None:
        return JSONResponse(status_code=503, content={"error": "Powerwall data unavailable"})
    return reading


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@router.get("/energy/history")
async def energy_history(
    pipeline: Pipeline,
    days: Annotated[int, Query(ge=1, le=365)] = 1,
) -> list[Sample]:
    return await pipeline.get_energy_history(days)


@router.get("/energy/daily")
async def energy_daily(pipeline: Pipeline) -> list[DailyBaseline]:
    return await pipeline.list_baselines(BASELINE_LIST_LIMIT)


@router.get("/admin/history")
async def admin_history(
    pipeline: Pipeline,
    range_key: Annotated[str, Query(alias="range")] = "24h",
) -> list[Sample]:
    """Samples within ``24h``, ``7d`` or ``30d``.

    Raises:
        HTTPException: 422 for any other range.
    """
    try:
        return await pipeline.get_history(range_key)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
