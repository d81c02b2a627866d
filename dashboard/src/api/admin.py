"""
Admin endpoints: countdown timers and the settings document.

CHANGELOG:
- 2026-10-06: Initial creation

TODO:
- None
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, HTTPException
from pydantic import ValidationError

from dashboard.src.api.deps import Settings, Timers
from dashboard.src.models import CamelModel, DashboardPreferences, Timer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])


class TimerCreate(CamelModel):
    """Request body for a new timer. Missing fields take defaults."""

    name: str | None = None
    target_time: str | None = None
    color: str | None = None


# ---------------------------------------------------------------------------
# Timers
# ---------------------------------------------------------------------------


@router.get("/timers")
async def list_timers(timers: Timers) -> list[Timer]:
    return timers.all()


@router.post("/timers")
async def create_timer(timers: Timers, body: TimerCreate) -> Timer:
    return timers.add(name=body.name, target_time=body.target_time, color=body.color)


@router.delete("/timers/{timer_id}")
async def delete_timer(timer_id: str, timers: Timers) -> dict[str, bool]:
    timers.remove(timer_id)
    return {"success": True}


# ---------------------------------------------------------------------------
# Settings document
# ---------------------------------------------------------------------------


@router.get("/settings")
async def get_settings(settings: Settings) -> DashboardPreferences:
    return settings.current


@router.put("/settings")
async def update_settings(
    settings: Settings,
    patch: Annotated[dict[str, Any], Body()],
) -> DashboardPreferences:
    """Shallow-merge the body into the settings document.

    Raises:
        HTTPException: 422 if the merged document is invalid.
    """
    try:
        return settings.update(patch)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid settings: {exc}") from exc
