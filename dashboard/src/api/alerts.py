"""
Alert endpoints: list, clear, and threshold settings.

CHANGELOG:
- 2026-10-16: Reject unknown threshold keys with 422
- 2026-10-06: Initial creation
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, HTTPException, Query

from dashboard.src.api.deps import Pipeline, Settings
from dashboard.src.models import Alert, AlertThresholds

router = APIRouter(prefix="/api/alerts", tags=["alerts"])


@router.get("")
async def list_alerts(
    pipeline: Pipeline,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> list[Alert]:
    """Most recent alerts, newest first."""
    return pipeline.get_alerts(limit)


@router.get("/settings")
async def get_alert_settings(settings: Settings) -> AlertThresholds:
    return settings.thresholds


@router.put("/settings")
async def update_alert_settings(
    settings: Settings,
    patch: Annotated[dict[str, Any], Body()],
) -> AlertThresholds:
    """Merge the given thresholds into the current ones.

    Raises:
        HTTPException: 422 if a threshold is unknown or has the wrong type.
    """
    try:
        return settings.update_alerts(patch)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid alert settings: {exc}") from exc


@router.delete("/{alert_id}")
async def clear_alert(alert_id: str, pipeline: Pipeline) -> dict[str, bool]:
    """Remove an alert so its kind can be raised again."""
    pipeline.clear_alert(alert_id)
    return {"success": True}
