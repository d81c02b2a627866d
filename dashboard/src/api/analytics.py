"""
Analytics endpoints: hourly entries and the 24-hour summary.

CHANGELOG:
- 2026-10-07: Add /summary
- 2026-10-06: Initial creation
"""

from typing import Annotated, Any

from fastapi import APIRouter, HTTPException, Query

from dashboard.src.api.deps import Pipeline
from dashboard.src.models import AnalyticsEntry

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("")
async def list_analytics(
    pipeline: Pipeline,
    range_key: Annotated[str, Query(alias="range")] = "24h",
) -> list[AnalyticsEntry]:
    """Hourly entries covering ``24h``, ``7d`` or ``30d``, oldest first.

    Raises:
        HTTPException: 422 for any other range.
    """
    try:
        return pipeline.get_analytics(range_key)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get("/summary")
async def analytics_summary(pipeline: Pipeline) -> dict[str, Any]:
    summary = pipeline.analytics_summary()
    if summary is None:
        return {"error": "No analytics data yet"}
    return summary
