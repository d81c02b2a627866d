"""
Service endpoints: health, front-end code version, forced refresh.

``GET /api/health`` needs no authentication and is used by the container
health check.

CHANGELOG:
- 2026-10-08: Add code-version and force-refresh
- 2026-10-06: Initial creation

TODO:
- None
"""

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from dashboard.src.api.deps import Pipeline, Version
from dashboard.src.broadcast import StreamEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/health")
async def health(pipeline: Pipeline) -> dict[str, Any]:
    """Return service status and cache/list counters."""
    try:
        samples: int | None = await pipeline.count_samples()
    except SQLAlchemyError:
        logger.warning("Sample count unavailable for health check", exc_info=True)
        samples = None

    return {
        "status": "ok",
        "time": datetime.now(tz=UTC).isoformat(),
        "sseClients": pipeline.subscriber_count,
        "powerwallCache": "cached" if pipeline.get_latest_reading() is not None else "empty",
        "samples": samples,
        "analytics": pipeline.analytics_count,
        "alerts": pipeline.alert_count,
        "activeAlerts": pipeline.active_alert_count(),
    }


@router.get("/code-version")
async def code_version(version: Version) -> dict[str, Any]:
    return version.snapshot()


@router.post("/code-version/ack")
async def acknowledge_code_version(version: Version) -> dict[str, bool]:
    version.acknowledge()
    return {"success": True}


@router.post("/force-refresh")
async def force_refresh(version: Version, pipeline: Pipeline) -> dict[str, Any]:
    """Tell every connected display to reload."""
    new_hash = version.force_refresh()
    notified = pipeline.broadcast(
        StreamEvent(type="code-update", data={"hash": new_hash, "command": "refresh"})
    )
    return {
        "success": True,
        "message": "Refresh command sent to all clients",
        "clientsNotified": notified,
    }
