"""
Background loops for the dashboard service.

Runs three concurrent asyncio loops:
1. **Poll loop**: every ``poll_interval_s`` runs one pipeline poll cycle,
   but only while at least one live subscriber is connected. With nobody
   watching, the gateway is only queried through the on-demand endpoint.
2. **Analytics loop**: every ``analytics_interval_s`` (hourly) rolls up the
   last hour of samples and trims samples past the retention window. Runs
   regardless of subscribers. The first roll-up happens one interval after
   start.
3. **Code watch loop**: every ``code_watch_interval_s`` rehashes the
   front-end entry page and pushes a ``code-update`` event when it changes.

Each loop awaits its iteration before sleeping, so a slow poll delays the
next one instead of overlapping it. An exception in one iteration is
logged and never ends the loop. All loops stop when the shared
``shutdown_event`` is set.

CHANGELOG:
- 2026-10-09: Retention trim after each analytics roll-up
- 2026-10-08: Add code watch loop
- 2026-10-05: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import TYPE_CHECKING

from dashboard.src.broadcast import StreamEvent

if TYPE_CHECKING:
    from dashboard.src.codewatch import CodeVersion
    from dashboard.src.models import Reading
    from dashboard.src.pipeline import EnergyPipeline

logger = logging.getLogger(__name__)


async def _sleep_or_shutdown(shutdown_event: asyncio.Event, timeout: float) -> None:
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(shutdown_event.wait(), timeout=timeout)


# ---------------------------------------------------------------------------
# Single-iteration functions (easily testable)
# ---------------------------------------------------------------------------


async def _poll_tick(*, pipeline: EnergyPipeline) -> Reading | None:
    """Run one poll cycle if anyone is watching.

    Returns:
        The new reading, or ``None`` when skipped or failed.
    """
    if pipeline.subscriber_count == 0:
        logger.debug("No live clients, skipping poll")
        return None
    try:
        return await pipeline.poll_once()
    except Exception:
        logger.error("Poll cycle error", exc_info=True)
        return None


async def _analytics_tick(*, pipeline: EnergyPipeline, retention_days: int) -> None:
    """Run the hourly roll-up, then the retention trim."""
    try:
        await pipeline.run_analytics_rollup()
    except Exception:
        logger.error("Analytics roll-up error", exc_info=True)
    try:
        await pipeline.trim_history(retention_days)
    except Exception:
        logger.error("Sample retention trim error", exc_info=True)


def _code_watch_tick(*, code_version: CodeVersion, pipeline: EnergyPipeline) -> bool:
    """Recheck the front-end hash and notify displays on change.

    Returns:
        True if a change was detected.
    """
    try:
        changed = code_version.check()
    except Exception:
        logger.error("Code watch error", exc_info=True)
        return False
    if changed:
        pipeline.broadcast(StreamEvent(type="code-update", data={"hash": code_version.hash}))
    return changed


# ---------------------------------------------------------------------------
# Loop runners
# ---------------------------------------------------------------------------


async def _poll_loop(
    *,
    pipeline: EnergyPipeline,
    poll_interval_s: float,
    shutdown_event: asyncio.Event,
) -> None:
    logger.info("Poll loop started (interval=%ss)", poll_interval_s)
    while not shutdown_event.is_set():
        await _poll_tick(pipeline=pipeline)
        await _sleep_or_shutdown(shutdown_event, poll_interval_s)
    logger.info("Poll loop stopped")


async def _analytics_loop(
    *,
    pipeline: EnergyPipeline,
    analytics_interval_s: float,
    retention_days: int,
    shutdown_event: asyncio.Event,
) -> None:
    logger.info("Analytics loop started (interval=%ss)", analytics_interval_s)
    while not shutdown_event.is_set():
        await _sleep_or_shutdown(shutdown_event, analytics_interval_s)
        if shutdown_event.is_set():
            break
        await _analytics_tick(pipeline=pipeline, retention_days=retention_days)
    logger.info("Analytics loop stopped")


async def _code_watch_loop(
    *,
    code_version: CodeVersion,
    pipeline: EnergyPipeline,
    code_watch_interval_s: float,
    shutdown_event: asyncio.Event,
) -> None:
    logger.info("Code watch loop started (interval=%ss)", code_watch_interval_s)
    while not shutdown_event.is_set():
        _code_watch_tick(code_version=code_version, pipeline=pipeline)
        await _sleep_or_shutdown(shutdown_event, code_watch_interval_s)
    logger.info("Code watch loop stopped")


# ---------------------------------------------------------------------------
# Concurrent runner
# ---------------------------------------------------------------------------


async def run_loops(
    *,
    pipeline: EnergyPipeline,
    code_version: CodeVersion,
    poll_interval_s: float,
    analytics_interval_s: float,
    code_watch_interval_s: float,
    retention_days: int,
    shutdown_event: asyncio.Event,
) -> None:
    """Run the poll, analytics and code watch loops until shutdown.

    Args:
        pipeline: Energy pipeline shared with the HTTP handlers.
        code_version: Front-end version tracker.
        poll_interval_s: Seconds between poll cycles.
        analytics_interval_s: Seconds between analytics roll-ups.
        code_watch_interval_s: Seconds between front-end hash checks.
        retention_days: Sample retention window in days.
        shutdown_event: Event to signal graceful shutdown.
    """
    logger.info("Starting background loops")
    await asyncio.gather(
        _poll_loop(
            pipeline=pipeline,
            poll_interval_s=poll_interval_s,
            shutdown_event=shutdown_event,
        ),
        _analytics_loop(
            pipeline=pipeline,
            analytics_interval_s=analytics_interval_s,
            retention_days=retention_days,
            shutdown_event=shutdown_event,
        ),
        _code_watch_loop(
            code_version=code_version,
            pipeline=pipeline,
            code_watch_interval_s=code_watch_interval_s,
            shutdown_event=shutdown_event,
        ),
    )
    logger.info("Background loops stopped")
