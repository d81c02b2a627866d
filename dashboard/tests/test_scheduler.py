"""
Unit tests for the background loops.

Tests verify:
- Poll tick is skipped when no live client is connected.
- Poll tick errors are logged, never raised.
- Analytics tick runs the roll-up then the retention trim, even if the
  roll-up fails.
- Code watch tick broadcasts code-update only on a hash change.
- run_loops exits promptly once the shutdown event is set.
- The analytics loop waits one interval before its first roll-up.

CHANGELOG:
- 2026-10-09: Cover retention trim in analytics tick
- 2026-10-08: Cover code watch tick
- 2026-10-05: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from dashboard.src.scheduler import (
    _analytics_tick,
    _code_watch_tick,
    _poll_tick,
    run_loops,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_pipeline(subscribers: int = 1) -> MagicMock:
    """Create a mock EnergyPipeline with sensible defaults."""
    pipeline = MagicMock()
    pipeline.subscriber_count = subscribers
    pipeline.poll_once = AsyncMock(return_value=MagicMock(name="reading"))
    pipeline.run_analytics_rollup = AsyncMock(return_value=None)
    pipeline.trim_history = AsyncMock(return_value=0)
    pipeline.broadcast = MagicMock(return_value=subscribers)
    return pipeline


def _make_code_version(changed: bool = False, hash_: str = "abcd1234") -> MagicMock:
    code_version = MagicMock()
    code_version.check = MagicMock(return_value=changed)
    code_version.hash = hash_
    return code_version


# ---------------------------------------------------------------------------
# Poll tick
# ---------------------------------------------------------------------------


class TestPollTick:
    @pytest.mark.asyncio
    async def test_skipped_without_subscribers(self) -> None:
        pipeline = _make_pipeline(subscribers=0)

        assert await _poll_tick(pipeline=pipeline) is None
        pipeline.poll_once.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_runs_with_subscribers(self) -> None:
        pipeline = _make_pipeline(subscribers=2)

        result = await _poll_tick(pipeline=pipeline)

        pipeline.poll_once.assert_awaited_once()
        assert result is pipeline.poll_once.return_value

    @pytest.mark.asyncio
    async def test_error_is_logged_not_raised(self, caplog: pytest.LogCaptureFixture) -> None:
        pipeline = _make_pipeline()
        pipeline.poll_once = AsyncMock(side_effect=RuntimeError("boom"))

        with caplog.at_level(logging.ERROR, logger="dashboard.src.scheduler"):
            assert await _poll_tick(pipeline=pipeline) is None

        assert "Poll cycle error" in caplog.text


# ---------------------------------------------------------------------------
# Analytics tick
# ---------------------------------------------------------------------------


class TestAnalyticsTick:
    @pytest.mark.asyncio
    async def test_rollup_then_trim(self) -> None:
        pipeline = _make_pipeline(subscribers=0)
        order: list[str] = []
        pipeline.run_analytics_rollup.side_effect = lambda: order.append("rollup")
        pipeline.trim_history.side_effect = lambda days: order.append(f"trim:{days}")

        await _analytics_tick(pipeline=pipeline, retention_days=90)

        assert order == ["rollup", "trim:90"]

    @pytest.mark.asyncio
    async def test_trim_runs_after_rollup_failure(self) -> None:
        pipeline = _make_pipeline()
        pipeline.run_analytics_rollup.side_effect = RuntimeError("disk")

        await _analytics_tick(pipeline=pipeline, retention_days=30)

        pipeline.trim_history.assert_awaited_once_with(30)

    @pytest.mark.asyncio
    async def test_trim_failure_is_swallowed(self) -> None:
        pipeline = _make_pipeline()
        pipeline.trim_history.side_effect = RuntimeError("locked")

        await _analytics_tick(pipeline=pipeline, retention_days=30)


# ---------------------------------------------------------------------------
# Code watch tick
# ---------------------------------------------------------------------------


class TestCodeWatchTick:
    def test_unchanged_does_not_broadcast(self) -> None:
        pipeline = _make_pipeline()

        assert _code_watch_tick(code_version=_make_code_version(), pipeline=pipeline) is False
        pipeline.broadcast.assert_not_called()

    def test_change_broadcasts_code_update(self) -> None:
        pipeline = _make_pipeline()
        code_version = _make_code_version(changed=True, hash_="deadbeef")

        assert _code_watch_tick(code_version=code_version, pipeline=pipeline) is True

        event = pipeline.broadcast.call_args.args[0]
        assert event.type == "code-update"
        assert event.data == {"hash": "deadbeef"}

    def test_check_error_is_swallowed(self) -> None:
        pipeline = _make_pipeline()
        code_version = _make_code_version()
        code_version.check.side_effect = OSError("gone")

        assert _code_watch_tick(code_version=code_version, pipeline=pipeline) is False


# ---------------------------------------------------------------------------
# run_loops
# ---------------------------------------------------------------------------


class TestRunLoops:
    @pytest.mark.asyncio
    async def test_shutdown_stops_loops(self) -> None:
        pipeline = _make_pipeline()
        code_version = _make_code_version()
        shutdown_event = asyncio.Event()

        task = asyncio.create_task(
            run_loops(
                pipeline=pipeline,
                code_version=code_version,
                poll_interval_s=0.01,
                analytics_interval_s=3600,
                code_watch_interval_s=0.01,
                retention_days=90,
                shutdown_event=shutdown_event,
            )
        )
        await asyncio.sleep(0.05)
        shutdown_event.set()
        await asyncio.wait_for(task, timeout=5.0)

        assert pipeline.poll_once.await_count >= 2
        assert code_version.check.call_count >= 2
        # The hourly roll-up never came due.
        pipeline.run_analytics_rollup.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_analytics_runs_after_first_interval(self) -> None:
        pipeline = _make_pipeline(subscribers=0)
        shutdown_event = asyncio.Event()

        task = asyncio.create_task(
            run_loops(
                pipeline=pipeline,
                code_version=_make_code_version(),
                poll_interval_s=3600,
                analytics_interval_s=0.01,
                code_watch_interval_s=3600,
                retention_days=7,
                shutdown_event=shutdown_event,
            )
        )
        await asyncio.sleep(0.05)
        shutdown_event.set()
        await asyncio.wait_for(task, timeout=5.0)

        pipeline.run_analytics_rollup.assert_awaited()
        pipeline.trim_history.assert_awaited_with(7)
        pipeline.poll_once.assert_not_awaited()
