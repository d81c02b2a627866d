"""
Tests for best-effort broadcast fan-out.

CHANGELOG:
- 2026-10-05: Initial creation
"""

from __future__ import annotations

import json

import pytest

from dashboard.src.broadcast import Broadcaster, StreamEvent


class TestStreamEvent:
    def test_model_data_serialised_with_aliases(self, reading_factory) -> None:
        payload = json.loads(StreamEvent(type="powerwall", data=reading_factory()).to_json())

        assert payload["type"] == "powerwall"
        assert "selfPoweredPercent" in payload["data"]

    def test_plain_data_passes_through(self) -> None:
        payload = json.loads(StreamEvent(type="code-update", data={"hash": "abc"}).to_json())
        assert payload == {"type": "code-update", "data": {"hash": "abc"}}


class TestBroadcaster:
    @pytest.mark.asyncio
    async def test_delivers_to_every_subscriber(self) -> None:
        broadcaster = Broadcaster()
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()

        delivered = broadcaster.broadcast(StreamEvent(type="analytics", data={"n": 1}))

        assert delivered == 2
        assert json.loads(await first.get())["data"] == {"n": 1}
        assert json.loads(await second.get())["data"] == {"n": 1}

    def test_no_subscribers_is_a_no_op(self) -> None:
        assert Broadcaster().broadcast(StreamEvent(type="analytics")) == 0

    def test_full_queue_drops_only_that_subscriber(self) -> None:
        broadcaster = Broadcaster(queue_size=1)
        slow = broadcaster.subscribe()
        fast = broadcaster.subscribe()

        broadcaster.broadcast(StreamEvent(type="analytics", data=1))
        # Drain the fast subscriber only.
        fast._queue.get_nowait()
        delivered = broadcaster.broadcast(StreamEvent(type="analytics", data=2))

        assert delivered == 1
        assert slow.closed is True
        assert broadcaster.subscriber_count == 1

    def test_closed_subscription_is_removed(self) -> None:
        broadcaster = Broadcaster()
        sub = broadcaster.subscribe()
        sub.close()

        assert broadcaster.broadcast(StreamEvent(type="analytics")) == 0
        assert broadcaster.subscriber_count == 0

    def test_unsubscribe_is_idempotent(self) -> None:
        broadcaster = Broadcaster()
        sub = broadcaster.subscribe()

        broadcaster.unsubscribe(sub)
        broadcaster.unsubscribe(sub)

        assert broadcaster.subscriber_count == 0
        assert sub.closed is True

    def test_drop_during_broadcast_is_safe(self) -> None:
        broadcaster = Broadcaster(queue_size=1)
        first = broadcaster.subscribe()
        broadcaster.subscribe()
        first.deliver("filler")

        # Dropping `first` mutates the set mid-iteration.
        delivered = broadcaster.broadcast(StreamEvent(type="analytics"))

        assert delivered == 1
        assert broadcaster.subscriber_count == 1
