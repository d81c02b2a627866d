"""
Best-effort fan-out of stream events to live-view subscribers.

Each subscriber owns a bounded queue that its SSE response drains. A
broadcast serialises the event once and offers it to every queue without
blocking. A subscriber whose queue is full (a stalled client) or that has
already been closed is dropped from the active set. No failure ever
reaches the caller.

Subscribe and unsubscribe may happen while a broadcast is iterating:
broadcast walks a snapshot of the subscriber set.

CHANGELOG:
- 2026-10-05: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Literal

from pydantic import BaseModel

logger = logging.getLogger(__name__)

EventType = Literal["powerwall", "alert", "analytics", "code-update"]

DEFAULT_QUEUE_SIZE = 100


class StreamEvent(BaseModel):
    """A typed event pushed to live views as ``{"type": ..., "data": ...}``."""

    type: EventType
    data: Any = None

    def to_json(self) -> str:
        data = self.data
        if isinstance(data, BaseModel):
            data = data.model_dump(mode="json", by_alias=True)
        return json.dumps({"type": self.type, "data": data})


class SubscriptionClosed(Exception):
    """Delivery was attempted on a closed subscription."""


class Subscription:
    """One live-view connection's event queue."""

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def deliver(self, payload: str) -> None:
        """Queue *payload* without blocking.

        Raises:
            SubscriptionClosed: If the subscription was closed.
            asyncio.QueueFull: If the client has fallen too far behind.
        """
        if self.closed:
            raise SubscriptionClosed
        self._queue.put_nowait(payload)

    async def get(self) -> str:
        """Wait for the next serialised event."""
        return await self._queue.get()

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self.closed = True


class Broadcaster:
    """Registry of live subscriptions with non-blocking broadcast.

    Args:
        queue_size: Per-subscriber queue bound.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = queue_size
        self._subscribers: set[Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        """Register a new subscription."""
        subscription = Subscription(self._queue_size)
        self._subscribers.add(subscription)
        logger.info("Live client connected, total clients: %d", len(self._subscribers))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Close and remove *subscription*. Safe to call more than once."""
        subscription.close()
        if subscription in self._subscribers:
            self._subscribers.discard(subscription)
            logger.info(
                "Live client disconnected, total clients: %d", len(self._subscribers)
            )

    def broadcast(self, event: StreamEvent) -> int:
        """Offer *event* to every subscriber.

        Returns:
            Number of subscribers the event was delivered to.
        """
        payload = event.to_json()
        delivered = 0
        for subscription in list(self._subscribers):
            try:
                subscription.deliver(payload)
            except (asyncio.QueueFull, SubscriptionClosed):
                logger.info("Dropping unresponsive live client")
                self.unsubscribe(subscription)
                continue
            delivered += 1
        return delivered
