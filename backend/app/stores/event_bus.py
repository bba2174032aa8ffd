from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Set


logger = logging.getLogger(__name__)


class EventBus:
    """In-memory fan-out of booking notifications to live stream subscribers.

    A channel only exists while someone is subscribed to it; events published
    to a channel with no subscribers are dropped.
    """

    def __init__(self, max_queue_size: int = 100) -> None:
        self._max_queue_size = max_queue_size
        self._queues: Dict[str, Set[asyncio.Queue[dict[str, Any]]]] = {}

    def subscribe(self, channel: str) -> asyncio.Queue[dict[str, Any]]:
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=self._max_queue_size)
        self._queues.setdefault(channel, set()).add(queue)
        return queue

    def unsubscribe(self, channel: str, queue: asyncio.Queue[dict[str, Any]]) -> None:
        subscribers = self._queues.get(channel)
        if subscribers is None:
            return
        subscribers.discard(queue)
        if not subscribers:
            del self._queues[channel]

    async def publish(self, channel: str, event: dict[str, Any]) -> None:
        subscribers = self._queues.get(channel)
        if not subscribers:
            return
        for queue in subscribers:
            if queue.full():
                # Slow listener; drop its oldest event rather than block the publisher.
                queue.get_nowait()
            queue.put_nowait(event)
        logger.info(
            "notification_event",
            extra={
                "channel": channel,
                "subscribers": len(subscribers),
                "event_type": event.get("type"),
                "event_json": json.dumps(event, default=str),
            },
        )

    async def stream(self, channel: str) -> AsyncIterator[dict[str, Any]]:
        queue = self.subscribe(channel)
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(channel, queue)


event_bus = EventBus()
