# src/media_drop/events/hub.py

from __future__ import annotations

"""
In-process publish/subscribe hub.

The scheduling core and the Matrix connector only see the EventSink port (publish()).
The HTTP layer subscribes one queue per WebSocket client and forwards whatever arrives.
"""

import asyncio
import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Event:
    name: str
    data: Any

    def to_dict(self) -> dict[str, Any]:
        return {"event": self.name, "data": self.data}


class EventHub:
    """
    Fan-out of events to subscribers.

    - publish() never blocks and never raises; a subscriber whose queue is full loses that event.
    - "sticky" events (default: ready) are remembered and replayed to new subscribers,
      so a client connecting late still learns the current channel state.
    - All calls must happen on the event loop thread.
    """

    def __init__(self, *, queue_size: int = 100, sticky: Iterable[str] = ("ready",)) -> None:
        self._sticky_names = frozenset(sticky)
        self._queue_size = max(1, int(queue_size), len(self._sticky_names))
        self._sticky: dict[str, Event] = {}
        self._subscribers: set[asyncio.Queue[Event]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: str, data: Any) -> None:
        ev = Event(name=event, data=data)
        if event in self._sticky_names:
            self._sticky[event] = ev

        logger.debug("Event %s -> %d subscriber(s)", event, len(self._subscribers))
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(ev)
            except asyncio.QueueFull:
                logger.warning("Event subscriber queue full; dropping %s", event)

    @contextmanager
    def subscribe(self) -> Iterator[asyncio.Queue[Event]]:
        queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=self._queue_size)
        for ev in self._sticky.values():
            queue.put_nowait(ev)
        self._subscribers.add(queue)
        try:
            yield queue
        finally:
            self._subscribers.discard(queue)
