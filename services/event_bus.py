from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable

from interfaces.events.events import Event

logger = logging.getLogger(__name__)

Subscriber = Callable[[Event], None]


class EventBus:
    """
    Fire-and-forget fan-out of core events to the presentation layer.

    Subscribers are plain callables or async iterators obtained from
    `stream()`. Emitting never blocks and never raises; a failing
    subscriber is logged and skipped.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def emit(self, event: Event) -> None:
        for callback in list(self._subscribers):
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed on %s", event.channel)

    async def stream(self, channel: str | None = None) -> AsyncIterator[Event]:
        """
        Yield events as they are emitted, optionally filtered to one channel.
        Unsubscribes when the consumer stops iterating.
        """
        queue: asyncio.Queue[Event] = asyncio.Queue()

        def _enqueue(event: Event) -> None:
            if channel is None or event.channel == channel:
                queue.put_nowait(event)

        unsubscribe = self.subscribe(_enqueue)
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()
