"""In-process change feed.

Every subscriber owns a bounded queue. Publishing never awaits: when a
subscriber's queue is full, events for it are dropped and, once it has
drained what was buffered, it receives a single ``resync`` event telling it
to reconcile through ``ReportStore.list``. Other subscribers and the
producer are unaffected.

Per-id ordering holds because the store publishes while it still holds the
per-report write lock, and each queue is FIFO.
"""

import asyncio
import logging
from collections.abc import AsyncIterator

import config
from schemas.feed import FeedEvent
from schemas.reports import Report

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    def __init__(self, feed: "ChangeFeed", maxsize: int):
        self._feed = feed
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._overflowed = False
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def _offer(self, event: FeedEvent) -> None:
        if self._closed:
            return
        if self._overflowed:
            self.dropped += 1
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._overflowed = True
            self.dropped += 1
            logger.warning("Feed subscriber fell behind; dropping events until it resyncs")

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake a pending get(). If the queue is full the consumer will see the
        # closed flag once it has drained.
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            pass

    async def get(self) -> FeedEvent | None:
        """Next event, or None once the subscription is closed."""
        if self._overflowed and self._queue.empty():
            self._overflowed = False
            return FeedEvent(kind="resync")
        if self._closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            return None
        return item

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self._feed.unsubscribe(self)

    async def __aiter__(self) -> AsyncIterator[FeedEvent]:
        while True:
            event = await self.get()
            if event is None:
                return
            yield event


class ChangeFeed:
    def __init__(self, buffer_size: int = config.FEED_BUFFER_SIZE):
        # maxsize=0 would make every queue unbounded
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be at least 1, got {buffer_size}")
        self.buffer_size = buffer_size
        self._subscribers: list[Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        sub = Subscription(self, self.buffer_size)
        self._subscribers.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)
        sub._close()

    def publish(self, kind: str, report: Report) -> FeedEvent:
        event = FeedEvent(kind=kind, report=report.model_copy(deep=True))
        for sub in list(self._subscribers):
            sub._offer(event)
        return event

    def close(self) -> None:
        for sub in list(self._subscribers):
            self.unsubscribe(sub)
