"""Drives a ``ClientSyncCache`` from a change-feed subscription.

A consumer-side building block for in-process monitors; the HTTP API itself
exposes the feed through ``routers/stream.py`` instead.
"""

import logging
from collections.abc import Awaitable, Callable

from feed.broadcaster import Subscription
from schemas.feed import FeedEvent
from schemas.reports import Report
from sync.cache import ClientSyncCache

logger = logging.getLogger(__name__)

Lister = Callable[[], Awaitable[list[Report]]]
Listener = Callable[[FeedEvent], object]


class FeedConsumer:
    """Applies feed deltas to a cache and reconciles on ``resync``.

    Subscribe before constructing the consumer: the initial listing then
    cannot miss a change committed between the listing and the subscription.
    """

    def __init__(
        self,
        subscription: Subscription,
        list_reports: Lister,
        cache: ClientSyncCache | None = None,
        listeners: list[Listener] | None = None,
    ):
        self.subscription = subscription
        self.list_reports = list_reports
        self.cache = cache if cache is not None else ClientSyncCache()
        self.listeners = list(listeners or [])
        self.resyncs = 0

    async def reconcile(self) -> None:
        self.cache.reset(await self.list_reports())
        self.resyncs += 1

    def _notify(self, event: FeedEvent) -> None:
        for listener in self.listeners:
            listener(event)

    async def handle(self, event: FeedEvent) -> None:
        if event.kind == "resync":
            logger.info("Feed consumer resyncing after dropped events")
            await self.reconcile()
            self._notify(event)
        elif self.cache.apply(event):
            self._notify(event)

    async def run(self) -> None:
        """Reconcile once, then follow the feed until the subscription closes."""
        await self.reconcile()
        async for event in self.subscription:
            await self.handle(event)
