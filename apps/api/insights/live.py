"""Dashboard view that recomputes from a synced cache as the feed moves.

For long-lived feed consumers (a monitor process or an embedding client).
The HTTP dashboard in ``routers/dashboard.py`` does not use it; it lists the
window and recomputes on every request.
"""

from collections.abc import Callable
from datetime import datetime, timezone

import config
from insights.aggregation import build_dashboard, in_window, window_delta
from schemas.dashboard import Dashboard
from schemas.feed import FeedEvent
from sync.cache import ClientSyncCache


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LiveDashboard:
    def __init__(
        self,
        cache: ClientSyncCache,
        window: str = config.DEFAULT_WINDOW,
        clock: Callable[[], datetime] = _utcnow,
    ):
        window_delta(window)
        self.cache = cache
        self.window = window
        self._clock = clock
        self.recomputations = 0
        self.current: Dashboard = self.recompute()

    def recompute(self) -> Dashboard:
        self.current = build_dashboard(self.cache.reports(), self.window, self._clock())
        self.recomputations += 1
        return self.current

    def set_window(self, window: str) -> Dashboard:
        window_delta(window)
        self.window = window
        return self.recompute()

    def on_event(self, event: FeedEvent) -> bool:
        """Recompute when the event touches the active window. Returns True if it did."""
        if event.kind != "resync":
            if event.report is None or not in_window(event.report, self.window, self._clock()):
                return False
        self.recompute()
        return True
