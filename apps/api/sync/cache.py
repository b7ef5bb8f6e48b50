"""Consumer-side report cache kept current by change-feed deltas."""

import logging

from schemas.feed import FeedEvent
from schemas.reports import Report

logger = logging.getLogger(__name__)

# Deleted ids remembered to reject redelivered events; oldest are forgotten first
TOMBSTONE_LIMIT = 4096


class ClientSyncCache:
    """Locally known reports, keyed by id.

    Redelivered events are tolerated: a snapshot older than the stored one
    (by ``updated_at``) is ignored, and an id that has been deleted is never
    brought back, since report ids are not reused. Only the most recent
    ``tombstone_limit`` deletions are remembered.
    """

    def __init__(self, reports: list[Report] | None = None, tombstone_limit: int = TOMBSTONE_LIMIT):
        self._reports: dict[str, Report] = {}
        # dict as an insertion-ordered set
        self._deleted: dict[str, None] = {}
        self.tombstone_limit = tombstone_limit
        if reports:
            self.reset(reports)

    def __len__(self) -> int:
        return len(self._reports)

    def __contains__(self, report_id: str) -> bool:
        return report_id in self._reports

    def get(self, report_id: str) -> Report | None:
        return self._reports.get(report_id)

    def reports(self) -> list[Report]:
        return list(self._reports.values())

    def reset(self, reports: list[Report]) -> None:
        """Replace the whole view with an authoritative listing."""
        self._reports = {r.id: r.model_copy(deep=True) for r in reports}
        for report_id in self._reports:
            self._deleted.pop(report_id, None)

    def _remember_deleted(self, report_id: str) -> None:
        self._deleted.pop(report_id, None)
        self._deleted[report_id] = None
        while len(self._deleted) > self.tombstone_limit:
            del self._deleted[next(iter(self._deleted))]

    def apply(self, event: FeedEvent) -> bool:
        """Apply one delta. Returns True if the cached set changed."""
        report = event.report
        if report is None:
            return False

        if event.kind == "delete":
            self._remember_deleted(report.id)
            return self._reports.pop(report.id, None) is not None

        if report.id in self._deleted:
            logger.debug("Ignoring %s for deleted report %s", event.kind, report.id)
            return False

        current = self._reports.get(report.id)
        if current is not None and report.updated_at < current.updated_at:
            return False
        if current == report:
            return False
        self._reports[report.id] = report.model_copy(deep=True)
        return True
