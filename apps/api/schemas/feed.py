from typing import Literal

from pydantic import BaseModel

from schemas.reports import Report

EventKind = Literal["insert", "update", "delete", "resync"]


class FeedEvent(BaseModel):
    kind: EventKind
    report: Report | None = None

    @property
    def report_id(self) -> str | None:
        return self.report.id if self.report else None
