"""Persistence boundary for reports.

The store talks to a ``ReportRepository`` and never to a concrete backend.
``InMemoryReportRepository`` is the default (and what the tests use);
``PostgresReportRepository`` is selected when DATABASE_URL is set.
"""

from __future__ import annotations

import json
from typing import Protocol

from db import queries
from schemas.reports import Report, ReportFilter


class ReportRepository(Protocol):
    async def insert(self, report: Report) -> Report: ...

    async def get(self, report_id: str) -> Report | None: ...

    async def update(self, report_id: str, fields: dict) -> Report | None: ...

    async def delete(self, report_id: str) -> bool: ...

    async def list(self, flt: ReportFilter) -> list[Report]: ...


def _sort_newest_first(reports: list[Report]) -> list[Report]:
    return sorted(reports, key=lambda r: (-r.created_at.timestamp(), r.id))


class InMemoryReportRepository:
    """Dict-backed repository. Hands out copies so callers never share state."""

    def __init__(self):
        self._rows: dict[str, Report] = {}

    async def insert(self, report: Report) -> Report:
        if report.id in self._rows:
            raise KeyError(f"duplicate report id {report.id}")
        self._rows[report.id] = report.model_copy(deep=True)
        return report.model_copy(deep=True)

    async def get(self, report_id: str) -> Report | None:
        row = self._rows.get(report_id)
        return row.model_copy(deep=True) if row else None

    async def update(self, report_id: str, fields: dict) -> Report | None:
        row = self._rows.get(report_id)
        if row is None:
            return None
        updated = row.model_copy(update=fields, deep=True)
        self._rows[report_id] = updated
        return updated.model_copy(deep=True)

    async def delete(self, report_id: str) -> bool:
        return self._rows.pop(report_id, None) is not None

    async def list(self, flt: ReportFilter) -> list[Report]:
        rows = _sort_newest_first([r for r in self._rows.values() if flt.matches(r)])
        if flt.limit is not None:
            rows = rows[: flt.limit]
        return [r.model_copy(deep=True) for r in rows]


def _row_to_report(row: dict) -> Report:
    data = dict(row)
    data["id"] = str(data["id"])
    if isinstance(data.get("media_refs"), str):
        data["media_refs"] = json.loads(data["media_refs"])
    return Report.model_validate(data)


class PostgresReportRepository:
    async def insert(self, report: Report) -> Report:
        row = await queries.insert_report(report.model_dump(mode="python"))
        return _row_to_report(row)

    async def get(self, report_id: str) -> Report | None:
        row = await queries.get_report(report_id)
        return _row_to_report(row) if row else None

    async def update(self, report_id: str, fields: dict) -> Report | None:
        row = await queries.update_report(report_id, fields)
        return _row_to_report(row) if row else None

    async def delete(self, report_id: str) -> bool:
        return await queries.delete_report(report_id)

    async def list(self, flt: ReportFilter) -> list[Report]:
        rows = await queries.list_reports(
            since=flt.since,
            submitter_id=flt.submitter_id,
            severity=flt.severity.value if flt.severity else None,
            status=flt.status,
            limit=flt.limit,
        )
        return [_row_to_report(r) for r in rows]
