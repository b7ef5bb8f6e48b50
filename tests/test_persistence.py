"""Repository and migration helpers that do not need a live database."""

import json
import uuid

from db.queries import _encode
from db.repository import InMemoryReportRepository, _row_to_report
from migrations.run import pending_migrations
from schemas.reports import ReportFilter, Severity
from tests.conftest import NOW


def _row(**overrides):
    row = {
        "id": uuid.uuid4(),
        "submitter_id": "user-1",
        "hazard_type": "Oil Spill",
        "severity": "High",
        "title": "Spill",
        "description": "slick",
        "immediate_actions": None,
        "location_description": "Pier 7",
        "latitude": None,
        "longitude": None,
        "reporter_name": None,
        "contact_number": None,
        "reporter_email": None,
        "media_refs": json.dumps(["https://cdn.test/media/user-1/1-abc.jpg"]),
        "status": "Pending",
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


class TestRowMapping:
    def test_decodes_uuid_and_jsonb(self):
        row = _row()
        report = _row_to_report(row)
        assert report.id == str(row["id"])
        assert report.media_refs == ["https://cdn.test/media/user-1/1-abc.jpg"]
        assert report.severity is Severity.HIGH

    def test_encode_for_insert(self):
        rid = str(uuid.uuid4())
        assert _encode("id", rid) == uuid.UUID(rid)
        assert _encode("media_refs", None) == "[]"
        assert _encode("severity", Severity.LOW) == "Low"
        assert _encode("title", "Spill") == "Spill"


class TestInMemoryRepository:
    async def test_list_filters_and_orders_newest_first(self, store, clock, citizen, other_citizen, draft):
        first = await store.create(citizen, draft)
        clock.advance(minutes=1)
        second = await store.create(other_citizen, {**draft, "severity": "Low"})

        repo = store.repository
        assert [r.id for r in await repo.list(ReportFilter())] == [second.id, first.id]
        assert [r.id for r in await repo.list(ReportFilter(submitter_id="user-1"))] == [first.id]
        assert [r.id for r in await repo.list(ReportFilter(severity="Low"))] == [second.id]
        assert [r.id for r in await repo.list(ReportFilter(limit=1))] == [second.id]

    async def test_hands_out_copies(self, store, citizen, draft):
        report = await store.create(citizen, draft)
        fetched = await store.repository.get(report.id)
        fetched.media_refs.append("tampered")
        assert (await store.repository.get(report.id)).media_refs == []

    async def test_missing_rows(self):
        repo = InMemoryReportRepository()
        assert await repo.get("nope") is None
        assert await repo.update("nope", {"title": "x"}) is None
        assert await repo.delete("nope") is False


class TestMigrations:
    def test_pending_in_filename_order(self):
        names = [p.name for p in pending_migrations(set())]
        assert names[0] == "001_reports.sql"
        assert names == sorted(names)

    def test_applied_are_skipped(self):
        assert "001_reports.sql" not in [p.name for p in pending_migrations({"001_reports.sql"})]
