"""Report store: validation, CRUD, authorization and write serialization."""

import asyncio
from datetime import datetime

import pytest

from errors import Forbidden, NotFound, Unauthorized, ValidationError
from schemas.reports import ReportFilter, Severity
from store.reports import Actor
from tests.conftest import NOW


class TestCreate:
    async def test_create_assigns_identity_and_defaults(self, store, citizen, draft):
        report = await store.create(citizen, draft)
        assert report.id
        assert report.submitter_id == "user-1"
        assert report.status == "Pending"
        assert report.media_refs == []
        assert report.created_at == NOW
        assert report.updated_at == NOW

    async def test_create_then_list_round_trips_every_field(self, store, citizen, full_draft):
        created = await store.create(citizen, full_draft, ["https://cdn.test/a.jpg"])
        [listed] = await store.list()
        assert listed == created
        for key, value in full_draft.items():
            assert getattr(listed, key) == value
        assert listed.media_refs == ["https://cdn.test/a.jpg"]

    async def test_ids_are_unique(self, store, citizen, draft):
        ids = {(await store.create(citizen, draft)).id for _ in range(20)}
        assert len(ids) == 20

    @pytest.mark.parametrize("missing", ["hazard_type", "severity", "title", "description"])
    async def test_missing_required_field_rejected(self, store, citizen, draft, missing):
        draft.pop(missing)
        with pytest.raises(ValidationError) as exc:
            await store.create(citizen, draft)
        assert missing in exc.value.message
        assert await store.list() == []

    async def test_blank_required_field_rejected(self, store, citizen, draft):
        draft["title"] = "   "
        with pytest.raises(ValidationError, match="required fields: title"):
            await store.create(citizen, draft)

    async def test_unknown_severity_rejected(self, store, citizen, draft):
        draft["severity"] = "Catastrophic"
        with pytest.raises(ValidationError) as exc:
            await store.create(citizen, draft)
        assert exc.value.details[0]["field"] == "severity"

    @pytest.mark.parametrize("coords", [{"latitude": 10.0}, {"longitude": 20.0}, {"latitude": 10.0, "longitude": ""}])
    async def test_partial_coordinates_rejected(self, store, citizen, draft, coords):
        draft.update(coords)
        with pytest.raises(ValidationError, match="provided together"):
            await store.create(citizen, draft)

    async def test_out_of_range_latitude_rejected(self, store, citizen, draft):
        draft.update(latitude=91, longitude=0)
        with pytest.raises(ValidationError):
            await store.create(citizen, draft)

    async def test_invalid_email_rejected(self, store, citizen, draft):
        draft["reporter_email"] = "not-an-email"
        with pytest.raises(ValidationError, match="valid email"):
            await store.create(citizen, draft)

    async def test_blank_optionals_stored_as_absent(self, store, citizen, draft):
        draft.update(immediate_actions="", reporter_name="  ", latitude="", longitude="")
        report = await store.create(citizen, draft)
        assert report.immediate_actions is None
        assert report.reporter_name is None
        assert report.latitude is None and report.longitude is None

    async def test_anonymous_actor_rejected(self, store, draft):
        with pytest.raises(Unauthorized):
            await store.create(Actor(user_id=None), draft)

    async def test_create_publishes_insert(self, store, feed, citizen, draft):
        sub = feed.subscribe()
        report = await store.create(citizen, draft)
        event = await sub.get()
        assert event.kind == "insert"
        assert event.report == report


class TestUpdate:
    async def test_submitter_can_correct_content(self, store, clock, citizen, draft):
        report = await store.create(citizen, draft)
        clock.advance(minutes=5)
        updated = await store.update(citizen, report.id, {"description": "slick is spreading"})
        assert updated.description == "slick is spreading"
        assert updated.updated_at > report.updated_at
        assert updated.created_at == report.created_at

    async def test_updated_at_never_goes_backwards(self, store, clock, citizen, draft):
        report = await store.create(citizen, draft)
        clock.advance(hours=-1)
        updated = await store.update(citizen, report.id, {"title": "Spill update"})
        assert updated.updated_at == report.updated_at

    async def test_update_revalidates(self, store, citizen, draft):
        report = await store.create(citizen, draft)
        with pytest.raises(ValidationError):
            await store.update(citizen, report.id, {"latitude": 12.0})
        with pytest.raises(ValidationError):
            await store.update(citizen, report.id, {"severity": "Urgent"})
        assert await store.get(report.id) == report

    async def test_coordinates_can_be_set_as_a_pair(self, store, citizen, draft):
        report = await store.create(citizen, draft)
        updated = await store.update(citizen, report.id, {"latitude": 1.5, "longitude": 2.5})
        assert (updated.latitude, updated.longitude) == (1.5, 2.5)

    async def test_identity_fields_not_editable(self, store, admin, citizen, draft):
        report = await store.create(citizen, draft)
        with pytest.raises(ValidationError, match="cannot be edited"):
            await store.update(admin, report.id, {"id": "other"})

    async def test_status_requires_admin(self, store, citizen, admin, draft):
        report = await store.create(citizen, draft)
        with pytest.raises(Forbidden):
            await store.update(citizen, report.id, {"status": "Resolved"})
        updated = await store.update(admin, report.id, {"status": "Under Review"})
        assert updated.status == "Under Review"

    async def test_unknown_status_rejected(self, store, citizen, admin, draft):
        report = await store.create(citizen, draft)
        with pytest.raises(ValidationError, match="Status must be one of"):
            await store.update(admin, report.id, {"status": "Archived"})

    async def test_media_refs_admin_only(self, store, citizen, admin, draft):
        report = await store.create(citizen, draft, ["https://cdn.test/a.jpg"])
        with pytest.raises(Forbidden):
            await store.update(citizen, report.id, {"media_refs": []})
        updated = await store.update(admin, report.id, {"media_refs": []})
        assert updated.media_refs == []

    async def test_other_citizen_cannot_edit(self, store, citizen, other_citizen, draft):
        report = await store.create(citizen, draft)
        with pytest.raises(Forbidden):
            await store.update(other_citizen, report.id, {"title": "mine now"})

    async def test_update_missing_report(self, store, admin):
        with pytest.raises(NotFound):
            await store.update(admin, "does-not-exist", {"title": "x"})

    async def test_locks_are_released_after_use(self, store, citizen, admin, draft):
        for i in range(50):
            with pytest.raises(NotFound):
                await store.update(admin, f"nope-{i}", {"title": "x"})
        report = await store.create(citizen, draft)
        await store.update(citizen, report.id, {"title": "y"})
        with pytest.raises(Forbidden):
            await store.update(citizen, report.id, {"status": "Verified"})
        assert store._locks == {}
        assert store._lock_users == {}

    async def test_concurrent_updates_to_one_report_are_serialized(self, store, feed, clock, citizen, draft):
        report = await store.create(citizen, draft)
        sub = feed.subscribe()
        titles = [f"title {i}" for i in range(10)]
        await asyncio.gather(*(store.update(citizen, report.id, {"title": t}) for t in titles))

        seen = [(await sub.get()).report.title for _ in titles]
        final = await store.get(report.id)
        assert sorted(seen) == sorted(titles)
        assert final.title == seen[-1]
        assert store._locks == {}


class TestDeleteAndList:
    async def test_delete_removes_and_publishes(self, store, feed, citizen, draft):
        report = await store.create(citizen, draft)
        sub = feed.subscribe()
        await store.delete(citizen, report.id)
        event = await sub.get()
        assert event.kind == "delete"
        assert event.report.id == report.id
        with pytest.raises(NotFound):
            await store.get(report.id)

    async def test_delete_missing(self, store, citizen):
        with pytest.raises(NotFound):
            await store.delete(citizen, "nope")

    async def test_only_owner_or_admin_deletes(self, store, citizen, other_citizen, admin, draft):
        report = await store.create(citizen, draft)
        with pytest.raises(Forbidden):
            await store.delete(other_citizen, report.id)
        await store.delete(admin, report.id)
        assert await store.list() == []

    async def test_list_newest_first_and_since_inclusive(self, store, clock, citizen, draft):
        first = await store.create(citizen, draft)
        clock.advance(hours=1)
        second = await store.create(citizen, draft)

        assert [r.id for r in await store.list()] == [second.id, first.id]
        since_first = await store.list(ReportFilter(since=first.created_at))
        assert len(since_first) == 2
        since_later = await store.list(ReportFilter(since=second.created_at))
        assert [r.id for r in since_later] == [second.id]

    async def test_since_without_offset_is_read_as_utc(self, store, clock, citizen, draft):
        first = await store.create(citizen, draft)
        clock.advance(hours=1)
        second = await store.create(citizen, draft)

        naive = second.created_at.replace(tzinfo=None)
        assert [r.id for r in await store.list(ReportFilter(since=naive))] == [second.id]
        assert len(await store.list(ReportFilter(since=datetime(2020, 1, 1)))) == 2
        assert first.created_at < second.created_at

    async def test_list_filters(self, store, citizen, other_citizen, draft):
        await store.create(citizen, draft)
        await store.create(other_citizen, {**draft, "severity": "Low"})

        mine = await store.list(ReportFilter(submitter_id="user-2"))
        assert [r.submitter_id for r in mine] == ["user-2"]
        critical = await store.list(ReportFilter(severity=Severity.CRITICAL))
        assert [r.submitter_id for r in critical] == ["user-1"]
        assert len(await store.list(ReportFilter(limit=1))) == 1

    async def test_returned_reports_are_copies(self, store, citizen, draft):
        report = await store.create(citizen, draft, ["https://cdn.test/a.jpg"])
        report.media_refs.append("https://evil.test/x.jpg")
        assert (await store.get(report.id)).media_refs == ["https://cdn.test/a.jpg"]
