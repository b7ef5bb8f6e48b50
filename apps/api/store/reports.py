"""Report store: validation, authorization and the single write path.

All mutations of the report set go through ``ReportStore``. Writes to one
report are serialized by a per-id lock and the resulting change is published
to the feed before the lock is released, so subscribers observe changes to a
given report in commit order.
"""

import asyncio
import logging
import uuid
from collections.abc import Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import ValidationError as PydanticValidationError

import config
from db.repository import InMemoryReportRepository, ReportRepository
from errors import Forbidden, NotFound, Unauthorized, ValidationError
from feed.broadcaster import ChangeFeed
from schemas.reports import Report, ReportDraft, ReportFilter

logger = logging.getLogger(__name__)

CONTENT_FIELDS = set(ReportDraft.model_fields)
ADMIN_FIELDS = {"status", "media_refs"}
EDITABLE_FIELDS = CONTENT_FIELDS | ADMIN_FIELDS


@dataclass(frozen=True)
class Actor:
    """Who is acting. Passed explicitly into every write."""

    user_id: str | None
    is_admin: bool = False

    @classmethod
    def from_user_id(cls, user_id: str | None) -> "Actor":
        return cls(user_id=user_id, is_admin=bool(user_id) and user_id in config.ADMIN_USER_IDS)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _describe(exc: PydanticValidationError) -> ValidationError:
    details = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err["loc"]) or None
        if err["type"] == "value_error":
            message = str(err["ctx"]["error"])
        else:
            message = err["msg"]
        details.append({"field": field, "message": message})
    message = "; ".join(f"{d['field']}: {d['message']}" if d["field"] else d["message"] for d in details)
    return ValidationError(message, details=details)


def validate_draft(data: ReportDraft | dict) -> ReportDraft:
    """Validate report content without touching storage."""
    if isinstance(data, ReportDraft):
        data = data.model_dump()
    try:
        return ReportDraft.model_validate(data)
    except PydanticValidationError as exc:
        raise _describe(exc) from exc


def require_identity(actor: Actor) -> None:
    if not actor.user_id:
        raise Unauthorized("Please log in to submit or change reports.")


class ReportStore:
    def __init__(
        self,
        repository: ReportRepository | None = None,
        feed: ChangeFeed | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository or InMemoryReportRepository()
        self.feed = feed or ChangeFeed()
        self._clock = clock
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @asynccontextmanager
    async def _locked(self, report_id: str):
        """Hold the write lock for one id. The lock is dropped once nobody holds or awaits it."""
        lock = self._locks.get(report_id)
        if lock is None:
            lock = self._locks[report_id] = asyncio.Lock()
        self._lock_users[report_id] = self._lock_users.get(report_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[report_id] -= 1
            if not self._lock_users[report_id]:
                del self._lock_users[report_id]
                del self._locks[report_id]

    async def create(self, actor: Actor, draft: ReportDraft | dict, media_refs: list[str] | tuple = ()) -> Report:
        require_identity(actor)
        valid = validate_draft(draft)
        now = self._clock()
        report = Report(
            **valid.model_dump(),
            id=str(uuid.uuid4()),
            submitter_id=actor.user_id,
            media_refs=list(media_refs),
            status=config.DEFAULT_STATUS,
            created_at=now,
            updated_at=now,
        )
        async with self._locked(report.id):
            stored = await self.repository.insert(report)
            self.feed.publish("insert", stored)
        logger.info("Report %s created by %s (%s, %s)", stored.id, actor.user_id, stored.hazard_type, stored.severity.value)
        return stored

    async def get(self, report_id: str) -> Report:
        report = await self.repository.get(report_id)
        if report is None:
            raise NotFound(f"Report {report_id} not found.")
        return report

    async def list(self, flt: ReportFilter | None = None) -> list[Report]:
        return await self.repository.list(flt or ReportFilter())

    async def update(self, actor: Actor, report_id: str, fields: dict) -> Report:
        require_identity(actor)
        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}.")

        async with self._locked(report_id):
            current = await self.get(report_id)
            if not actor.is_admin:
                if current.submitter_id != actor.user_id:
                    raise Forbidden("You can only edit your own reports.")
                restricted = ADMIN_FIELDS & set(fields)
                if restricted:
                    raise Forbidden(f"Only administrators can change: {', '.join(sorted(restricted))}.")

            merged = current.model_dump()
            merged.update(fields)
            merged["updated_at"] = max(self._clock(), current.updated_at)
            try:
                candidate = Report.model_validate(merged)
            except PydanticValidationError as exc:
                raise _describe(exc) from exc

            changes = {key: getattr(candidate, key) for key in fields}
            changes["updated_at"] = candidate.updated_at
            updated = await self.repository.update(report_id, changes)
            if updated is None:
                raise NotFound(f"Report {report_id} not found.")
            self.feed.publish("update", updated)
        return updated

    async def delete(self, actor: Actor, report_id: str) -> None:
        require_identity(actor)
        async with self._locked(report_id):
            current = await self.get(report_id)
            if not actor.is_admin and current.submitter_id != actor.user_id:
                raise Forbidden("You can only delete your own reports.")
            if not await self.repository.delete(report_id):
                raise NotFound(f"Report {report_id} not found.")
            self.feed.publish("delete", current)
        logger.info("Report %s deleted by %s", report_id, actor.user_id)
