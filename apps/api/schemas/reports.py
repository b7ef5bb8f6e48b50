import re
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from config import DEFAULT_STATUS, REPORT_STATUSES

REQUIRED_FIELDS = ("hazard_type", "severity", "title", "description")
OPTIONAL_TEXT_FIELDS = (
    "immediate_actions",
    "location_description",
    "reporter_name",
    "contact_number",
    "reporter_email",
)
EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


class Severity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ReportDraft(BaseModel):
    """Citizen-supplied report content, before the store assigns identity."""

    model_config = ConfigDict(str_strip_whitespace=True)

    hazard_type: str
    severity: Severity
    title: str
    description: str
    immediate_actions: str | None = None
    location_description: str | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    reporter_name: str | None = None
    contact_number: str | None = None
    reporter_email: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_blanks(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in (*OPTIONAL_TEXT_FIELDS, "latitude", "longitude"):
            value = data.get(key)
            if isinstance(value, str) and not value.strip():
                data[key] = None
        missing = [
            key for key in REQUIRED_FIELDS
            if data.get(key) is None or (isinstance(data[key], str) and not data[key].strip())
        ]
        if missing:
            raise ValueError(f"Please fill in all required fields: {', '.join(missing)}.")
        return data

    @field_validator("reporter_email")
    @classmethod
    def _check_email(cls, value: str | None) -> str | None:
        if value is not None and not EMAIL_PATTERN.fullmatch(value):
            raise ValueError("Please enter a valid email address.")
        return value

    @model_validator(mode="after")
    def _check_coordinates(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("Latitude and longitude must be provided together.")
        return self


class Report(ReportDraft):
    id: str
    submitter_id: str
    media_refs: list[str] = Field(default_factory=list)
    status: str = DEFAULT_STATUS
    created_at: datetime
    updated_at: datetime

    @field_validator("status")
    @classmethod
    def _check_status(cls, value: str) -> str:
        if value not in REPORT_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(REPORT_STATUSES)}.")
        return value


class ReportPatch(BaseModel):
    """Partial update body. Only fields explicitly sent are applied."""

    hazard_type: str | None = None
    severity: str | None = None
    title: str | None = None
    description: str | None = None
    immediate_actions: str | None = None
    location_description: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    reporter_name: str | None = None
    contact_number: str | None = None
    reporter_email: str | None = None
    status: str | None = None
    media_refs: list[str] | None = None


class ReportFilter(BaseModel):
    since: datetime | None = None
    submitter_id: str | None = None
    severity: Severity | None = None
    status: str | None = None
    limit: int | None = Field(default=None, ge=1)

    @field_validator("since")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        # Timestamps without an offset are read as UTC
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def matches(self, report: Report) -> bool:
        if self.since is not None and report.created_at < self.since:
            return False
        if self.submitter_id is not None and report.submitter_id != self.submitter_id:
            return False
        if self.severity is not None and report.severity != self.severity:
            return False
        if self.status is not None and report.status != self.status:
            return False
        return True
