"""Shared fixtures for the Ocean Guard test suite."""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Never touch a real database or the repo data dir from tests
os.environ.pop("DATABASE_URL", None)
os.environ["ADMIN_USER_IDS"] = "admin-1"

from db.repository import InMemoryReportRepository
from feed.broadcaster import ChangeFeed
from media.pipeline import MediaPipeline, MediaUpload
from storage.local import LocalStorage
from store.reports import Actor, ReportStore

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
MB = 1024 * 1024


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FlakyStorage(LocalStorage):
    """Local storage whose n-th put raises."""

    def __init__(self, base_dir, fail_on: int):
        super().__init__(base_dir, public_url="https://cdn.test/media")
        self.fail_on = fail_on
        self.puts = 0

    def put(self, key, data, content_type):
        self.puts += 1
        if self.puts == self.fail_on:
            raise OSError("disk full")
        return super().put(key, data, content_type)


def make_upload(size: int = 1024, content_type: str = "image/jpeg", filename: str = "photo.jpg") -> MediaUpload:
    return MediaUpload(data=b"\xff" * size, content_type=content_type, size=size, filename=filename)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def feed():
    return ChangeFeed(buffer_size=16)


@pytest.fixture
def store(feed, clock):
    return ReportStore(InMemoryReportRepository(), feed, clock=clock)


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(tmp_path, public_url="https://cdn.test/media")


@pytest.fixture
def media(storage):
    return MediaPipeline(storage)


@pytest.fixture
def citizen():
    return Actor(user_id="user-1")


@pytest.fixture
def other_citizen():
    return Actor(user_id="user-2")


@pytest.fixture
def admin():
    return Actor(user_id="admin-1", is_admin=True)


@pytest.fixture
def draft():
    return {
        "hazard_type": "Oil Spill",
        "severity": "Critical",
        "title": "Spill",
        "description": "large slick",
        "location_description": "Pier 7",
    }


@pytest.fixture
def full_draft():
    return {
        "hazard_type": "Chemical Contamination",
        "severity": "High",
        "title": "Discoloured outflow",
        "description": "Yellow foam near the storm drain",
        "immediate_actions": "Kept people away",
        "location_description": "North Beach",
        "latitude": 36.812345,
        "longitude": -121.798765,
        "reporter_name": "Sam Rivera",
        "contact_number": "+1 555 0100",
        "reporter_email": "sam@example.org",
    }
