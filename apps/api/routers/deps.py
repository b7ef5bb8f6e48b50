"""Request-scoped access to the shared services on ``app.state``."""

from fastapi import Header, Request

from media.pipeline import MediaPipeline
from storage.local import LocalStorage
from store.reports import Actor, ReportStore


def get_store(request: Request) -> ReportStore:
    return request.app.state.store


def get_media(request: Request) -> MediaPipeline:
    return request.app.state.media


def get_storage(request: Request) -> LocalStorage:
    return request.app.state.storage


def get_actor(x_user_id: str | None = Header(default=None)) -> Actor:
    """Identity comes from the auth proxy in front of the API."""
    return Actor.from_user_id(x_user_id.strip() if x_user_id else None)
