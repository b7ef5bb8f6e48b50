"""Create-with-media: the full citizen submission sequence.

Order matters: report content is validated before any file is touched,
media is validated as a batch before any file is written, and the report is
only created after every file is stored. A failure at any step leaves
neither files nor a report behind.
"""

import logging

from errors import GeolocationUnavailable
from geo.locate import CoordinateProvider, apply_coordinates, has_coordinates, locate
from media.pipeline import MediaPipeline, MediaUpload, validate_batch
from schemas.reports import Report, ReportDraft
from store.reports import Actor, ReportStore, require_identity, validate_draft

logger = logging.getLogger(__name__)


async def submit_report(
    store: ReportStore,
    media: MediaPipeline,
    actor: Actor,
    draft: ReportDraft | dict,
    files: list[MediaUpload] | None = None,
    locator: CoordinateProvider | None = None,
) -> Report:
    require_identity(actor)
    data = draft.model_dump() if isinstance(draft, ReportDraft) else dict(draft)
    files = files or []

    if locator is not None and not has_coordinates(data):
        try:
            lat, lon = await locate(locator)
        except GeolocationUnavailable as exc:
            logger.warning("Geolocation failed for %s, continuing without coordinates: %s", actor.user_id, exc.details)
        else:
            data = apply_coordinates(data, lat, lon)

    valid = validate_draft(data)
    validate_batch(files)

    stored = await media.upload(actor.user_id, files) if files else []
    try:
        return await store.create(actor, valid, [s.uri for s in stored])
    except Exception:
        await media.rollback(stored)
        raise
