"""Report submission, listing and moderation endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile
from fastapi.responses import JSONResponse

import config
from errors import FileTooLarge
from media.pipeline import MediaPipeline, MediaUpload
from routers.deps import get_actor, get_media, get_store
from schemas.reports import ReportFilter, ReportPatch, Severity
from store.reports import Actor, ReportStore, require_identity
from store.submission import submit_report

router = APIRouter(tags=["reports"])

CHUNK_SIZE = 1024 * 1024  # 1 MB


async def _read_upload(file: UploadFile) -> MediaUpload:
    """Buffer an upload in memory, giving up as soon as it exceeds the cap."""
    name = file.filename or "upload"
    chunks: list[bytes] = []
    size = 0
    while chunk := await file.read(CHUNK_SIZE):
        size += len(chunk)
        if size > config.MAX_MEDIA_SIZE:
            raise FileTooLarge(
                f"File \"{name}\" is too large. Maximum size is {config.MAX_MEDIA_SIZE // (1024 * 1024)}MB."
            )
        chunks.append(chunk)
    return MediaUpload(
        data=b"".join(chunks),
        content_type=file.content_type or "application/octet-stream",
        size=size,
        filename=file.filename,
    )


@router.get("/hazard-types")
async def hazard_types():
    return {"hazard_types": config.HAZARD_TYPES, "severities": [s.value for s in Severity]}


@router.post("/reports", status_code=201)
async def create_report(
    hazard_type: str | None = Form(None),
    severity: str | None = Form(None),
    title: str | None = Form(None),
    description: str | None = Form(None),
    immediate_actions: str | None = Form(None),
    location_description: str | None = Form(None),
    latitude: str | None = Form(None),
    longitude: str | None = Form(None),
    reporter_name: str | None = Form(None),
    contact_number: str | None = Form(None),
    reporter_email: str | None = Form(None),
    files: list[UploadFile] = File(default=[]),
    actor: Actor = Depends(get_actor),
    store: ReportStore = Depends(get_store),
    media: MediaPipeline = Depends(get_media),
):
    """Submit a report with optional photo/video evidence.

    Either the report and all of its files are stored, or nothing is.
    """
    require_identity(actor)
    draft = {
        "hazard_type": hazard_type,
        "severity": severity,
        "title": title,
        "description": description,
        "immediate_actions": immediate_actions,
        "location_description": location_description,
        "latitude": latitude,
        "longitude": longitude,
        "reporter_name": reporter_name,
        "contact_number": contact_number,
        "reporter_email": reporter_email,
    }
    uploads = [await _read_upload(f) for f in files if f.filename or f.size]
    report = await submit_report(store, media, actor, draft, uploads)
    return JSONResponse(status_code=201, content=report.model_dump(mode="json"))


@router.get("/reports")
async def list_reports(
    since: datetime | None = None,
    severity: Severity | None = None,
    status: str | None = None,
    mine: bool = False,
    limit: int | None = None,
    actor: Actor = Depends(get_actor),
    store: ReportStore = Depends(get_store),
):
    """List reports, newest first. ``mine=true`` restricts to the caller's own."""
    if mine:
        require_identity(actor)
    flt = ReportFilter(
        since=since,
        severity=severity,
        status=status,
        submitter_id=actor.user_id if mine else None,
        limit=limit,
    )
    reports = await store.list(flt)
    return JSONResponse(content={
        "reports": [r.model_dump(mode="json") for r in reports],
        "count": len(reports),
    })


@router.get("/reports/{report_id}")
async def get_report(report_id: str, store: ReportStore = Depends(get_store)):
    report = await store.get(report_id)
    return JSONResponse(content=report.model_dump(mode="json"))


@router.patch("/reports/{report_id}")
async def update_report(
    report_id: str,
    patch: ReportPatch,
    actor: Actor = Depends(get_actor),
    store: ReportStore = Depends(get_store),
):
    """Correct report content (submitter) or move it through review (admin)."""
    report = await store.update(actor, report_id, patch.model_dump(exclude_unset=True))
    return JSONResponse(content=report.model_dump(mode="json"))


@router.delete("/reports/{report_id}", status_code=204)
async def delete_report(
    report_id: str,
    actor: Actor = Depends(get_actor),
    store: ReportStore = Depends(get_store),
):
    await store.delete(actor, report_id)
    return Response(status_code=204)
