"""Monitoring dashboard: windowed statistics, hotspots and export."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

import config
from insights.aggregation import build_dashboard, export_snapshot, window_start
from routers.deps import get_store
from schemas.reports import ReportFilter
from store.reports import ReportStore

router = APIRouter(tags=["dashboard"])


async def _dashboard(store: ReportStore, window: str, now: datetime):
    reports = await store.list(ReportFilter(since=window_start(window, now)))
    return build_dashboard(reports, window, now)


@router.get("/dashboard")
async def get_dashboard(window: str = config.DEFAULT_WINDOW, store: ReportStore = Depends(get_store)):
    dashboard = await _dashboard(store, window, datetime.now(timezone.utc))
    return JSONResponse(content=dashboard.model_dump(mode="json"))


@router.get("/dashboard/export")
async def export_dashboard(window: str = config.DEFAULT_WINDOW, store: ReportStore = Depends(get_store)):
    """Download the current dashboard as a JSON document."""
    now = datetime.now(timezone.utc)
    dashboard = await _dashboard(store, window, now)
    filename = f"ocean-guard-data-{window}-{now.date().isoformat()}.json"
    return JSONResponse(
        content=export_snapshot(dashboard, now),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
