"""
Ocean Guard: FastAPI backend.

  GET    /api/v1/hazard-types            Suggested hazard types and severities
  POST   /api/v1/reports                 Submit a report (multipart, optional media)
  GET    /api/v1/reports                 List reports (since/severity/status/mine)
  GET    /api/v1/reports/stream          SSE change feed
  GET    /api/v1/reports/{id}            Fetch one report
  PATCH  /api/v1/reports/{id}            Correct or moderate a report
  DELETE /api/v1/reports/{id}            Delete a report
  GET    /api/v1/dashboard?window=24h    Windowed stats + hotspots
  GET    /api/v1/dashboard/export        Dashboard snapshot download
  GET    /media/{key}                    Stored media
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load .env from repo root (two levels up from apps/api/) before reading config
_root = Path(__file__).resolve().parent.parent.parent
load_dotenv(_root / ".env")

import config
from db.repository import InMemoryReportRepository, PostgresReportRepository, ReportRepository
from errors import ReportError
from feed.broadcaster import ChangeFeed
from media.pipeline import MediaPipeline, MediaStorage
from routers import dashboard, files, reports, stream
from storage.local import LocalStorage
from store.reports import ReportStore

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app(
    repository: ReportRepository | None = None,
    storage: MediaStorage | None = None,
) -> FastAPI:
    """Build the app. Tests pass their own repository and storage."""

    # ── Lifespan: wire services, init/close DB pool ───────────────────────────
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        repo = repository
        use_db = repo is None and bool(config.DATABASE_URL)
        if use_db:
            from db.engine import init_db
            await init_db()
            repo = PostgresReportRepository()
            logger.info("Database pool initialized")
        elif repo is None:
            logger.warning("DATABASE_URL not set, reports are kept in memory only")
            repo = InMemoryReportRepository()

        feed = ChangeFeed()
        app.state.storage = storage or LocalStorage()
        app.state.media = MediaPipeline(app.state.storage)
        app.state.store = ReportStore(repo, feed)
        yield
        feed.close()
        if use_db:
            from db.engine import close_db
            await close_db()
            logger.info("Database pool closed")

    app = FastAPI(title="Ocean Guard", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Errors ────────────────────────────────────────────────────────────────
    @app.exception_handler(ReportError)
    async def report_error_handler(request: Request, exc: ReportError):
        return JSONResponse(status_code=exc.status, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"field": ".".join(str(p) for p in err["loc"][1:]) or None, "message": err["msg"]}
            for err in exc.errors()
        ]
        message = "; ".join(f"{d['field']}: {d['message']}" if d["field"] else d["message"] for d in details)
        return JSONResponse(
            status_code=422,
            content={"error_code": "VALIDATION_ERROR", "message": message, "details": details},
        )

    # ── Routers ───────────────────────────────────────────────────────────────
    # stream must precede reports so /reports/stream is not read as an id
    app.include_router(stream.router, prefix="/api/v1")
    app.include_router(reports.router, prefix="/api/v1")
    app.include_router(dashboard.router, prefix="/api/v1")
    app.include_router(files.router)

    @app.get("/health")
    async def health():
        body = {"status": "ok"}
        if isinstance(app.state.store.repository, PostgresReportRepository):
            from db.engine import ping
            body["database"] = "ok" if await ping() else "unreachable"
        return body

    return app


app = create_app()
