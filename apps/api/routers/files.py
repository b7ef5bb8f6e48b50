"""Serves stored report media."""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, JSONResponse

from routers.deps import get_storage
from storage.local import LocalStorage

router = APIRouter(tags=["media"])


def _error(status: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error_code": code, "message": message})


@router.get("/media/{key:path}")
async def serve_media(key: str, storage: LocalStorage = Depends(get_storage)):
    try:
        path = storage.media_path(key)
    except ValueError:
        return _error(404, "NOT_FOUND", "Media not found.")
    if not path.is_file():
        return _error(404, "NOT_FOUND", "Media not found.")
    return FileResponse(str(path))
