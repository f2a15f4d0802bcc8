import logging
import mimetypes

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse, Response

from app.services.storage.base import StorageBackend, StorageError, sanitize_key
from app.services.storage.local import LocalStorage


def create_files_router(storage: StorageBackend) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("insight.api.files")

    @router.get("/api/files/{key}")
    def download_file(key: str) -> Response:
        key = sanitize_key(key)
        if not storage.exists(key):
            raise HTTPException(status_code=404, detail="파일을 찾을 수 없습니다.")
        media_type = mimetypes.guess_type(key)[0] or "application/octet-stream"
        if isinstance(storage, LocalStorage):
            return FileResponse(storage.path_for(key), media_type=media_type, filename=key)
        try:
            data = storage.get(key)
        except StorageError as exc:
            logger.warning("Download failed: %s error=%s", key, exc)
            raise HTTPException(status_code=404, detail="파일을 찾을 수 없습니다.") from exc
        return Response(
            content=data,
            media_type=media_type,
            headers={"Content-Disposition": f'attachment; filename="{key}"'},
        )

    return router
