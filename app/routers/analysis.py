import logging
from typing import Optional

from fastapi import APIRouter, File, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from app.services.extraction import AnalysisInputError
from app.services.models import AnalysisStatus, UploadedFile
from app.services.pipeline import AnalysisPipeline
from app.services.report import render_markdown
from app.services.storage.base import StorageBackend, StorageError, new_storage_key

MAX_FILES_PER_REQUEST = 10


def create_analysis_router(
    pipeline: AnalysisPipeline,
    storage: StorageBackend,
    max_files: int = MAX_FILES_PER_REQUEST,
) -> APIRouter:
    router = APIRouter()
    logger = logging.getLogger("insight.api.analysis")

    async def _store_uploads(files: list[UploadFile]) -> list[UploadedFile]:
        stored: list[UploadedFile] = []
        try:
            for upload in files:
                name = upload.filename or "upload.bin"
                key = new_storage_key(name)
                contents = await upload.read()
                content_type = upload.content_type or "application/octet-stream"
                storage.put(key, contents, content_type)
                stored.append(UploadedFile(name=name, size=len(contents), mime_type=content_type, storage_key=key))
        except StorageError as exc:
            logger.exception("Upload failed: %s", exc)
            for item in stored:
                storage.delete(item.storage_key)
            raise HTTPException(status_code=500, detail="파일 저장 중 오류가 발생했습니다.") from exc
        return stored

    @router.post("/api/analyze")
    async def analyze(files: Optional[list[UploadFile]] = File(None)) -> dict:
        files = files or []
        if not files:
            raise HTTPException(status_code=400, detail="업로드된 파일이 없습니다.")
        if len(files) > max_files:
            raise HTTPException(status_code=400, detail=f"파일은 최대 {max_files}개까지 업로드할 수 있습니다.")

        uploads = await _store_uploads(files)
        logger.info("Analyze request: files=%s", [(u.name, u.mime_type, u.size) for u in uploads])
        try:
            run = await run_in_threadpool(pipeline.run_analysis, uploads)
        except AnalysisInputError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except Exception as exc:
            logger.exception("Analysis failed: %s", exc)
            for item in uploads:
                storage.delete(item.storage_key)
            raise HTTPException(status_code=500, detail="분석 중 오류가 발생했습니다.") from exc

        message = "분석이 완료되었습니다."
        if run.outcome.status is AnalysisStatus.FAILURE:
            message = "분석 결과를 생성하지 못했습니다."
        return {
            "success": run.outcome.status is not AnalysisStatus.FAILURE,
            "analysisId": run.record.id,
            "status": run.outcome.status.value,
            "reason": run.outcome.reason,
            "results": run.result.to_dict(),
            "message": message,
        }

    @router.get("/api/history")
    def list_history() -> dict:
        records = pipeline.list_valid_history()
        return {"success": True, "data": [r.to_dict() for r in records], "total": len(records)}

    @router.get("/api/learned-data")
    def learned_data() -> dict:
        payload = pipeline.get_learned_data().to_dict()
        payload["commonKeywords"] = [k["word"] for k in payload["commonKeywords"]]
        return {"success": True, "data": payload}

    @router.get("/api/analysis/{record_id}/export")
    def export_analysis(record_id: str) -> PlainTextResponse:
        record = pipeline.get_record(record_id)
        if record is None:
            raise HTTPException(status_code=404, detail="분석 결과를 찾을 수 없습니다.")
        return PlainTextResponse(render_markdown(record), media_type="text/markdown; charset=utf-8")

    @router.delete("/api/analysis/{record_id}")
    def delete_analysis(record_id: str) -> dict:
        if pipeline.delete_record(record_id):
            return {"success": True, "message": "분석 결과 및 관련 파일이 삭제되었습니다."}
        return {"success": True, "message": "해당 분석 결과가 이미 삭제되었거나 존재하지 않습니다."}

    @router.delete("/api/analysis")
    def delete_all_analyses() -> dict:
        deleted = pipeline.delete_all_records()
        logger.info("Full reset: deleted_files=%d", deleted)
        return {"success": True, "message": "uploads와 데이터 기록을 모두 정리했습니다."}

    @router.post("/api/reconcile")
    def reconcile() -> dict:
        removed = pipeline.reconcile()
        return {"success": True, "removed": removed, "message": "정합성 정리 완료"}

    return router
