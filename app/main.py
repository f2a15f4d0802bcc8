import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI

from app.context import AppContext
from app.routers.analysis import create_analysis_router
from app.routers.files import create_files_router
from app.services.analysis import AnalysisService
from app.services.config import load_settings
from app.services.extraction import TextExtractionService
from app.services.history_store import HistoryStore
from app.services.llm import LLMProvider, OllamaProvider
from app.services.logging_setup import configure_logging
from app.services.pipeline import AnalysisPipeline
from app.services.snapshot import SnapshotStore
from app.services.storage.local import LocalStorage
from app.services.transcription import OpenAIWhisperProvider, TranscriptionProvider

APP_VERSION = "0.1.0"


def _load_config(config_path: str, logger: logging.Logger) -> dict:
    if not os.path.exists(config_path):
        logger.info("Boot: config_path missing=%s", config_path)
        return {}
    logger.info("Boot: loading config_path=%s", config_path)
    with open(config_path, "r", encoding="utf-8") as config_file:
        config = json.load(config_file)
    logger.info("Boot: config keys=%s", sorted(config.keys()))
    return config


def create_app(
    *,
    cwd: Optional[str] = None,
    config_path: Optional[str] = None,
    llm_provider: Optional[LLMProvider] = None,
    transcriber: Optional[TranscriptionProvider] = None,
) -> FastAPI:
    """Build the API.

    ``llm_provider`` and ``transcriber`` replace the configured Ollama and
    OpenAI clients (tests inject fakes here).
    """
    cwd = cwd or os.getcwd()
    configure_logging(os.path.join(cwd, "logs"))
    logger = logging.getLogger("insight.boot")
    logger.info("Boot: starting create_app cwd=%s", cwd)

    # Config always lives in the app-level data dir regardless of custom data_dir
    config_path = config_path or os.path.join(cwd, "data", "config.json")
    config = _load_config(config_path, logger)

    ctx = AppContext.resolve(cwd, config_path, config)
    ctx.ensure_dirs()
    settings = load_settings(config)
    logger.info(
        "Boot: AppContext ready data_dir=%s model_enabled=%s model=%s host=%s",
        ctx.data_dir,
        settings.llm.enabled,
        settings.llm.model,
        settings.llm.base_url,
    )

    if llm_provider is None:
        llm_provider = OllamaProvider(
            base_url=settings.llm.base_url,
            model=settings.llm.model,
            health_timeout_ms=settings.llm.health_timeout_ms,
            generate_timeout_ms=settings.llm.generate_timeout_ms,
        )
    if transcriber is None:
        transcriber = OpenAIWhisperProvider(
            api_key=settings.transcription.api_key,
            model=settings.transcription.model,
            base_url=settings.transcription.base_url,
            timeout=settings.transcription.timeout_s,
        )
        if not settings.transcription.api_key:
            logger.warning("Boot: OPENAI_API_KEY not set; audio and video files will not be transcribed")

    storage = LocalStorage(ctx.uploads_dir)
    history = HistoryStore(storage, SnapshotStore(ctx.data_dir), max_records=settings.history.max_records)
    history.load()
    analysis_service = AnalysisService(llm_provider, enabled=settings.llm.enabled)
    pipeline = AnalysisPipeline(
        extraction=TextExtractionService(storage, transcriber, settings.transcription.language),
        analysis=analysis_service,
        history=history,
        storage=storage,
    )
    logger.info("Boot: pipeline ready records=%d", len(history.all_records()))

    app = FastAPI(title="Meeting Insight", version=APP_VERSION)
    app.state.version = APP_VERSION
    app.state.ctx = ctx
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.history = history

    app.include_router(create_analysis_router(pipeline, storage))
    logger.info("Boot: analysis router mounted")
    app.include_router(create_files_router(storage))
    logger.info("Boot: files router mounted")

    if analysis_service.enabled and settings.llm.warm_up:
        threading.Thread(
            target=analysis_service.warm_up,
            daemon=True,
            name="model-warm-up",
        ).start()
        logger.info("Boot: model warm-up initiated in background")

    @app.get("/api/health")
    def health() -> dict:
        return {
            "status": "ok",
            "version": app.state.version,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "modelEnabled": analysis_service.enabled,
            "ollama": llm_provider.describe(),
        }

    logger.info("Boot: create_app complete")
    return app
