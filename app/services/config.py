from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from app.services.history_store import DEFAULT_MAX_RECORDS

logger = logging.getLogger("insight.config")


@dataclass(frozen=True)
class LLMSettings:
    enabled: bool
    base_url: str
    model: str
    health_timeout_ms: int
    generate_timeout_ms: int
    warm_up: bool


@dataclass(frozen=True)
class TranscriptionSettings:
    api_key: Optional[str]
    model: str
    base_url: str
    language: Optional[str]
    timeout_s: float


@dataclass(frozen=True)
class HistorySettings:
    max_records: int


@dataclass(frozen=True)
class AppSettings:
    llm: LLMSettings
    transcription: TranscriptionSettings
    history: HistorySettings


def _env_flag(value: str) -> bool:
    # Anything except an explicit "false" keeps the model enabled.
    return value.strip().lower() != "false"


def _positive_int(value, default: int, name: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        logger.warning("Config: invalid %s=%r, using %d", name, value, default)
        return default
    if parsed <= 0:
        logger.warning("Config: non-positive %s=%r, using %d", name, value, default)
        return default
    return parsed


def load_settings(config: Optional[dict] = None, environ: Optional[Mapping[str, str]] = None) -> AppSettings:
    """Build settings from config.json contents, then apply env overrides.

    config.json layout:
        {
            "llm": {"enabled": true, "base_url": "...", "model": "...",
                    "health_timeout_ms": 1500, "generate_timeout_ms": 300000},
            "transcription": {"api_key": "...", "model": "whisper-1", "language": "ko"},
            "history": {"max_records": 10}
        }
    """
    config = config or {}
    environ = os.environ if environ is None else environ
    llm_dict = config.get("llm", {}) or {}
    stt_dict = config.get("transcription", {}) or {}
    history_dict = config.get("history", {}) or {}

    enabled = bool(llm_dict.get("enabled", True))
    if "USE_OLLAMA" in environ:
        enabled = _env_flag(environ["USE_OLLAMA"])

    llm = LLMSettings(
        enabled=enabled,
        base_url=environ.get("OLLAMA_HOST") or llm_dict.get("base_url") or "http://localhost:11434",
        model=environ.get("OLLAMA_MODEL") or llm_dict.get("model") or "llama3.2:1b",
        health_timeout_ms=_positive_int(
            environ.get("OLLAMA_TIMEOUT_MS", llm_dict.get("health_timeout_ms", 1500)),
            1500,
            "health_timeout_ms",
        ),
        generate_timeout_ms=_positive_int(
            environ.get("OLLAMA_GENERATE_TIMEOUT_MS", llm_dict.get("generate_timeout_ms", 300_000)),
            300_000,
            "generate_timeout_ms",
        ),
        warm_up=bool(llm_dict.get("warm_up", True)),
    )

    language = environ.get("WHISPER_LANGUAGE", stt_dict.get("language", "ko"))
    transcription = TranscriptionSettings(
        api_key=environ.get("OPENAI_API_KEY") or stt_dict.get("api_key") or None,
        model=stt_dict.get("model", "whisper-1"),
        base_url=stt_dict.get("base_url", "https://api.openai.com"),
        language=language or None,
        timeout_s=float(stt_dict.get("timeout_s", 600)),
    )

    history = HistorySettings(
        max_records=_positive_int(
            history_dict.get("max_records", DEFAULT_MAX_RECORDS), DEFAULT_MAX_RECORDS, "max_records"
        ),
    )
    return AppSettings(llm=llm, transcription=transcription, history=history)
