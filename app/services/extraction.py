from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from app.services.models import UploadedFile
from app.services.storage.base import StorageBackend, StorageError
from app.services.transcription.base import (
    TranscriptionErrorKind,
    TranscriptionProvider,
    TranscriptionProviderError,
)

TEXT_EXTENSIONS = frozenset({".txt"})
MEDIA_EXTENSIONS = frozenset({".mp3", ".wav", ".m4a", ".mp4", ".avi", ".mov", ".webm"})

TRANSCRIPTION_FAILURE_MESSAGES = {
    TranscriptionErrorKind.MISSING_CREDENTIALS: "OpenAI API 키가 설정되지 않았습니다.",
    TranscriptionErrorKind.RATE_LIMITED: "API 사용량 한도에 도달했습니다. 잠시 후 다시 시도해주세요.",
    TranscriptionErrorKind.QUOTA_EXHAUSTED: "API 크레딧이 부족합니다. OpenAI 계정에서 크레딧을 확인해주세요.",
}
TRANSCRIPTION_FAILED_PLACEHOLDER = "음성 인식 실패: {reason}"
UNSUPPORTED_PLACEHOLDER = "[{name} - 지원하지 않는 파일 형식입니다.]"
READ_FAILED_PLACEHOLDER = "[파일 처리 실패: {name}]"


class AnalysisInputError(ValueError):
    """The request cannot be analysed at all; nothing is committed."""


class NoExtractableTextError(AnalysisInputError):
    pass


class ExtractionKind(str, Enum):
    CONTENT = "content"
    TRANSCRIPT = "transcript"
    TRANSCRIPTION_FAILED = "transcription_failed"
    UNSUPPORTED = "unsupported"
    ERROR = "error"


@dataclass(frozen=True)
class ExtractedText:
    file_name: str
    text: str
    kind: ExtractionKind

    @property
    def extractable(self) -> bool:
        return self.kind in (ExtractionKind.CONTENT, ExtractionKind.TRANSCRIPT) and bool(self.text.strip())


def _extension(name: str) -> str:
    return os.path.splitext(name or "")[1].lower()


def is_text_file(upload: UploadedFile) -> bool:
    return (upload.mime_type or "").startswith("text/") or _extension(upload.name) in TEXT_EXTENSIONS


def is_media_file(upload: UploadedFile) -> bool:
    mime = upload.mime_type or ""
    return (
        mime.startswith("audio/")
        or mime.startswith("video/")
        or _extension(upload.name) in MEDIA_EXTENSIONS
    )


def describe_transcription_failure(exc: TranscriptionProviderError) -> str:
    return TRANSCRIPTION_FAILURE_MESSAGES.get(exc.kind) or str(exc) or type(exc).__name__


class TextExtractionService:
    """Turns each uploaded file into exactly one text entry, in input order.

    A file that cannot be read or transcribed contributes a placeholder
    string instead of aborting the batch.
    """

    def __init__(
        self,
        storage: StorageBackend,
        transcriber: Optional[TranscriptionProvider],
        language: Optional[str] = "ko",
    ) -> None:
        self._storage = storage
        self._transcriber = transcriber
        self._language = language
        self._logger = logging.getLogger("insight.extraction")

    def extract(self, files: Sequence[UploadedFile]) -> list[ExtractedText]:
        return [self.extract_one(upload) for upload in files]

    def extract_one(self, upload: UploadedFile) -> ExtractedText:
        try:
            if is_text_file(upload):
                content = self._storage.get(upload.storage_key).decode("utf-8", errors="replace")
                return ExtractedText(upload.name, content, ExtractionKind.CONTENT)
            if is_media_file(upload):
                return self._transcribe(upload)
        except StorageError as exc:
            self._logger.warning("File processing failed: %s error=%s", upload.name, exc)
            return ExtractedText(
                upload.name, READ_FAILED_PLACEHOLDER.format(name=upload.name), ExtractionKind.ERROR
            )
        except Exception as exc:
            self._logger.exception("File processing failed unexpectedly: %s error=%s", upload.name, exc)
            return ExtractedText(
                upload.name, READ_FAILED_PLACEHOLDER.format(name=upload.name), ExtractionKind.ERROR
            )

        self._logger.info("Unsupported file skipped: %s (%s)", upload.name, upload.mime_type)
        return ExtractedText(
            upload.name, UNSUPPORTED_PLACEHOLDER.format(name=upload.name), ExtractionKind.UNSUPPORTED
        )

    def _transcribe(self, upload: UploadedFile) -> ExtractedText:
        size_mb = upload.size / 1024 / 1024
        try:
            if self._transcriber is None:
                raise TranscriptionProviderError(
                    "No transcription service configured",
                    TranscriptionErrorKind.MISSING_CREDENTIALS,
                )
            audio = self._storage.get(upload.storage_key)
            transcript = self._transcriber.transcribe(audio, upload.name, self._language)
        except TranscriptionProviderError as exc:
            reason = describe_transcription_failure(exc)
            self._logger.warning(
                "Transcription failed: file=%s size_mb=%.2f mime=%s kind=%s detail=%s",
                upload.name,
                size_mb,
                upload.mime_type,
                exc.kind.value,
                exc,
            )
            return ExtractedText(
                upload.name,
                TRANSCRIPTION_FAILED_PLACEHOLDER.format(reason=reason),
                ExtractionKind.TRANSCRIPTION_FAILED,
            )

        self._logger.info(
            "Transcription ok: file=%s size_mb=%.2f chars=%d", upload.name, size_mb, len(transcript)
        )
        return ExtractedText(upload.name, transcript, ExtractionKind.TRANSCRIPT)


def ensure_extractable(files: Sequence[UploadedFile], extracted: Sequence[ExtractedText]) -> None:
    """Reject a batch with no usable text, unless it carries audio or video.

    Media files may legitimately yield only failure placeholders; the
    analysis then proceeds on whatever partial text exists.
    """
    if any(entry.extractable for entry in extracted):
        return
    if any(is_media_file(upload) for upload in files):
        return
    raise NoExtractableTextError("텍스트를 추출할 수 있는 파일이 없습니다.")
