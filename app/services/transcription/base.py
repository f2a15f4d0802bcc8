from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum


class TranscriptionErrorKind(str, Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    RATE_LIMITED = "rate_limited"
    QUOTA_EXHAUSTED = "quota_exhausted"
    OTHER = "other"


class TranscriptionProviderError(RuntimeError):
    def __init__(self, message: str, kind: TranscriptionErrorKind = TranscriptionErrorKind.OTHER) -> None:
        super().__init__(message)
        self.kind = kind


class TranscriptionProvider(ABC):
    @abstractmethod
    def transcribe(self, audio: bytes, filename: str, language: str | None = None) -> str:
        """Return the transcript of ``audio``.

        Args:
            audio: Raw bytes of an audio or video file
            filename: Original file name, used by services that sniff the format
            language: ISO-639-1 hint such as ``"ko"``; ``None`` lets the service detect

        Raises:
            TranscriptionProviderError: with ``kind`` set to the failure class
        """
        raise NotImplementedError
