from app.services.transcription.base import (
    TranscriptionErrorKind,
    TranscriptionProvider,
    TranscriptionProviderError,
)
from app.services.transcription.openai_whisper import OpenAIWhisperProvider

__all__ = [
    "TranscriptionErrorKind",
    "TranscriptionProvider",
    "TranscriptionProviderError",
    "OpenAIWhisperProvider",
]
