from __future__ import annotations

import logging
import time

import requests

from app.services.transcription.base import (
    TranscriptionErrorKind,
    TranscriptionProvider,
    TranscriptionProviderError,
)


class OpenAIWhisperProvider(TranscriptionProvider):
    """Transcription through the OpenAI audio transcription endpoint."""

    def __init__(
        self,
        api_key: str | None,
        model: str = "whisper-1",
        base_url: str = "https://api.openai.com",
        timeout: int = 600,
    ) -> None:
        self._api_key = api_key or ""
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._logger = logging.getLogger("insight.transcription.whisper")

    def transcribe(self, audio: bytes, filename: str, language: str | None = None) -> str:
        if not self._api_key:
            raise TranscriptionProviderError(
                "OpenAI API key is not configured",
                TranscriptionErrorKind.MISSING_CREDENTIALS,
            )

        data = {"model": self._model}
        if language:
            data["language"] = language

        start_time = time.perf_counter()
        try:
            response = requests.post(
                f"{self._base_url}/v1/audio/transcriptions",
                headers={"Authorization": f"Bearer {self._api_key}"},
                data=data,
                files={"file": (filename, audio)},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise TranscriptionProviderError(f"Failed to reach transcription service: {exc}") from exc

        if response.status_code != 200:
            raise self._classify(response)

        try:
            payload = response.json()
        except ValueError as exc:
            raise TranscriptionProviderError("Transcription service returned non-JSON") from exc
        if not isinstance(payload, dict):
            raise TranscriptionProviderError(
                f"Transcription service returned {type(payload).__name__}, expected an object"
            )
        text = str(payload.get("text") or "")
        self._logger.info(
            "Transcribed %s: chars=%d words=%d elapsed_ms=%d",
            filename,
            len(text),
            len(text.split()),
            (time.perf_counter() - start_time) * 1000,
        )
        return text

    @staticmethod
    def _classify(response: requests.Response) -> TranscriptionProviderError:
        message = response.reason or f"HTTP {response.status_code}"
        code = ""
        try:
            error = response.json().get("error") or {}
            message = error.get("message") or message
            code = error.get("code") or error.get("type") or ""
        except (ValueError, AttributeError):
            pass

        if response.status_code == 401:
            return TranscriptionProviderError(message, TranscriptionErrorKind.MISSING_CREDENTIALS)
        if code == "insufficient_quota" or "quota" in message.lower():
            return TranscriptionProviderError(message, TranscriptionErrorKind.QUOTA_EXHAUSTED)
        if response.status_code == 429 or "rate limit" in message.lower():
            return TranscriptionProviderError(message, TranscriptionErrorKind.RATE_LIMITED)
        return TranscriptionProviderError(message)
