"""Pytest configuration helpers."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Iterator, Optional

import pytest
from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parent.parent
root_str = str(PROJECT_ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from app.main import create_app
from app.services.history_store import HistoryStore
from app.services.llm.base import BaseLLMProvider, LLMProviderError
from app.services.models import UploadedFile
from app.services.snapshot import SnapshotStore
from app.services.storage.local import LocalStorage
from app.services.transcription.base import (
    TranscriptionErrorKind,
    TranscriptionProvider,
    TranscriptionProviderError,
)


class StubLLMProvider(BaseLLMProvider):
    """Scripted model: returns ``response`` or raises ``error``."""

    def __init__(
        self,
        response: str = "",
        *,
        reachable: bool = True,
        error: Optional[Exception] = None,
    ) -> None:
        super().__init__(logger_name="insight.llm.stub")
        self.response = response
        self.reachable = reachable
        self.error = error
        self.prompts: list[str] = []

    def health_check(self) -> bool:
        return self.reachable

    def generate(self, prompt: str, system_prompt: str = "") -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.response

    def describe(self) -> dict:
        return {"host": "stub", "model": "stub-model"}


class StubTranscriber(TranscriptionProvider):
    def __init__(self, transcript: str = "", kind: Optional[TranscriptionErrorKind] = None) -> None:
        self.transcript = transcript
        self.kind = kind
        self.calls: list[tuple[str, Optional[str]]] = []

    def transcribe(self, audio: bytes, filename: str, language: Optional[str] = None) -> str:
        self.calls.append((filename, language))
        if self.kind is not None:
            raise TranscriptionProviderError(f"stub failure: {self.kind.value}", self.kind)
        return self.transcript


ENV_OVERRIDES = (
    "USE_OLLAMA",
    "OLLAMA_HOST",
    "OLLAMA_MODEL",
    "OLLAMA_TIMEOUT_MS",
    "OLLAMA_GENERATE_TIMEOUT_MS",
    "OPENAI_API_KEY",
    "WHISPER_LANGUAGE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(str(tmp_path / "uploads"))


@pytest.fixture()
def snapshots(tmp_path: Path) -> SnapshotStore:
    return SnapshotStore(str(tmp_path / "data"))


@pytest.fixture()
def history(storage: LocalStorage, snapshots: SnapshotStore) -> HistoryStore:
    return HistoryStore(storage, snapshots)


@pytest.fixture()
def put_file(storage: LocalStorage):
    """Store bytes and return the matching ``UploadedFile``."""

    def _put(name: str, data: bytes = b"", mime_type: str = "text/plain", key: Optional[str] = None) -> UploadedFile:
        key = key or f"{len(storage.list())}-{name}"
        storage.put(key, data, mime_type)
        return UploadedFile(name=name, size=len(data), mime_type=mime_type, storage_key=key)

    return _put


@pytest.fixture()
def unreachable_llm() -> StubLLMProvider:
    return StubLLMProvider(reachable=False)


@pytest.fixture()
def app_factory(tmp_path: Path):
    """Build an app rooted in ``tmp_path`` with model warm-up disabled."""

    def _build(
        llm_provider=None,
        transcriber=None,
        config: Optional[dict] = None,
    ):
        data_dir = tmp_path / "data"
        data_dir.mkdir(exist_ok=True)
        merged = {"llm": {"warm_up": False}}
        merged.update(config or {})
        config_path = data_dir / "config.json"
        config_path.write_text(json.dumps(merged), encoding="utf-8")
        return create_app(
            cwd=str(tmp_path),
            config_path=str(config_path),
            llm_provider=llm_provider or StubLLMProvider(reachable=False),
            transcriber=transcriber or StubTranscriber(kind=TranscriptionErrorKind.MISSING_CREDENTIALS),
        )

    return _build


@pytest.fixture()
def client(app_factory) -> Iterator[TestClient]:
    with TestClient(app_factory()) as test_client:
        yield test_client
