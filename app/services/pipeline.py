from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from app.services.analysis import AnalysisService
from app.services.extraction import (
    AnalysisInputError,
    ExtractedText,
    ExtractionKind,
    TextExtractionService,
    ensure_extractable,
)
from app.services.history_store import HistoryStore
from app.services.models import (
    AnalysisOutcome,
    AnalysisRecord,
    AnalysisResult,
    FileRef,
    LearnedData,
    UploadedFile,
)
from app.services.storage.base import StorageBackend


@dataclass(frozen=True)
class AnalysisRun:
    record: AnalysisRecord
    outcome: AnalysisOutcome

    @property
    def result(self) -> AnalysisResult:
        return self.outcome.result


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class AnalysisPipeline:
    """Files in, analysis record out.

    Extraction and model calls run outside the history lock; only the final
    insert (with its recompute and persist) is serialised by the store.
    """

    def __init__(
        self,
        extraction: TextExtractionService,
        analysis: AnalysisService,
        history: HistoryStore,
        storage: StorageBackend,
    ) -> None:
        self._extraction = extraction
        self._analysis = analysis
        self._history = history
        self._storage = storage
        self._logger = logging.getLogger("insight.pipeline")

    def run_analysis(
        self,
        files: Sequence[UploadedFile],
        extracted_texts: Optional[Sequence[str]] = None,
    ) -> AnalysisRun:
        """Analyse one batch of uploaded files and record the result.

        Args:
            files: Uploaded files, already persisted by the storage backend
            extracted_texts: Optional per-file texts, in file order, that
                replace extraction (e.g. transcripts produced elsewhere)

        Raises:
            AnalysisInputError: no files, a hint of the wrong length, or no
                usable text. The batch's stored files are removed first.
        """
        if not files:
            raise AnalysisInputError("업로드된 파일이 없습니다.")

        try:
            extracted = self._extract(files, extracted_texts)
            ensure_extractable(files, extracted)
        except AnalysisInputError as exc:
            self._logger.warning("Analysis rejected: %s", exc)
            self._discard(files)
            raise

        texts = [entry.text for entry in extracted]
        started = time.perf_counter()
        outcome = self._analysis.analyze("\n\n".join(texts))
        self._logger.info(
            "Analysis finished: files=%d status=%s reason=%s elapsed_ms=%d",
            len(files),
            outcome.status.value,
            outcome.reason,
            (time.perf_counter() - started) * 1000,
        )

        record = AnalysisRecord(
            id=str(uuid.uuid4()),
            date=_utc_now(),
            files=tuple(FileRef.from_upload(f) for f in files),
            extracted_texts=tuple(texts),
            analysis_results=outcome.result,
        )
        self._history.add(record)
        return AnalysisRun(record=record, outcome=outcome)

    def _extract(
        self, files: Sequence[UploadedFile], hint: Optional[Sequence[str]]
    ) -> list[ExtractedText]:
        if hint is None:
            return self._extraction.extract(files)
        if len(hint) != len(files):
            raise AnalysisInputError(
                f"Expected {len(files)} extracted texts, got {len(hint)}"
            )
        return [
            ExtractedText(upload.name, str(text), ExtractionKind.CONTENT)
            for upload, text in zip(files, hint)
        ]

    def _discard(self, files: Sequence[UploadedFile]) -> None:
        for upload in files:
            self._storage.delete(upload.storage_key)

    def list_valid_history(self) -> list[AnalysisRecord]:
        return self._history.list_valid()

    def get_record(self, record_id: str) -> Optional[AnalysisRecord]:
        return self._history.get(record_id)

    def get_learned_data(self) -> LearnedData:
        return self._history.learned_data()

    def delete_record(self, record_id: str) -> bool:
        return self._history.delete(record_id)

    def delete_all_records(self) -> int:
        return self._history.delete_all()

    def reconcile(self) -> int:
        return self._history.reconcile()
