from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field

from app.services.models import AnalysisRecord, LearnedData

HISTORY_FILENAME = "analysis_history.json"
LEARNED_DATA_FILENAME = "learned_data.json"


class SnapshotError(RuntimeError):
    pass


@dataclass
class Snapshot:
    records: list[AnalysisRecord] = field(default_factory=list)
    learned_data: LearnedData = field(default_factory=LearnedData.empty)


class SnapshotStore:
    """Full-snapshot persistence of the history and its aggregates."""

    def __init__(self, data_dir: str) -> None:
        self._data_dir = data_dir
        self._logger = logging.getLogger("insight.snapshot")

    @property
    def history_path(self) -> str:
        return os.path.join(self._data_dir, HISTORY_FILENAME)

    @property
    def learned_data_path(self) -> str:
        return os.path.join(self._data_dir, LEARNED_DATA_FILENAME)

    def _read_json(self, path: str):
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            self._logger.warning("Failed to read snapshot file: %s error=%s", path, exc)
            return None

    def load(self) -> Snapshot:
        snapshot = Snapshot()
        history = self._read_json(self.history_path)
        if isinstance(history, list):
            for item in history:
                try:
                    snapshot.records.append(AnalysisRecord.from_dict(item))
                except (KeyError, TypeError, AttributeError) as exc:
                    self._logger.warning("Skipping malformed history entry: %s", exc)
            self._logger.info("Loaded %d history records", len(snapshot.records))

        learned = self._read_json(self.learned_data_path)
        if isinstance(learned, dict):
            snapshot.learned_data = LearnedData.from_dict(learned)
        return snapshot

    def _write_json(self, path: str, payload) -> None:
        temp_path = f"{path}.tmp"
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        os.replace(temp_path, path)

    def save(self, snapshot: Snapshot) -> None:
        try:
            os.makedirs(self._data_dir, exist_ok=True)
            self._write_json(self.history_path, [r.to_dict() for r in snapshot.records])
            self._write_json(self.learned_data_path, snapshot.learned_data.to_dict())
        except OSError as exc:
            raise SnapshotError(f"Failed to persist snapshot: {exc}") from exc
