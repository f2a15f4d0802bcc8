from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Optional

from app.services.learned_data import recompute
from app.services.models import AnalysisRecord, LearnedData
from app.services.snapshot import Snapshot, SnapshotError, SnapshotStore
from app.services.storage.base import StorageBackend

DEFAULT_MAX_RECORDS = 10


class HistoryStore:
    """Most-recent-first analysis history, kept consistent with storage.

    A record is valid while every file it references exists in the storage
    backend. Reads skip invalid records; ``reconcile`` removes them for
    good. Every mutation recomputes the aggregates and persists a full
    snapshot while holding the store lock.
    """

    def __init__(
        self,
        storage: StorageBackend,
        snapshots: SnapshotStore,
        max_records: int = DEFAULT_MAX_RECORDS,
    ) -> None:
        self._storage = storage
        self._snapshots = snapshots
        self._max_records = max_records
        self._lock = threading.RLock()
        self._records: list[AnalysisRecord] = []
        self._learned = LearnedData.empty()
        self._logger = logging.getLogger("insight.history")
        self._trace = logging.getLogger("insight.trace")

    def _trace_log(self, stage: str, **fields) -> None:
        payload = " ".join(f"{k}={fields[k]!r}" for k in sorted(fields.keys()))
        self._trace.info("TRACE stage=%s ts=%s %s", stage, datetime.now(timezone.utc).isoformat(), payload)

    @property
    def max_records(self) -> int:
        return self._max_records

    def _is_valid(self, record: AnalysisRecord) -> bool:
        if not record.files:
            return False
        return all(self._storage.exists(f.storage_key) for f in record.files)

    def _valid_records(self) -> list[AnalysisRecord]:
        return [r for r in self._records if self._is_valid(r)]

    def _commit(self) -> None:
        self._learned = recompute(self._valid_records())
        try:
            self._snapshots.save(Snapshot(records=list(self._records), learned_data=self._learned))
        except SnapshotError as exc:
            # The in-memory state stays authoritative until the next successful save.
            self._logger.warning("History persistence failed: %s", exc)

    def load(self) -> None:
        with self._lock:
            snapshot = self._snapshots.load()
            self._records = snapshot.records[: self._max_records]
            self._learned = snapshot.learned_data
            self._logger.info("History loaded: records=%d", len(self._records))
            self._reconcile()

    def add(self, record: AnalysisRecord) -> list[AnalysisRecord]:
        """Prepend ``record``; returns the records evicted by the cap."""
        with self._lock:
            self._records.insert(0, record)
            evicted = self._records[self._max_records :]
            del self._records[self._max_records :]
            if evicted:
                self._logger.info("History cap reached; evicted %s", [r.id for r in evicted])
            self._commit()
            self._trace_log("history_add", record_id=record.id, total=len(self._records))
            return evicted

    def all_records(self) -> list[AnalysisRecord]:
        with self._lock:
            return list(self._records)

    def list_valid(self) -> list[AnalysisRecord]:
        with self._lock:
            return self._valid_records()

    def get(self, record_id: str) -> Optional[AnalysisRecord]:
        with self._lock:
            for record in self._records:
                if record.id == record_id:
                    return record if self._is_valid(record) else None
            return None

    def learned_data(self) -> LearnedData:
        with self._lock:
            return recompute(self._valid_records())

    def stored_learned_data(self) -> LearnedData:
        """The aggregate as of the last mutation (what the snapshot holds)."""
        with self._lock:
            return self._learned

    def reconcile(self) -> int:
        with self._lock:
            return self._reconcile()

    def _reconcile(self) -> int:
        before = len(self._records)
        self._records = self._valid_records()
        removed = before - len(self._records)
        if removed:
            self._logger.info("Reconcile: removed %d records with missing files", removed)

        # Manual wipes of storage leave history pointing at nothing.
        if self._records and not self._storage.list():
            self._logger.info("Reconcile: storage empty, clearing %d records", len(self._records))
            removed += len(self._records)
            self._records = []

        self._commit()
        self._trace_log("history_reconcile", removed=removed, total=len(self._records))
        return removed

    def delete(self, record_id: str) -> bool:
        """Remove a record and its stored files. Unknown ids are not an error."""
        with self._lock:
            index = next((i for i, r in enumerate(self._records) if r.id == record_id), None)
            if index is None:
                self._logger.info("Delete: record %s already gone", record_id)
                return False
            record = self._records.pop(index)
            for ref in record.files:
                if not self._storage.delete(ref.storage_key):
                    self._logger.info("Delete: file %s was not present", ref.storage_key)
            self._commit()
            self._trace_log("history_delete", record_id=record_id, total=len(self._records))
            return True

    def delete_all(self) -> int:
        """Delete every stored object and clear history and aggregates."""
        with self._lock:
            keys = self._storage.list()
            if keys:
                self._storage.delete_many(keys)
            self._records = []
            self._commit()
            self._logger.info("History reset: deleted %d stored files", len(keys))
            return len(keys)
