import json
import os

from app.services.history_store import HistoryStore
from app.services.models import (
    AnalysisRecord,
    AnalysisResult,
    FileRef,
    Keyword,
    Sentiment,
    Speaker,
)
from app.services.snapshot import SnapshotError, SnapshotStore


def make_record(record_id, *uploads, keywords=(), speakers=(), positive=60):
    return AnalysisRecord(
        id=record_id,
        date="2024-05-01T10:00:00.000Z",
        files=tuple(FileRef.from_upload(u) for u in uploads),
        extracted_texts=("text",) * len(uploads),
        analysis_results=AnalysisResult(
            summary=f"summary {record_id}",
            speakers=tuple(speakers),
            keywords=tuple(keywords),
            sentiment=Sentiment(positive=positive, negative=100 - positive - 10, neutral=10),
            key_points=("point",),
        ),
    )


def test_cap_keeps_most_recent_ten(history, put_file, storage):
    for index in range(15):
        evicted = history.add(make_record(f"r{index}", put_file(f"f{index}.txt", b"x")))
        if index >= 10:
            assert [r.id for r in evicted] == [f"r{index - 10}"]

    ids = [r.id for r in history.all_records()]
    assert ids == [f"r{i}" for i in range(14, 4, -1)]
    # Evicted records lose their history entry but their files stay stored.
    assert len(storage.list()) == 15


def test_records_with_missing_files_are_hidden(history, put_file, storage):
    kept = put_file("kept.txt", b"x")
    lost = put_file("lost.txt", b"x")
    history.add(make_record("a", kept))
    history.add(make_record("b", lost))

    storage.delete(lost.storage_key)

    assert [r.id for r in history.list_valid()] == ["a"]
    assert history.get("b") is None
    assert history.get("a").id == "a"
    assert history.learned_data().total_meetings == 1
    # Hidden, not removed, until reconcile runs.
    assert len(history.all_records()) == 2


def test_record_without_files_is_invalid(history, put_file):
    put_file("other.txt", b"x")
    history.add(make_record("empty"))

    assert history.list_valid() == []


def test_delete_is_idempotent_and_removes_files(history, put_file, storage):
    upload = put_file("a.txt", b"x")
    history.add(make_record("a", upload))

    assert history.delete("a") is True
    assert not storage.exists(upload.storage_key)
    assert history.delete("a") is False
    assert history.delete("never-existed") is False
    assert history.all_records() == []


def test_reconcile_drops_invalid_records(history, put_file, storage):
    a = put_file("a.txt", b"x")
    b = put_file("b.txt", b"x")
    history.add(make_record("a", a))
    history.add(make_record("b", b))
    storage.delete(b.storage_key)

    assert history.reconcile() == 1
    assert [r.id for r in history.all_records()] == ["a"]
    assert history.reconcile() == 0


def test_reconcile_with_empty_storage_clears_history(history, put_file, storage):
    history.add(make_record("a", put_file("a.txt", b"x")))
    history.add(make_record("b", put_file("b.txt", b"x")))
    for key in storage.list():
        storage.delete(key)

    assert history.reconcile() == 2
    assert history.all_records() == []
    assert history.learned_data().total_meetings == 0


def test_delete_all_wipes_storage_and_history(history, put_file, storage):
    history.add(make_record("a", put_file("a.txt", b"x")))
    put_file("orphan.txt", b"x")

    assert history.delete_all() == 2
    assert storage.list() == []
    assert history.all_records() == []
    assert history.stored_learned_data().total_meetings == 0


def test_state_survives_restart(storage, snapshots, put_file):
    first = HistoryStore(storage, snapshots)
    first.add(make_record("a", put_file("a.txt", b"x"), keywords=(Keyword("회의", 2),)))

    second = HistoryStore(storage, snapshots)
    second.load()

    assert [r.id for r in second.all_records()] == ["a"]
    assert second.learned_data().common_keywords == (Keyword("회의", 2),)
    with open(snapshots.learned_data_path, encoding="utf-8") as f:
        assert json.load(f)["totalMeetings"] == 1


def test_load_reconciles_and_reads_legacy_file_keys(storage, snapshots, put_file):
    upload = put_file("legacy.txt", b"x", key="legacy-upload.txt")
    os.makedirs(os.path.dirname(snapshots.history_path), exist_ok=True)
    legacy = [
        {
            "id": "old",
            "date": "2024-01-01T00:00:00.000Z",
            "files": [{"name": "legacy.txt", "size": 1, "type": "text/plain", "serverFilename": upload.storage_key}],
            "extractedTexts": ["x"],
            "analysisResults": {"summary": "s", "speakers": [], "keywords": [], "sentiment": {}, "keyPoints": []},
        },
        {
            "id": "stale",
            "date": "2024-01-01T00:00:00.000Z",
            "files": [{"name": "gone.txt", "size": 1, "type": "text/plain", "serverFilename": "gone.txt"}],
            "extractedTexts": ["x"],
            "analysisResults": {},
        },
    ]
    with open(snapshots.history_path, "w", encoding="utf-8") as f:
        json.dump(legacy, f)

    store = HistoryStore(storage, snapshots)
    store.load()

    assert [r.id for r in store.all_records()] == ["old"]


def test_corrupt_snapshot_loads_as_empty(storage, snapshots):
    os.makedirs(os.path.dirname(snapshots.history_path), exist_ok=True)
    with open(snapshots.history_path, "w", encoding="utf-8") as f:
        f.write("{not json")

    store = HistoryStore(storage, snapshots)
    store.load()

    assert store.all_records() == []


class FailingSnapshots(SnapshotStore):
    def save(self, snapshot):
        raise SnapshotError("disk full")


def test_persistence_failure_keeps_memory_state(storage, tmp_path, put_file):
    store = HistoryStore(storage, FailingSnapshots(str(tmp_path / "data")))

    store.add(make_record("a", put_file("a.txt", b"x")))

    assert [r.id for r in store.all_records()] == ["a"]


def test_learned_data_tracks_speakers(history, put_file):
    history.add(
        make_record(
            "a",
            put_file("a.txt", b"x"),
            speakers=(Speaker("김민수 팀장", 3, 75), Speaker("Speaker 1", 1, 25)),
        )
    )

    patterns = history.learned_data().speaker_patterns

    assert [(p.name, p.role, p.role_band, p.frequency) for p in patterns] == [
        ("김민수 팀장", "팀장", "고급관리자", 75)
    ]


def _write_history(snapshots, entries):
    os.makedirs(os.path.dirname(snapshots.history_path), exist_ok=True)
    with open(snapshots.history_path, "w", encoding="utf-8") as f:
        f.write(json.dumps(entries, ensure_ascii=False))


def test_load_drops_invalid_speaker_names(storage, snapshots, put_file):
    upload = put_file("old.txt", b"x", key="old-upload.txt")
    _write_history(
        snapshots,
        [
            {
                "id": "old",
                "date": "2024-01-01T00:00:00.000Z",
                "files": [{"name": "old.txt", "size": 1, "type": "text/plain", "storageKey": upload.storage_key}],
                "extractedTexts": ["x"],
                "analysisResults": {
                    "speakers": [
                        {"name": "김 팀장", "count": 1, "percentage": 50},
                        {"name": "김민수 팀장", "count": 1, "percentage": 50},
                    ],
                },
            }
        ],
    )

    store = HistoryStore(storage, snapshots)
    store.load()

    [record] = store.all_records()
    assert [s.name for s in record.analysis_results.speakers] == ["김민수 팀장"]


def test_load_tolerates_out_of_range_numbers(storage, snapshots, put_file):
    upload = put_file("big.txt", b"x", key="big-upload.txt")
    # json.dumps writes float("inf") as Infinity, which json.load reads back
    _write_history(
        snapshots,
        [
            {
                "id": "big",
                "date": "2024-01-01T00:00:00.000Z",
                "files": [{"name": "big.txt", "size": float("inf"), "type": "text/plain", "storageKey": upload.storage_key}],
                "extractedTexts": ["x"],
                "analysisResults": {"sentiment": {"positive": float("inf"), "negative": 0, "neutral": 0}},
            }
        ],
    )

    store = HistoryStore(storage, snapshots)
    store.load()

    [record] = store.all_records()
    assert record.files[0].size == 0
    assert record.analysis_results.sentiment.positive == 0
