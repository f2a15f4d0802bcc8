import json

import pytest

from app.services.analysis import AnalysisService
from app.services.extraction import AnalysisInputError, NoExtractableTextError, TextExtractionService
from app.services.models import AnalysisStatus
from app.services.pipeline import AnalysisPipeline
from app.services.transcription.base import TranscriptionErrorKind

from conftest import StubLLMProvider, StubTranscriber


@pytest.fixture()
def build_pipeline(storage, history):
    def _build(provider=None, transcriber=None):
        return AnalysisPipeline(
            extraction=TextExtractionService(storage, transcriber or StubTranscriber()),
            analysis=AnalysisService(provider or StubLLMProvider(reachable=False)),
            history=history,
            storage=storage,
        )

    return _build


def test_run_records_degraded_analysis(build_pipeline, put_file, history):
    pipeline = build_pipeline()
    notes = put_file("notes.txt", "김민수 팀장: 프로젝트 진행 상황 공유".encode("utf-8"))
    archive = put_file("bundle.zip", b"PK", mime_type="application/zip")

    run = pipeline.run_analysis([notes, archive])

    assert run.outcome.status is AnalysisStatus.DEGRADED
    assert run.record.extracted_texts == (
        "김민수 팀장: 프로젝트 진행 상황 공유",
        "[bundle.zip - 지원하지 않는 파일 형식입니다.]",
    )
    assert [f.storage_key for f in run.record.files] == [notes.storage_key, archive.storage_key]
    assert run.record.date.endswith("Z")
    assert [s.name for s in run.result.speakers] == ["김민수 팀장"]
    assert history.all_records()[0].id == run.record.id


def test_model_sees_joined_texts(build_pipeline, put_file):
    provider = StubLLMProvider(json.dumps({"summary": "ok"}))
    pipeline = build_pipeline(provider=provider)

    run = pipeline.run_analysis([put_file("a.txt", b"first"), put_file("b.txt", b"second")])

    assert run.outcome.status is AnalysisStatus.SUCCESS
    assert "first\n\nsecond" in provider.prompts[0]


def test_extracted_text_hint_skips_extraction(build_pipeline, put_file):
    transcriber = StubTranscriber("unused")
    pipeline = build_pipeline(transcriber=transcriber)
    audio = put_file("call.mp3", b"\x00", mime_type="audio/mpeg")

    run = pipeline.run_analysis([audio], extracted_texts=["미리 받아쓴 내용"])

    assert run.record.extracted_texts == ("미리 받아쓴 내용",)
    assert transcriber.calls == []


def test_hint_length_mismatch_is_rejected_and_files_removed(build_pipeline, put_file, storage):
    upload = put_file("a.txt", b"x")

    with pytest.raises(AnalysisInputError):
        build_pipeline().run_analysis([upload], extracted_texts=["one", "two"])

    assert not storage.exists(upload.storage_key)


def test_no_files_is_rejected(build_pipeline):
    with pytest.raises(AnalysisInputError):
        build_pipeline().run_analysis([])


def test_nothing_extractable_commits_nothing(build_pipeline, put_file, storage, history):
    archive = put_file("bundle.zip", b"PK", mime_type="application/zip")

    with pytest.raises(NoExtractableTextError):
        build_pipeline().run_analysis([archive])

    assert history.all_records() == []
    assert storage.list() == []


def test_failed_transcription_still_analyses(build_pipeline, put_file):
    pipeline = build_pipeline(transcriber=StubTranscriber(kind=TranscriptionErrorKind.RATE_LIMITED))

    run = pipeline.run_analysis([put_file("meeting.wav", b"\x00", mime_type="audio/wav")])

    assert run.record.extracted_texts[0].startswith("음성 인식 실패: ")
    assert run.outcome.status is AnalysisStatus.DEGRADED


def test_facade_operations(build_pipeline, put_file):
    pipeline = build_pipeline()
    first = pipeline.run_analysis([put_file("a.txt", b"alpha")])
    second = pipeline.run_analysis([put_file("b.txt", b"beta")])

    assert [r.id for r in pipeline.list_valid_history()] == [second.record.id, first.record.id]
    assert pipeline.get_record(first.record.id) == first.record
    assert pipeline.get_learned_data().total_meetings == 2
    assert pipeline.delete_record(first.record.id) is True
    assert pipeline.delete_record(first.record.id) is False
    assert pipeline.reconcile() == 0
    assert pipeline.delete_all_records() == 1
    assert pipeline.list_valid_history() == []
