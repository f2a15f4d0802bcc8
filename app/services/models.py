"""Domain records shared by the analysis pipeline.

Everything here is serialised with the camelCase keys used by the JSON
snapshots and the HTTP API, so ``to_dict()`` output can be written to disk
or returned from a route unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from app.services.roles import is_valid_speaker_name

KEYWORD_WEIGHT = 10


def _int(value: Any, default: int = 0) -> int:
    try:
        return int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default


@dataclass(frozen=True)
class UploadedFile:
    name: str
    size: int
    mime_type: str
    storage_key: str


@dataclass(frozen=True)
class Speaker:
    name: str
    count: int = 0
    percentage: int = 0

    def to_dict(self) -> dict:
        return {"name": self.name, "count": self.count, "percentage": self.percentage}

    @classmethod
    def from_dict(cls, data: Any) -> "Speaker":
        if not isinstance(data, dict):
            return cls(name=str(data).strip())
        return cls(
            name=str(data.get("name", "")).strip(),
            count=_int(data.get("count")),
            percentage=_int(data.get("percentage")),
        )


@dataclass(frozen=True)
class Keyword:
    word: str
    count: int = 1

    @property
    def weight(self) -> int:
        return self.count * KEYWORD_WEIGHT

    def to_dict(self) -> dict:
        return {"word": self.word, "count": self.count, "weight": self.weight}

    @classmethod
    def from_dict(cls, data: Any) -> "Keyword":
        if not isinstance(data, dict):
            return cls(word=str(data).strip())
        return cls(word=str(data.get("word", "")).strip(), count=_int(data.get("count"), 1))


@dataclass(frozen=True)
class Sentiment:
    positive: int = 0
    negative: int = 0
    neutral: int = 0

    def to_dict(self) -> dict:
        return {"positive": self.positive, "negative": self.negative, "neutral": self.neutral}

    @classmethod
    def from_dict(cls, data: Any) -> "Sentiment":
        if not isinstance(data, dict):
            return cls()
        return cls(
            positive=_int(data.get("positive")),
            negative=_int(data.get("negative")),
            neutral=_int(data.get("neutral")),
        )


@dataclass(frozen=True)
class AnalysisResult:
    summary: str
    speakers: tuple[Speaker, ...] = ()
    keywords: tuple[Keyword, ...] = ()
    sentiment: Sentiment = field(default_factory=Sentiment)
    key_points: tuple[str, ...] = ()

    @classmethod
    def empty(cls) -> "AnalysisResult":
        return cls(summary="")

    def to_dict(self) -> dict:
        return {
            "summary": self.summary,
            "speakers": [s.to_dict() for s in self.speakers],
            "keywords": [k.to_dict() for k in self.keywords],
            "sentiment": self.sentiment.to_dict(),
            "keyPoints": list(self.key_points),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisResult":
        data = data or {}
        return cls(
            summary=str(data.get("summary") or ""),
            speakers=tuple(
                speaker
                for speaker in (Speaker.from_dict(s) for s in data.get("speakers") or [])
                if is_valid_speaker_name(speaker.name)
            ),
            keywords=tuple(Keyword.from_dict(k) for k in data.get("keywords") or []),
            sentiment=Sentiment.from_dict(data.get("sentiment")),
            key_points=tuple(str(p) for p in data.get("keyPoints") or []),
        )


@dataclass(frozen=True)
class FileRef:
    """A history record's reference to an object held by the storage backend."""

    name: str
    size: int
    type: str
    storage_key: str

    @classmethod
    def from_upload(cls, upload: UploadedFile) -> "FileRef":
        return cls(
            name=upload.name,
            size=upload.size,
            type=upload.mime_type,
            storage_key=upload.storage_key,
        )

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "size": self.size,
            "type": self.type,
            "storageKey": self.storage_key,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileRef":
        name = str(data.get("name", ""))
        # Snapshots written before storage keys were introduced carry
        # ``serverFilename`` (or only ``name``) instead.
        key = data.get("storageKey") or data.get("serverFilename") or name
        return cls(
            name=name,
            size=_int(data.get("size")),
            type=str(data.get("type") or ""),
            storage_key=str(key),
        )


@dataclass(frozen=True)
class AnalysisRecord:
    id: str
    date: str
    files: tuple[FileRef, ...]
    extracted_texts: tuple[str, ...]
    analysis_results: AnalysisResult

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "files": [f.to_dict() for f in self.files],
            "extractedTexts": list(self.extracted_texts),
            "analysisResults": self.analysis_results.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AnalysisRecord":
        files = data.get("files")
        return cls(
            id=str(data["id"]),
            date=str(data.get("date") or ""),
            files=tuple(FileRef.from_dict(f) for f in files if isinstance(f, dict))
            if isinstance(files, list)
            else (),
            extracted_texts=tuple(str(t) for t in data.get("extractedTexts") or []),
            analysis_results=AnalysisResult.from_dict(data.get("analysisResults") or {}),
        )


@dataclass(frozen=True)
class SpeakerPattern:
    name: str
    role: str
    role_band: str
    frequency: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "role": self.role,
            "roleBand": self.role_band,
            "frequency": self.frequency,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SpeakerPattern":
        return cls(
            name=str(data.get("name", "")),
            role=str(data.get("role", "")),
            role_band=str(data.get("roleBand", "")),
            frequency=_int(data.get("frequency")),
        )


@dataclass(frozen=True)
class SentimentTrend:
    date: str
    positive: int
    negative: int
    neutral: int

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "positive": self.positive,
            "negative": self.negative,
            "neutral": self.neutral,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SentimentTrend":
        return cls(
            date=str(data.get("date", "")),
            positive=_int(data.get("positive")),
            negative=_int(data.get("negative")),
            neutral=_int(data.get("neutral")),
        )


@dataclass(frozen=True)
class LearnedData:
    total_meetings: int
    common_keywords: tuple[Keyword, ...]
    speaker_patterns: tuple[SpeakerPattern, ...]
    sentiment_trends: tuple[SentimentTrend, ...]
    future_predictions: tuple[str, ...]

    @classmethod
    def empty(cls) -> "LearnedData":
        return cls(0, (), (), (), ())

    def to_dict(self) -> dict:
        return {
            "totalMeetings": self.total_meetings,
            "commonKeywords": [{"word": k.word, "count": k.count} for k in self.common_keywords],
            "speakerPatterns": [p.to_dict() for p in self.speaker_patterns],
            "sentimentTrends": [t.to_dict() for t in self.sentiment_trends],
            "futurePredictions": list(self.future_predictions),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LearnedData":
        data = data or {}
        return cls(
            total_meetings=_int(data.get("totalMeetings")),
            common_keywords=tuple(Keyword.from_dict(k) for k in data.get("commonKeywords") or []),
            speaker_patterns=tuple(
                SpeakerPattern.from_dict(p)
                for p in data.get("speakerPatterns") or []
                if isinstance(p, dict)
            ),
            sentiment_trends=tuple(
                SentimentTrend.from_dict(t)
                for t in data.get("sentimentTrends") or []
                if isinstance(t, dict)
            ),
            future_predictions=tuple(str(p) for p in data.get("futurePredictions") or []),
        )


class AnalysisStatus(str, Enum):
    SUCCESS = "success"
    DEGRADED = "degraded"
    FAILURE = "failure"


@dataclass(frozen=True)
class AnalysisOutcome:
    """Result of one analysis attempt.

    ``SUCCESS`` means the language model produced the result, ``DEGRADED``
    that the heuristic analyzer did (``reason`` says why), and ``FAILURE``
    that neither could; ``result`` is then an empty analysis.
    """

    status: AnalysisStatus
    result: AnalysisResult
    reason: Optional[str] = None

    @property
    def used_model(self) -> bool:
        return self.status is AnalysisStatus.SUCCESS
