from __future__ import annotations

import json
import logging
import time
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.services.heuristics import analyze_heuristically
from app.services.llm.base import BaseLLMProvider, LLMProvider, LLMProviderError, extract_json_object
from app.services.models import (
    AnalysisOutcome,
    AnalysisResult,
    AnalysisStatus,
    Keyword,
    Sentiment,
    Speaker,
)
from app.services.roles import is_valid_speaker_name


def _to_int(value: Any, default: int = 0) -> int:
    try:
        return int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default


class SpeakerPayload(BaseModel):
    name: str
    count: int = 0
    percentage: int = 0

    @field_validator("count", "percentage", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int:
        return max(0, _to_int(value))


class KeywordPayload(BaseModel):
    word: str
    count: int = 1

    @field_validator("count", mode="before")
    @classmethod
    def _coerce_count(cls, value: Any) -> int:
        return max(1, _to_int(value, 1))


class SentimentPayload(BaseModel):
    positive: float = 0
    negative: float = 0
    neutral: float = 0

    @field_validator("positive", "negative", "neutral", mode="before")
    @classmethod
    def _coerce_number(cls, value: Any) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return 0.0

    def to_sentiment(self) -> Sentiment:
        values = (self.positive, self.negative, self.neutral)
        # The prompt asks for 0-1 fractions; some models answer in percent.
        scale = 100 if max(values) <= 1 else 1
        positive, negative, neutral = (min(100, max(0, int(round(v * scale)))) for v in values)
        return Sentiment(positive=positive, negative=negative, neutral=neutral)


class ModelAnalysisPayload(BaseModel):
    """Shape the model is asked to return. Lenient on input, strict on output."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    summary: str = ""
    speakers: list[SpeakerPayload] = Field(default_factory=list)
    keywords: list[KeywordPayload] = Field(default_factory=list)
    sentiment: SentimentPayload = Field(default_factory=SentimentPayload)
    key_points: list[str] = Field(default_factory=list, alias="keyPoints")

    @field_validator("summary", mode="before")
    @classmethod
    def _coerce_summary(cls, value: Any) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("speakers", mode="before")
    @classmethod
    def _coerce_speakers(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [
            dict(item, name=str(item.get("name") or "")) if isinstance(item, dict) else {"name": str(item)}
            for item in value
        ]

    @field_validator("keywords", mode="before")
    @classmethod
    def _coerce_keywords(cls, value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [
            dict(item, word=str(item.get("word") or "")) if isinstance(item, dict) else {"word": str(item)}
            for item in value
        ]

    @field_validator("sentiment", mode="before")
    @classmethod
    def _coerce_sentiment(cls, value: Any) -> dict:
        return value if isinstance(value, dict) else {}

    @field_validator("key_points", mode="before")
    @classmethod
    def _coerce_key_points(cls, value: Any) -> list:
        if value is None:
            return []
        if isinstance(value, list):
            return [str(item) for item in value]
        if isinstance(value, dict):
            return [str(item) for item in value.values()]
        return [str(value)]

    def to_result(self) -> AnalysisResult:
        speakers = tuple(
            Speaker(name=s.name.strip(), count=s.count, percentage=min(100, s.percentage))
            for s in self.speakers
            if is_valid_speaker_name(s.name)
        )
        return AnalysisResult(
            summary=self.summary,
            speakers=speakers,
            keywords=tuple(Keyword(word=k.word.strip(), count=k.count) for k in self.keywords if k.word.strip()),
            sentiment=self.sentiment.to_sentiment(),
            key_points=tuple(self.key_points),
        )


def parse_model_response(raw: str) -> AnalysisResult:
    """Turn free-form model output into a validated ``AnalysisResult``.

    Raises:
        LLMProviderError: no balanced JSON object in ``raw``.
        json.JSONDecodeError: the extracted block is not valid JSON.
        pydantic.ValidationError: the JSON is not an object of the right shape.
    """
    candidate = extract_json_object(raw)
    parsed = json.loads(candidate)
    return ModelAnalysisPayload.model_validate(parsed).to_result()


class AnalysisService:
    """Meeting analysis through the language model with heuristic fallback.

    ``analyze`` walks health check, generation, parsing and validation in
    that order. Any failure along the way hands the full text to the
    heuristic analyzer, so callers always receive a result.
    """

    def __init__(self, provider: Optional[LLMProvider], enabled: bool = True) -> None:
        self._provider = provider
        self._enabled = enabled and provider is not None
        self._logger = logging.getLogger("insight.analysis")

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _prompt(self, text: str) -> str:
        if isinstance(self._provider, BaseLLMProvider):
            return self._provider.analysis_prompt(text)
        return BaseLLMProvider.PROMPTS["analyze_meeting"].format(text=text)

    def analyze(self, text: str) -> AnalysisOutcome:
        text = text or ""
        if not self._enabled:
            self._logger.info("Model analysis disabled; using heuristic analysis")
            return self._fallback(text, "disabled")

        started = time.perf_counter()
        try:
            if not self._provider.health_check():
                return self._fallback(text, "model service unreachable")
            raw = self._provider.generate(self._prompt(text))
            self._logger.debug("Model raw response: %s", raw[:2000])
            result = parse_model_response(raw)
        except LLMProviderError as exc:
            self._logger.warning("Model analysis failed: %s", exc)
            return self._fallback(text, str(exc))
        except Exception as exc:
            self._logger.warning("Model response rejected: %s: %s", type(exc).__name__, exc)
            return self._fallback(text, f"invalid model response: {type(exc).__name__}")

        self._logger.info(
            "Model analysis complete: speakers=%d keywords=%d elapsed_ms=%d",
            len(result.speakers),
            len(result.keywords),
            (time.perf_counter() - started) * 1000,
        )
        return AnalysisOutcome(status=AnalysisStatus.SUCCESS, result=result)

    def analyze_meeting(self, text: str) -> AnalysisResult:
        return self.analyze(text).result

    def _fallback(self, text: str, reason: str) -> AnalysisOutcome:
        try:
            result = analyze_heuristically(text)
        except Exception as exc:
            self._logger.exception("Heuristic analysis failed: %s", exc)
            return AnalysisOutcome(
                status=AnalysisStatus.FAILURE,
                result=AnalysisResult.empty(),
                reason=f"{reason}; heuristic analysis failed: {exc}",
            )
        return AnalysisOutcome(status=AnalysisStatus.DEGRADED, result=result, reason=reason)

    def warm_up(self) -> None:
        """Issue one throwaway generation so the first real request is not a cold start."""
        if not self._enabled:
            return
        started = time.perf_counter()
        try:
            if not self._provider.health_check():
                return
            self._provider.generate(
                BaseLLMProvider.PROMPTS["warm_up"], BaseLLMProvider.PROMPTS["warm_up_system"]
            )
        except Exception as exc:
            self._logger.warning("Model warm-up failed: %s", exc)
            return
        self._logger.info("Model warm-up complete (%dms)", (time.perf_counter() - started) * 1000)
