"""Aggregate statistics derived from the valid analysis history.

``recompute`` is a pure function of the record set; nothing here keeps
state between calls.
"""

from __future__ import annotations

from typing import Sequence

from app.services.models import (
    AnalysisRecord,
    Keyword,
    LearnedData,
    SentimentTrend,
    SpeakerPattern,
)
from app.services.roles import infer_role_band, is_valid_speaker_name, match_role

COMMON_KEYWORD_LIMIT = 50
POSITIVE_THRESHOLD = 60
NEUTRAL_THRESHOLD = 40
DEFAULT_TOPIC = "회의"


def top_keywords(records: Sequence[AnalysisRecord], limit: int = COMMON_KEYWORD_LIMIT) -> list[Keyword]:
    totals: dict[str, int] = {}
    for record in records:
        for keyword in record.analysis_results.keywords:
            if not keyword.word:
                continue
            totals[keyword.word] = totals.get(keyword.word, 0) + (keyword.count or 1)
    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [Keyword(word=word, count=count) for word, count in ranked[:limit]]


def speaker_patterns(records: Sequence[AnalysisRecord]) -> list[SpeakerPattern]:
    """One pattern per validated speaker name.

    ``frequency`` is the highest percentage (or count, where no percentage
    was recorded) seen for the name in any single meeting, not a sum.
    """
    patterns: dict[str, SpeakerPattern] = {}
    for record in records:
        for speaker in record.analysis_results.speakers:
            name = speaker.name.strip()
            if not is_valid_speaker_name(name):
                continue
            frequency = speaker.percentage or speaker.count or 0
            previous = patterns.get(name)
            if previous is not None:
                frequency = max(previous.frequency, frequency)
            patterns[name] = SpeakerPattern(
                name=name,
                role=match_role(name) or "",
                role_band=infer_role_band(name),
                frequency=frequency,
            )
    return list(patterns.values())


def sentiment_trends(records: Sequence[AnalysisRecord]) -> list[SentimentTrend]:
    return [
        SentimentTrend(
            date=record.date,
            positive=record.analysis_results.sentiment.positive,
            negative=record.analysis_results.sentiment.negative,
            neutral=record.analysis_results.sentiment.neutral,
        )
        for record in records
    ]


def future_predictions(
    trends: Sequence[SentimentTrend],
    patterns: Sequence[SpeakerPattern],
    keywords: Sequence[Keyword],
) -> list[str]:
    if not trends:
        return []
    average = sum(trend.positive for trend in trends) / len(trends)

    def pick(high: str, mid: str, low: str) -> str:
        if average > POSITIVE_THRESHOLD:
            return high
        if average > NEUTRAL_THRESHOLD:
            return mid
        return low

    lead_band = pick("최고경영진", "고급관리자", "중간관리자")
    lead_frequency = next((p.frequency for p in patterns if p.role_band == lead_band), 0)
    topic = keywords[0].word if keywords else DEFAULT_TOPIC

    return [
        f"향후 회의는 {pick('긍정적', '중립적', '부정적')} 분위기로 진행될 것으로 예측됩니다.",
        f"화자별 발언 패턴 분석 결과, {lead_band} 역할의 참석자가 {lead_frequency}% 비중으로 "
        "주도적인 역할을 할 것으로 예상됩니다.",
        f'주요 키워드 "{topic}"는 향후 회의에서도 핵심 주제로 다뤄질 가능성이 높습니다.',
        f"감성 분석 트렌드를 보면, 회의 분위기가 "
        f"{pick('긍정적으로 유지', '안정적으로 진행', '개선이 필요한')} 추세를 보이고 있어, 향후 "
        f"{pick('건설적인 논의가 지속', '균형잡힌 논의가 이루어질', '건설적인 방향으로 개선될')} "
        "것으로 예측됩니다.",
    ]


def recompute(records: Sequence[AnalysisRecord]) -> LearnedData:
    keywords = top_keywords(records)
    patterns = speaker_patterns(records)
    trends = sentiment_trends(records)
    return LearnedData(
        total_meetings=len(records),
        common_keywords=tuple(keywords),
        speaker_patterns=tuple(patterns),
        sentiment_trends=tuple(trends),
        future_predictions=tuple(future_predictions(trends, patterns, keywords)),
    )
