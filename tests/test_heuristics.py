import pytest

from app.services.heuristics import (
    MAX_KEYWORDS,
    KEYWORD_LEXICON,
    SPEAKER_RULES,
    analyze_heuristically,
    collect_speaker_candidates,
    extract_keywords,
    extract_speakers,
    score_sentiment,
)

TRANSCRIPT = (
    "김민수 팀장: 프로젝트 일정이 지연되고 있습니다.\n"
    "이영희 대리: 고객 요구사항은 완료되었습니다.\n"
    "김민수 팀장: 다음 주까지 마무리합시다."
)


def test_label_style_speakers_counted_and_ranked():
    speakers = extract_speakers(TRANSCRIPT)

    assert [s.name for s in speakers] == ["김민수 팀장", "이영희 대리"]
    assert [s.count for s in speakers] == [2, 1]
    assert [s.percentage for s in speakers] == [67, 33]


def test_parenthesised_title_becomes_canonical_label():
    text = "회의 시작. 김민수 (팀장) 의견을 말했다. 다시 김민수 (팀장) 정리."

    speakers = extract_speakers(text)

    assert len(speakers) == 1
    assert speakers[0].name == "김민수 팀장"
    assert speakers[0].count == 2
    assert speakers[0].percentage == 100


def test_title_before_name():
    speakers = extract_speakers("팀장 김민수: 시작하겠습니다.")

    assert [(s.name, s.count) for s in speakers] == [("김민수 팀장", 1)]


def test_title_followed_by_ordinary_words_is_not_a_speaker():
    assert extract_speakers("팀장 회의에서 결정했습니다.") == []


def test_labels_without_title_are_dropped():
    text = "진행자 안내: 시작합니다\n홍길동: 네"

    candidates = collect_speaker_candidates(text)
    assert "홍길동" in candidates

    names = [s.name for s in extract_speakers(text)]
    assert "홍길동" not in names


def test_every_rule_has_a_name():
    assert [rule.name for rule in SPEAKER_RULES] == ["label", "name_role", "role_name"]


def test_keywords_sorted_by_count_and_capped():
    text = " ".join(["데이터"] * 5 + ["고객"] * 2 + list(KEYWORD_LEXICON[:20]))

    keywords = extract_keywords(text)

    assert len(keywords) == MAX_KEYWORDS
    assert keywords[0].word == "데이터"
    counts = [k.count for k in keywords]
    assert counts == sorted(counts, reverse=True)
    assert keywords[0].weight == keywords[0].count * 10


@pytest.mark.parametrize(
    "text, expected",
    [
        ("", (30, 15, 55)),
        ("프로젝트가 성공했습니다", (60, 15, 25)),
        ("일정 지연 문제", (30, 25, 45)),
        ("완료는 했지만 문제가 있었다", (60, 25, 15)),
    ],
)
def test_sentiment_markers(text, expected):
    sentiment = score_sentiment(text)

    assert (sentiment.positive, sentiment.negative, sentiment.neutral) == expected
    assert sentiment.positive + sentiment.negative + sentiment.neutral == 100


def test_analyze_transcript():
    result = analyze_heuristically(TRANSCRIPT)

    assert result.summary == "기본 분석: 16단어, 2명의 참석자가 확인되었습니다."
    assert result.key_points == (
        "총 16단어 추출",
        "2명의 참석자 확인",
        "기본 키워드 분석 완료",
        "기본 감성 분석 완료",
    )
    assert {"프로젝트", "고객"} <= {k.word for k in result.keywords}
    assert (result.sentiment.positive, result.sentiment.negative, result.sentiment.neutral) == (60, 25, 15)


def test_analyze_empty_text():
    result = analyze_heuristically("")

    assert result.summary == "기본 분석: 0단어, 참석자 정보가 확인되지 않았습니다."
    assert result.speakers == ()
    assert result.keywords == ()
    assert result.key_points[1] == "참석자 정보 없음"
    assert result.sentiment.positive + result.sentiment.negative + result.sentiment.neutral == 100
