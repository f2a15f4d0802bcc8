"""Rule-based meeting analysis used when the language model is unavailable.

Everything in this module is deterministic and free of I/O. Speaker
extraction is driven by ``SPEAKER_RULES``; each rule turns a regex match
into a canonical ``"Name Title"`` label plus the literal text it matched,
so the rule table can be tested and extended on its own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

from app.services.models import AnalysisResult, Keyword, Sentiment, Speaker
from app.services.roles import ROLE_TITLES, is_valid_speaker_name

MAX_KEYWORDS = 8

POSITIVE_MARKERS = re.compile("좋|성공|성장|향상|긍정|우수|완료|완성")
NEGATIVE_MARKERS = re.compile("문제|실패|어려움|부정|지연|취소")

_ROLE_ALT = "|".join(re.escape(t) for t in sorted(ROLE_TITLES, key=len, reverse=True))

_RAW_LEXICON = (
    # general business
    "회의", "프로젝트", "시장", "분석", "계획", "고객", "개발", "마케팅", "제품", "서비스",
    "매출", "수익", "비용", "예산", "투자", "자금", "재무", "인사", "채용", "교육",
    "훈련", "성과", "목표", "전략", "전술", "운영", "관리", "품질", "보안", "인프라",
    "시스템", "플랫폼", "솔루션", "아키텍처", "데이터", "정보", "지식", "혁신", "창의성", "효율성",
    "생산성", "협업", "소통", "리더십", "팀워크", "문화", "가치", "미션", "비전", "성장",
    "확장", "글로벌", "국제", "지역", "산업", "섹터", "경쟁", "협력", "파트너십", "네트워크",
    "커뮤니티", "스테이크홀더", "주주", "이해관계자", "고객만족", "고객경험", "브랜드", "이미지", "평판", "신뢰",
    "윤리", "지속가능성", "환경", "사회", "거버넌스", "ESG", "리스크", "위험", "보험", "법무",
    "규정", "정책", "절차", "표준", "가이드라인", "체크리스트", "템플릿", "프로세스", "워크플로우", "자동화",
    "디지털화", "전자화", "온라인", "오프라인", "하이브리드", "원격", "재택", "사무실", "공간",
    "설비", "장비", "도구", "소프트웨어", "하드웨어", "클라우드", "서버", "데이터베이스", "API", "인터페이스",
    # people and organisation
    "사용자", "관리자", "개발자", "테스터", "디자이너", "기획자", "분석가", "컨설턴트", "전문가", "전문직",
    "일반직", "계약직", "정규직", "비정규직", "아르바이트", "인턴", "신입", "경력", "시니어", "주니어",
    "수습", "수습기간", "평가", "성과평가", "인사고과", "승진", "승급", "보상", "급여", "연봉",
    "상여금", "성과급", "스톡옵션", "주식", "지분", "소유권", "경영권", "의결권", "참여권", "감시권",
    # finance and accounting
    "감사", "회계", "세무", "법인세", "부가가치세", "소득세",
    "재무제표", "손익계산서", "재무상태표", "현금흐름표", "자본변동표", "재무비율", "수익성", "안정성", "성장성",
    "유동비율", "부채비율", "ROE", "ROA", "ROI", "EPS", "PER", "PBR", "EV/EBITDA", "현금흐름",
    "운전자본", "자본금", "자본잉여금", "이익잉여금", "자본조정", "자본거래", "자본변동", "자본구조", "자본조달", "자본배분",
    "배당", "배당률", "배당정책", "배당성향", "배당수익률", "배당성장률", "배당안정성", "배당지속성", "배당가능성", "배당의지",
    "기업가치", "주가", "주식가격", "시가총액", "기업가치평가", "DCF", "할인율", "성장률", "영구가치", "잔존가치",
    # corporate structure and channels
    "M&A", "합병", "인수", "매각", "분할", "분사", "지주회사", "자회사", "관계회사", "계열사",
    "전략적제휴", "기술제휴", "마케팅제휴", "유통제휴", "생산제휴", "연구개발제휴", "라이센싱", "프랜차이징", "대리점", "직영점",
    "온라인쇼핑몰", "오프라인매장", "멀티채널", "옴니채널", "크로스채널", "통합마케팅", "디지털마케팅", "소셜마케팅", "콘텐츠마케팅", "바이럴마케팅",
    "인플루언서", "KOL", "키오스크", "자동판매기", "POS", "결제시스템", "전자결제", "모바일결제", "QR결제", "바이오인증",
    # technology
    "블록체인", "암호화폐", "가상화폐", "디지털자산", "NFT", "메타버스", "AI", "머신러닝", "딥러닝", "빅데이터",
    "데이터마이닝", "데이터분석", "통계", "예측", "모델링", "시뮬레이션", "최적화", "알고리즘", "코딩", "프로그래밍",
    "테스트", "디버깅", "배포", "모니터링", "로깅", "백업", "복구", "암호화",
    "인증", "권한", "접근제어", "방화벽", "백신", "백도어", "해킹", "피싱", "랜섬웨어", "스팸",
    # regulation
    "개인정보", "데이터보호", "GDPR", "개인정보보호법", "정보통신망법", "전자상거래법", "소비자보호법", "공정거래법", "독점규제법", "부정경쟁방지법",
)
KEYWORD_LEXICON: tuple[str, ...] = tuple(dict.fromkeys(_RAW_LEXICON))


@dataclass(frozen=True)
class SpeakerCandidate:
    label: str
    surface: str


@dataclass(frozen=True)
class SpeakerRule:
    name: str
    pattern: re.Pattern
    extract: Callable[[re.Match], Optional[SpeakerCandidate]]

    def candidates(self, text: str) -> Iterator[SpeakerCandidate]:
        for match in self.pattern.finditer(text):
            candidate = self.extract(match)
            if candidate is not None:
                yield candidate


def _label_style(match: re.Match) -> Optional[SpeakerCandidate]:
    label = match.group("label").strip()
    return SpeakerCandidate(label=label, surface=label)


def _composed(match: re.Match) -> Optional[SpeakerCandidate]:
    label = f"{match.group('name')} {match.group('role')}"
    return SpeakerCandidate(label=label, surface=match.group(0).strip())


SPEAKER_RULES: tuple[SpeakerRule, ...] = (
    # 김민수 팀장: ...
    SpeakerRule(
        "label",
        re.compile(r"(?P<label>[가-힣]{2,4}(?:[ \t]*[가-힣A-Za-z]{1,12})?)[ \t]*:"),
        _label_style,
    ),
    # 김민수 (팀장)
    SpeakerRule(
        "name_role",
        re.compile(rf"(?P<name>[가-힣]{{2,4}})\s*\(\s*(?P<role>{_ROLE_ALT})\s*\)"),
        _composed,
    ),
    # 팀장 김민수: / [팀장 김민수] ; the name must end the phrase, otherwise
    # ordinary sentences ("팀장 회의에서") would produce speakers.
    SpeakerRule(
        "role_name",
        re.compile(
            rf"(?<![가-힣A-Za-z])(?P<role>{_ROLE_ALT})[ \t]+(?P<name>[가-힣]{{2,4}})"
            r"(?=[ \t]*(?:[:,.)\]]|$))",
            re.MULTILINE,
        ),
        _composed,
    ),
)


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def collect_speaker_candidates(
    text: str, rules: Iterable[SpeakerRule] = SPEAKER_RULES
) -> dict[str, list[str]]:
    """Map each distinct candidate label to the surface forms it was seen as."""
    found: dict[str, list[str]] = {}
    for rule in rules:
        for candidate in rule.candidates(text):
            surfaces = found.setdefault(candidate.label, [])
            if candidate.surface not in surfaces:
                surfaces.append(candidate.surface)
    return found


def extract_speakers(text: str, rules: Iterable[SpeakerRule] = SPEAKER_RULES) -> list[Speaker]:
    candidates = collect_speaker_candidates(text, rules)
    counts = {
        label: sum(text.count(surface) for surface in surfaces)
        for label, surfaces in candidates.items()
        if is_valid_speaker_name(label)
    }
    total = sum(counts.values())
    speakers = [
        Speaker(
            name=label,
            count=count,
            percentage=_round_half_up(count / total * 100) if total > 0 else 0,
        )
        for label, count in counts.items()
    ]
    return sorted(speakers, key=lambda s: s.count, reverse=True)


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> list[Keyword]:
    scored = [Keyword(word=word, count=text.count(word)) for word in KEYWORD_LEXICON]
    scored = [k for k in scored if k.count > 0]
    scored.sort(key=lambda k: k.count, reverse=True)
    return scored[:limit]


def score_sentiment(text: str) -> Sentiment:
    positive = 60 if POSITIVE_MARKERS.search(text) else 30
    negative = 25 if NEGATIVE_MARKERS.search(text) else 15
    return Sentiment(positive=positive, negative=negative, neutral=100 - positive - negative)


def analyze_heuristically(text: str) -> AnalysisResult:
    text = text or ""
    word_count = len(text.split())
    speakers = extract_speakers(text)

    if speakers:
        summary = f"기본 분석: {word_count}단어, {len(speakers)}명의 참석자가 확인되었습니다."
        attendance = f"{len(speakers)}명의 참석자 확인"
    else:
        summary = f"기본 분석: {word_count}단어, 참석자 정보가 확인되지 않았습니다."
        attendance = "참석자 정보 없음"

    return AnalysisResult(
        summary=summary,
        speakers=tuple(speakers),
        keywords=tuple(extract_keywords(text)),
        sentiment=score_sentiment(text),
        key_points=(
            f"총 {word_count}단어 추출",
            attendance,
            "기본 키워드 분석 완료",
            "기본 감성 분석 완료",
        ),
    )
