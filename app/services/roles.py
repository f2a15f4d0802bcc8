from __future__ import annotations

import re
from typing import Optional

ROLE_TITLES: tuple[str, ...] = (
    "대표", "부장", "사장", "부사장", "전무", "상무", "이사", "이사장", "회장", "사장대행", "고문", "자문",
    "본부장", "센터장", "그룹장", "실장", "팀장", "파트장", "지점장", "소장", "과장", "차장", "대리", "주임", "사원",
    "수석", "책임", "선임", "전임", "연구원", "주임연구원", "선임연구원", "책임연구원", "수석연구원",
    "박사", "석사", "학사", "전문위원", "전문가", "컨설턴트", "PM", "PO", "PL", "QA", "QC",
    "개발자", "엔지니어", "디자이너", "기획자", "분석가", "데이터사이언티스트", "데이터엔지니어", "ML엔지니어", "리서처",
    "마케터", "세일즈", "영업", "CS", "고객지원", "운영", "매니저", "코치", "트레이너", "강사", "교수", "교사",
    "회계사", "변호사", "변리사", "세무사", "노무사", "감사", "내부감사", "재무담당", "인사담당", "총무담당", "법무담당",
    "PR담당", "IR담당", "브랜드매니저", "프로덕트오너", "프로덕트매니저", "프로젝트매니저", "UX리서처", "UX디자이너", "UI디자이너",
    "백엔드", "프론트엔드", "풀스택", "클라우드아키텍트", "아키텍트", "SRE", "보안담당", "CISO", "CFO", "CTO", "COO", "CEO",
    "대표이사", "총괄", "책임자", "실무자", "담당자", "주관", "주최", "발표자", "발언자", "사회자", "진행자",
    "인턴", "수습", "신입", "주니어", "시니어", "리드", "헤드", "디렉터", "VP",
)

# Hangul syllables. Pass another character class to the validator for
# rosters written in a different script.
NAME_SCRIPT = "[가-힣]"

_ROLE_SUFFIX = re.compile("(" + "|".join(re.escape(t) for t in ROLE_TITLES) + r")$")

# Checked in order; the first band whose pattern occurs in the name wins.
ROLE_BANDS: tuple[tuple[str, re.Pattern], ...] = (
    ("최고경영진", re.compile("대표|사장|회장|이사장|ceo")),
    ("이사급", re.compile("이사|상무|전무|부사장")),
    ("고급관리자", re.compile("부장|본부장|그룹장|센터장|실장|팀장")),
    ("중간관리자", re.compile("과장|수석|책임|선임|주임")),
    ("주요업무자", re.compile("대리|사원")),
    ("외부참석자", re.compile("고객|파트너|협력사|컨설턴트|변호사|회계사")),
    ("신입/인턴", re.compile("학생|인턴|수습|신입")),
)
DEFAULT_ROLE_BAND = "팀원"


def match_role(candidate: str) -> Optional[str]:
    """Return the dictionary title ``candidate`` ends with, if any."""
    if not candidate:
        return None
    match = _ROLE_SUFFIX.search(candidate.strip())
    return match.group(1) if match else None


def is_valid_speaker_name(candidate: str, name_script: str = NAME_SCRIPT) -> bool:
    """True for "name + title" labels such as ``김민수 팀장``.

    The label must end with a dictionary title and the part before the
    title must contain at least two consecutive name characters.
    """
    if not candidate:
        return False
    text = str(candidate).strip()
    role = match_role(text)
    if role is None:
        return False
    prefix = text[: len(text) - len(role)].strip()
    return re.search(f"{name_script}{{2,}}", prefix) is not None


def infer_role_band(name: str) -> str:
    lowered = (name or "").lower()
    for band, pattern in ROLE_BANDS:
        if pattern.search(lowered):
            return band
    return DEFAULT_ROLE_BAND
