from __future__ import annotations

import re
from typing import Optional

from app.services.models import AnalysisRecord

DEFAULT_MAX_LINES = 100

MEETING_INFO_PATTERNS = (
    ("date", re.compile(r"회의\s*일시[:\s]*([0-9년월일\s]+)"), 1),
    ("time", re.compile(r"(오전|오후)\s*([0-9]+시)"), 0),
    ("location", re.compile(r"장소[:\s]*([^\n]+)"), 1),
    ("participants", re.compile(r"참석자[:\s]*([^\n]+)"), 1),
    ("purpose", re.compile(r"(?:안건|목적|목표)[:\s]*([^\n]+)"), 1),
    ("topic", re.compile(r"(?:주제|논의사항|안건)[:\s]*([^\n]+)"), 1),
    ("conclusion", re.compile(r"결론[:\s]*([^\n]+)"), 1),
    ("next_meeting", re.compile(r"다음\s*회의[:\s]*([^\n]+)"), 1),
)

INFO_ROWS = (
    ("date", "날짜"),
    ("time", "시간"),
    ("location", "장소"),
    ("participants", "참석자"),
    ("purpose", "목적/목표"),
    ("topic", "주제"),
    ("conclusion", "결론"),
    ("next_meeting", "다음 회의"),
)


def extract_meeting_info(text: str) -> dict[str, str]:
    """Pull labelled meeting metadata (일시, 장소, 참석자, ...) out of free text.

    Only the first match of each field is used; missing fields are omitted.
    """
    if not text:
        return {}
    info: dict[str, str] = {}
    for field, pattern, group in MEETING_INFO_PATTERNS:
        match = pattern.search(text)
        if match:
            value = match.group(group).strip()
            if value:
                info[field] = value
    return info


def condense_text(text: str, max_lines: int = DEFAULT_MAX_LINES) -> str:
    lines = (text or "").split("\n")
    if len(lines) <= max_lines:
        return "\n".join(lines)
    start = len(lines) - max_lines
    for index in range(start, len(lines)):
        if lines[index]:
            start = index
            break
    return "\n".join(lines[start:])


def render_markdown(record: AnalysisRecord, title: Optional[str] = None) -> str:
    results = record.analysis_results
    content = "\n\n".join(record.extracted_texts)
    info = extract_meeting_info(content)
    if "participants" not in info and results.speakers:
        info["participants"] = ", ".join(s.name for s in results.speakers)

    lines = [
        f"# {title or '회의록'}",
        "",
        f"**생성 일시:** {record.date}",
        "",
        "## 회의 기본 정보",
        "",
        "| 구분 | 내용 |",
        "| --- | --- |",
    ]
    for field, label in INFO_ROWS:
        value = info.get(field, "").replace("|", "\\|")
        lines.append(f"| {label} | {value} |")
    lines.append("")

    if record.files:
        lines.append("## 파일")
        for ref in record.files:
            lines.append(f"- {ref.name} ({ref.size} bytes)")
        lines.append("")
    if results.summary:
        lines.extend(["## 요약", "", results.summary, ""])
    if results.speakers:
        lines.append("## 참석자")
        for speaker in results.speakers:
            lines.append(f"- {speaker.name}: {speaker.count}회 ({speaker.percentage}%)")
        lines.append("")
    if results.keywords:
        lines.append("## 키워드")
        lines.append(", ".join(f"{k.word}({k.count})" for k in results.keywords))
        lines.append("")

    sentiment = results.sentiment
    lines.extend(
        [
            "## 감성 분석",
            f"- 긍정: {sentiment.positive}%",
            f"- 부정: {sentiment.negative}%",
            f"- 중립: {sentiment.neutral}%",
            "",
        ]
    )
    if results.key_points:
        lines.append("## 주요 포인트")
        for point in results.key_points:
            lines.append(f"- {point}")
        lines.append("")

    lines.append("## 회의 내용")
    lines.append("")
    lines.append(condense_text(content) if content.strip() else "회의 내용을 분석할 수 없습니다.")
    return "\n".join(lines)
