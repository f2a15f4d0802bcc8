from __future__ import annotations

import logging
from abc import ABC, abstractmethod


class LLMProviderError(RuntimeError):
    pass


def extract_json_object(text: str) -> str:
    """Return the first balanced ``{...}`` block found in ``text``.

    Models often wrap the requested JSON in prose or code fences. Scanning
    from the first opening brace and tracking depth recovers the object
    without trusting anything around it.

    Raises:
        LLMProviderError: if there is no opening brace, or it is never
            balanced by a matching closing brace.
    """
    if not text:
        raise LLMProviderError("Empty model response")
    start = text.find("{")
    if start == -1:
        raise LLMProviderError("No JSON object start in model response")

    depth = 0
    for index in range(start, len(text)):
        char = text[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : index + 1]
    raise LLMProviderError("Unbalanced JSON object in model response")


class LLMProvider(ABC):
    @abstractmethod
    def health_check(self) -> bool:
        """Fast reachability probe; must not raise."""
        raise NotImplementedError

    @abstractmethod
    def generate(self, prompt: str, system_prompt: str = "") -> str:
        """Run one generation and return the raw response text.

        Raises:
            LLMProviderError: on transport failure, timeout or a non-200 reply.
        """
        raise NotImplementedError

    def describe(self) -> dict:
        return {}


class BaseLLMProvider(LLMProvider):
    """Shared prompts for providers."""

    PROMPTS = {
        "analyze_meeting": (
            "다음 회의 내용을 분석하고 완전한 JSON 형식으로만 응답하세요. 모든 필드를 포함해야 합니다.\n\n"
            "회의 내용:\n{text}\n\n"
            "반드시 다음 형식의 완전한 JSON으로 응답하세요:\n"
            "{{\n"
            '  "summary": "회의 요약 (100자 이내)",\n'
            '  "speakers": [{{"name": "화자명", "count": 발언횟수, "percentage": 발언비중}}],\n'
            '  "keywords": [{{"word": "키워드", "count": 발생횟수, "weight": 중요도}}],\n'
            '  "sentiment": {{"positive": 긍정비율, "negative": 부정비율, "neutral": 중립비율}},\n'
            '  "keyPoints": ["주요포인트1", "주요포인트2", "주요포인트3"]\n'
            "}}\n\n"
            "중요한 규칙:\n"
            "1. 반드시 모든 필드(summary, speakers, keywords, sentiment, keyPoints)를 포함하세요\n"
            "2. 화자가 없으면 speakers는 빈 배열 []로 설정\n"
            "3. 화자가 있으면 실제 텍스트에서 찾은 화자만 포함\n"
            "4. sentiment는 0-1 사이의 숫자로 설정 (예: 0.7, 0.2, 0.1)\n"
            "5. JSON 외의 다른 텍스트는 절대 포함하지 마세요\n"
            "6. 하나의 완전한 JSON 객체만 응답하세요"
        ),
        "warm_up": "OK",
        "warm_up_system": "답변 없이 OK 만 출력",
    }

    def __init__(self, logger_name: str = "insight.llm") -> None:
        self._logger = logging.getLogger(logger_name)

    def analysis_prompt(self, text: str) -> str:
        return self.PROMPTS["analyze_meeting"].format(text=text)
