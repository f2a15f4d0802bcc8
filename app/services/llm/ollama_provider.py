from __future__ import annotations

import logging

import requests

from app.services.llm.base import BaseLLMProvider, LLMProviderError

_logger = logging.getLogger("insight.llm.ollama")

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "llama3.2:1b"


class OllamaProvider(BaseLLMProvider):
    """LLM provider for a local or remote Ollama server."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        health_timeout_ms: int = 1500,
        generate_timeout_ms: int = 300_000,
        options: dict | None = None,
    ) -> None:
        super().__init__(logger_name="insight.llm.ollama")
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._health_timeout = health_timeout_ms / 1000
        self._generate_timeout = generate_timeout_ms / 1000
        self._options = options if options is not None else {
            "temperature": 0.7,
            "top_p": 0.9,
            "num_predict": 2000,
        }

    def describe(self) -> dict:
        return {"host": self._base_url, "model": self._model}

    def health_check(self) -> bool:
        try:
            response = requests.get(f"{self._base_url}/api/tags", timeout=self._health_timeout)
        except requests.RequestException as exc:
            _logger.warning("Ollama not reachable at %s: %s", self._base_url, exc)
            return False
        if response.status_code != 200:
            _logger.warning("Ollama health check failed: status=%s", response.status_code)
            return False
        return True

    def generate(self, prompt: str, system_prompt: str = "") -> str:
        request_body = {
            "model": self._model,
            "prompt": f"{system_prompt}\n\n{prompt}" if system_prompt else prompt,
            "stream": False,
            "options": self._options,
        }
        try:
            response = requests.post(
                f"{self._base_url}/api/generate",
                json=request_body,
                timeout=self._generate_timeout,
            )
        except requests.Timeout as exc:
            raise LLMProviderError(
                f"Ollama generation timed out after {self._generate_timeout:.0f}s"
            ) from exc
        except requests.RequestException as exc:
            raise LLMProviderError("Failed to reach Ollama") from exc

        if response.status_code != 200:
            raise LLMProviderError(f"Ollama error: {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMProviderError("Ollama returned a non-JSON envelope") from exc
        return str(data.get("response") or "").strip()
