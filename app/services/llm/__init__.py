from app.services.llm.base import (
    BaseLLMProvider,
    LLMProvider,
    LLMProviderError,
    extract_json_object,
)
from app.services.llm.ollama_provider import OllamaProvider

__all__ = [
    "BaseLLMProvider",
    "LLMProvider",
    "LLMProviderError",
    "OllamaProvider",
    "extract_json_object",
]
