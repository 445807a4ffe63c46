"""Generation provider used for chat replies and conversation titles."""

from functools import lru_cache

from saber.core.config import settings
from saber.services.llm.base import BaseLLMProvider, HistoryEntry

__all__ = ["BaseLLMProvider", "HistoryEntry", "get_llm_provider"]


@lru_cache
def get_llm_provider() -> BaseLLMProvider:
    """Shared provider instance for the configured backend, built on first use."""
    name = settings.llm_provider.strip().lower()
    if name == "gemini":
        from saber.services.llm.gemini import GeminiProvider
        return GeminiProvider()
    raise ValueError(f"Unknown LLM provider: {settings.llm_provider!r} (expected 'gemini')")
