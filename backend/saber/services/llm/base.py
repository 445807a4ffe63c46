"""Abstract LLM provider interface. All providers must implement this."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class HistoryEntry:
    role: str  # "USER" | "CHATBOT"
    message: str


class BaseLLMProvider(ABC):
    @abstractmethod
    async def generate(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        stop_sequences: list[str] | None = None,
    ) -> str:
        """Single-shot completion of a bare prompt. Raises GenerationError on failure."""
        ...

    @abstractmethod
    async def chat(
        self,
        message: str,
        history: list[HistoryEntry] | None,
        system_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Reply to `message` given prior turns. `history` is None when there are none."""
        ...
