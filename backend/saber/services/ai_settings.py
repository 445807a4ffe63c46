"""Per-request generation settings merged field-by-field over defaults."""

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_TEMPERATURE = 0.5
DEFAULT_MAX_TOKENS = 300
DEFAULT_PERSONALITY = "balanced"
DEFAULT_CONTEXT_MEMORY = 10


def parse_float(value: Any, default: float, low: float, high: float) -> float:
    if isinstance(value, bool):
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if parsed != parsed or not low <= parsed <= high:  # NaN or out of range
        return default
    return parsed


def parse_int(value: Any, default: int, low: int) -> int:
    """Parse an int the lenient way clients send it ("12", 12.0); anything else is `default`."""
    if isinstance(value, bool):
        return default
    if isinstance(value, float):
        if not value.is_integer():
            return default
        value = int(value)
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= low else default


class AiSettings(BaseModel):
    """Typed settings snapshot. Malformed fields fall back to their own default.

    Serialises with camelCase keys (`maxTokens`, `contextMemory`) to match the
    JSON the web client sends and expects back.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    personality: str = DEFAULT_PERSONALITY
    context_memory: int = DEFAULT_CONTEXT_MEMORY

    @field_validator("temperature", mode="before")
    @classmethod
    def _temperature(cls, v: Any) -> float:
        return parse_float(v, DEFAULT_TEMPERATURE, 0.0, 2.0)

    @field_validator("max_tokens", mode="before")
    @classmethod
    def _max_tokens(cls, v: Any) -> int:
        return parse_int(v, DEFAULT_MAX_TOKENS, 1)

    @field_validator("context_memory", mode="before")
    @classmethod
    def _context_memory(cls, v: Any) -> int:
        return parse_int(v, DEFAULT_CONTEXT_MEMORY, 0)

    @field_validator("personality", mode="before")
    @classmethod
    def _personality(cls, v: Any) -> str:
        if isinstance(v, str) and v.strip():
            return v.strip()
        return DEFAULT_PERSONALITY

    @classmethod
    def merge(cls, raw: Any) -> "AiSettings":
        """Build settings from an untrusted client payload (dict, None or junk)."""
        if not isinstance(raw, dict):
            return cls()
        known = {}
        for name, field in cls.model_fields.items():
            if field.alias in raw:
                known[name] = raw[field.alias]
            elif name in raw:
                known[name] = raw[name]
        return cls(**known)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
