"""Conversation title generation from the first message of a conversation."""

import logging
from typing import Any

from saber.core.config import settings
from saber.services.ai_settings import AiSettings
from saber.services.llm.base import BaseLLMProvider

logger = logging.getLogger(__name__)

QUOTE_CHARS = "\"'“”‘’`"


def fallback_title(first_message: str) -> str:
    """First few words of the message, cut to the title budget with an ellipsis if cut."""
    words = " ".join(first_message.split()[: settings.title_max_words])
    if len(words) > settings.title_max_length:
        return words[: settings.title_max_length] + "..."
    return words or settings.default_title


def clean_title(raw: str | None) -> str:
    if not raw:
        return ""
    title = raw.strip()
    for ch in QUOTE_CHARS:
        title = title.replace(ch, "")
    return title.strip()[: settings.title_max_length].strip()


async def generate_title(
    first_message: Any, ai_settings: AiSettings, provider: BaseLLMProvider
) -> str:
    """Ask the provider for a short title. Never raises: falls back to the message's opening words."""
    if not isinstance(first_message, str) or not first_message.strip():
        logger.warning("Title requested for an empty or non-text message")
        return settings.default_title

    prompt = settings.title_prompt.format(
        message=first_message, max_length=settings.title_max_length
    )
    try:
        raw = await provider.generate(
            prompt,
            max_tokens=settings.title_max_tokens,
            temperature=min(ai_settings.temperature, settings.title_temperature_ceiling),
            stop_sequences=settings.title_stop_sequences,
        )
    except Exception as e:
        # Title failures must never abort the turn
        logger.warning(f"Title generation failed, using message words instead: {e!r}")
        return fallback_title(first_message)

    title = clean_title(raw)
    if len(title) < settings.title_min_length:
        logger.debug(f"Generated title {raw!r} too short, using message words instead")
        return fallback_title(first_message)
    return title
