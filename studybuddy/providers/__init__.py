"""Chat-completion providers for the study assistant and schedule parser."""

from __future__ import annotations

from studybuddy.config.schema import StudyBuddyConfig
from studybuddy.providers.openai_provider import OpenAICompatProvider
from studybuddy.providers.types import ChatProvider, LLMMessage, LLMResponse


def create_provider(config: StudyBuddyConfig) -> ChatProvider:
    """Build the configured chat-completion provider."""
    ai = config.ai
    return OpenAICompatProvider(
        api_base=ai.api_base,
        api_key=ai.api_key.get_secret_value(),
        default_model=ai.model,
        max_tokens=ai.max_completion_tokens,
    )


__all__ = [
    "ChatProvider",
    "LLMMessage",
    "LLMResponse",
    "OpenAICompatProvider",
    "create_provider",
]
