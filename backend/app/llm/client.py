"""Text-generation client for the chat assistant.

Talks to OpenRouter through its OpenAI-compatible API. Security: the API key
is read from settings only, never hardcoded. A deterministic stub is used when
no key is configured so the service and its tests run offline.
"""

import json
import logging
from typing import Protocol

from openai import AsyncOpenAI

from backend.app.config import Settings, get_settings

logger = logging.getLogger(__name__)

ChatMessages = list[dict[str, str]]

STUB_MESSAGE = (
    "The AI assistant is not configured. "
    "Set OPENROUTER_API_KEY to enable natural language queries."
)


class ChatModelClient(Protocol):
    """Protocol for text-generation client implementations."""

    async def complete_json(self, messages: ChatMessages) -> str:
        """Run one chat completion in JSON mode.

        Args:
            messages: OpenAI-style role/content messages, system prompt first

        Returns:
            Raw content of the first choice (expected to be a JSON object)
        """
        ...


class DeterministicStubClient:
    """Deterministic stub client for testing (no API key required)."""

    async def complete_json(self, messages: ChatMessages) -> str:
        """Return a fixed message that never proposes a query."""
        return json.dumps({"message": STUB_MESSAGE})


class OpenRouterClient:
    """OpenRouter-backed client using the OpenAI SDK."""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str = "https://openrouter.ai/api/v1",
        app_url: str = "http://localhost:3000",
        app_title: str = "Expense Tracker AI",
    ):
        """Initialize client.

        Args:
            api_key: OpenRouter API key (read from environment)
            model: Model id routed by OpenRouter
            base_url: OpenAI-compatible endpoint
            app_url: Sent as HTTP-Referer for OpenRouter attribution
            app_title: Sent as X-Title for OpenRouter attribution
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers={"HTTP-Referer": app_url, "X-Title": app_title},
        )
        self.model = model

    async def complete_json(self, messages: ChatMessages) -> str:
        """Run one JSON-mode chat completion. API errors propagate to the caller."""
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,  # type: ignore[arg-type]
            response_format={"type": "json_object"},
            temperature=0.2,
        )
        return response.choices[0].message.content or ""


def get_llm_client(settings: Settings | None = None) -> ChatModelClient:
    """Factory function to get appropriate client based on config.

    Returns:
        OpenRouterClient if API key is configured, DeterministicStubClient otherwise
    """
    settings = settings or get_settings()
    api_key = settings.openrouter_api_key

    if api_key and api_key.get_secret_value():
        logger.info("Using OpenRouter client for chat")
        return OpenRouterClient(
            api_key=api_key.get_secret_value(),
            model=settings.openrouter_model,
            base_url=settings.openrouter_base_url,
            app_url=settings.app_url,
            app_title=settings.app_title,
        )

    logger.warning("No OpenRouter API key configured, using deterministic stub client")
    return DeterministicStubClient()
