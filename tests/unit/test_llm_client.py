"""Tests for the text-generation client.

All tests are deterministic and do not make real network calls.
"""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from pydantic import SecretStr

from backend.app.api.routes.ai import get_chat_model
from backend.app.config import Settings
from backend.app.llm.client import (
    STUB_MESSAGE,
    DeterministicStubClient,
    OpenRouterClient,
    get_llm_client,
)


@pytest.mark.asyncio
async def test_deterministic_stub_client_is_deterministic() -> None:
    """Test that DeterministicStubClient produces same output every time."""
    client = DeterministicStubClient()
    messages = [{"role": "user", "content": "hi"}]

    first = await client.complete_json(messages)
    second = await client.complete_json(messages)

    assert first == second
    assert json.loads(first) == {"message": STUB_MESSAGE}


@pytest.mark.asyncio
async def test_openrouter_client_calls_api_in_json_mode() -> None:
    """Test that OpenRouterClient requests a JSON object response (mocked)."""
    mock_response = MagicMock()
    mock_response.choices = [MagicMock()]
    mock_response.choices[0].message.content = '{"message": "hello"}'

    client = OpenRouterClient(api_key="test_key", model="test/model")
    client.client = MagicMock()
    client.client.chat.completions.create = AsyncMock(return_value=mock_response)

    content = await client.complete_json([{"role": "user", "content": "hi"}])

    assert content == '{"message": "hello"}'
    kwargs = client.client.chat.completions.create.await_args.kwargs
    assert kwargs["model"] == "test/model"
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["messages"] == [{"role": "user", "content": "hi"}]


@pytest.mark.asyncio
async def test_openrouter_client_returns_empty_string_for_missing_content() -> None:
    mock_response = MagicMock()
    mock_response.choices = [MagicMock()]
    mock_response.choices[0].message.content = None

    client = OpenRouterClient(api_key="test_key", model="test/model")
    client.client = MagicMock()
    client.client.chat.completions.create = AsyncMock(return_value=mock_response)

    assert await client.complete_json([]) == ""


def test_openrouter_client_sends_attribution_headers() -> None:
    client = OpenRouterClient(
        api_key="test_key",
        model="test/model",
        base_url="https://router.example/api/v1",
        app_url="https://app.example",
        app_title="Ledger",
    )

    assert str(client.client.base_url).startswith("https://router.example/api/v1")
    assert client.client.default_headers["HTTP-Referer"] == "https://app.example"
    assert client.client.default_headers["X-Title"] == "Ledger"


def test_get_llm_client_without_key_returns_stub() -> None:
    client = get_llm_client(Settings(openrouter_api_key=None))
    assert isinstance(client, DeterministicStubClient)


def test_get_llm_client_with_key_returns_openrouter() -> None:
    client = get_llm_client(
        Settings(openrouter_api_key=SecretStr("sk-test"), openrouter_model="some/model")
    )

    assert isinstance(client, OpenRouterClient)
    assert client.model == "some/model"


def test_chat_model_dependency_reuses_one_client() -> None:
    """Every /ai/chat request shares one client and its connection pool."""
    settings = Settings(openrouter_api_key=SecretStr("sk-test"))
    get_chat_model.cache_clear()
    try:
        with patch("backend.app.llm.client.get_settings", return_value=settings):
            first = get_chat_model()
            second = get_chat_model()
    finally:
        get_chat_model.cache_clear()

    assert isinstance(first, OpenRouterClient)
    assert first is second
    assert first.client is second.client
