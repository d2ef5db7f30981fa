"""Tests for the Google Gemini AI provider.

Covers:
- chat success with mocked genai.Client
- system message separation and system_instruction passing
- role conversion (assistant -> model)
- blocked (empty) responses
- available_models validation
- ProviderError when API key is missing
- API error -> ProviderError conversion
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from secondbrain.ai_router.providers.google import GoogleProvider, _convert_messages
from secondbrain.ai_router.schemas import AIResponse, Message, ModelInfo, ProviderError

# ---------------------------------------------------------------------------
# Helpers: build mock objects that mimic google-genai responses
# ---------------------------------------------------------------------------


def _make_generate_response(text: str | None = "Hello!") -> MagicMock:
    """Create a mock GenerateContentResponse."""
    resp = MagicMock()
    resp.text = text
    return resp


def _provider_with_response(mock_genai: MagicMock, response: MagicMock | None = None, error=None) -> GoogleProvider:
    mock_client = MagicMock()
    if error is not None:
        mock_client.models.generate_content.side_effect = error
    else:
        mock_client.models.generate_content.return_value = response
    mock_genai.Client.return_value = mock_client
    return GoogleProvider(api_key="test-key")


# ---------------------------------------------------------------------------
# Init
# ---------------------------------------------------------------------------


class TestGoogleProviderInit:
    def test_init_with_explicit_api_key(self) -> None:
        with patch("secondbrain.ai_router.providers.google.genai") as mock_genai:
            GoogleProvider(api_key="test-key-123")
            mock_genai.Client.assert_called_once_with(api_key="test-key-123")

    def test_init_no_api_key_raises_provider_error(self) -> None:
        with patch("secondbrain.ai_router.providers.google.genai"):
            with pytest.raises(ProviderError) as exc_info:
                GoogleProvider(api_key="")
        assert exc_info.value.provider == "google"


# ---------------------------------------------------------------------------
# chat
# ---------------------------------------------------------------------------


class TestGoogleProviderChat:
    @pytest.mark.asyncio
    async def test_chat_success(self) -> None:
        mock_response = _make_generate_response(text="The answer is 42.")

        with patch("secondbrain.ai_router.providers.google.genai") as mock_genai:
            provider = _provider_with_response(mock_genai, mock_response)
            result = await provider.chat(
                [Message(role="user", content="What is the meaning of life?")],
                model="gemini-2.0-flash",
            )

        assert isinstance(result, AIResponse)
        assert result.content == "The answer is 42."
        assert result.model == "gemini-2.0-flash"
        assert result.provider == "google"

    @pytest.mark.asyncio
    async def test_system_instruction_and_sampling_config(self) -> None:
        with patch("secondbrain.ai_router.providers.google.genai") as mock_genai:
            provider = _provider_with_response(mock_genai, _make_generate_response())
            await provider.chat(
                [
                    Message(role="system", content="Use only the context."),
                    Message(role="user", content="Question?"),
                ],
                model="gemini-2.5-flash",
                temperature=0.2,
                max_tokens=256,
            )
            call_kwargs = mock_genai.Client.return_value.models.generate_content.call_args.kwargs

        assert call_kwargs["model"] == "gemini-2.5-flash"
        assert call_kwargs["contents"] == [{"role": "user", "parts": [{"text": "Question?"}]}]
        config = call_kwargs["config"]
        assert config.system_instruction == "Use only the context."
        assert config.temperature == 0.2
        assert config.max_output_tokens == 256

    @pytest.mark.asyncio
    async def test_blocked_response_returns_empty_content(self) -> None:
        with patch("secondbrain.ai_router.providers.google.genai") as mock_genai:
            provider = _provider_with_response(mock_genai, _make_generate_response(text=None))
            result = await provider.chat([Message(role="user", content="Hi")], model="gemini-2.5-flash")

        assert result.content == ""
        assert result.provider == "google"

    @pytest.mark.asyncio
    async def test_api_error_converted(self) -> None:
        with patch("secondbrain.ai_router.providers.google.genai") as mock_genai:
            provider = _provider_with_response(mock_genai, error=RuntimeError("quota exhausted"))
            with pytest.raises(ProviderError) as exc_info:
                await provider.chat([Message(role="user", content="Hi")], model="gemini-2.5-flash")

        assert exc_info.value.provider == "google"
        assert "quota exhausted" in exc_info.value.message


# ---------------------------------------------------------------------------
# Message conversion
# ---------------------------------------------------------------------------


def test_convert_messages_maps_assistant_to_model() -> None:
    contents, system = _convert_messages(
        [
            Message(role="system", content="A"),
            Message(role="system", content="B"),
            Message(role="user", content="Hi"),
            Message(role="assistant", content="Hello"),
        ]
    )

    assert system == "A\nB"
    assert [c["role"] for c in contents] == ["user", "model"]


def test_convert_messages_without_system() -> None:
    _contents, system = _convert_messages([Message(role="user", content="Hi")])
    assert system is None


def test_available_models() -> None:
    with patch("secondbrain.ai_router.providers.google.genai"):
        models = GoogleProvider(api_key="test-key").available_models()

    assert all(isinstance(m, ModelInfo) for m in models)
    assert all(m.provider == "google" for m in models)
    assert "gemini-2.5-flash" in [m.id for m in models]
