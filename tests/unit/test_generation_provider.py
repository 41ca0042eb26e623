"""Unit tests for the OpenAI-compatible (Gemini) generation provider."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from asash.config.prompts import NO_CONTEXT_NOTICE, SYSTEM_PROMPT
from asash.config.settings import Settings
from asash.utils.errors import GenerationAuthError, GenerationError

_PATCH_TARGET = "asash.providers.generation.openai_generation_provider.openai.AsyncOpenAI"
_URL = "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions"


def _settings(**overrides) -> Settings:
    defaults = {
        "_env_file": None,
        "gemini_api_key": "gm-test",
        "generation_model": "gemini-2.5-flash",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    response.usage = MagicMock(total_tokens=42)
    return response


def _client_returning(result=None, error: Exception | None = None) -> AsyncMock:
    client = AsyncMock()
    if error is not None:
        client.chat.completions.create = AsyncMock(side_effect=error)
    else:
        client.chat.completions.create = AsyncMock(return_value=result)
    return client


def _status_response(status: int) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", _URL))


class TestOpenAICompatibleGenerationProvider:
    def test_provider_name_for_gemini(self) -> None:
        from asash.providers.generation.openai_generation_provider import (
            OpenAICompatibleGenerationProvider,
        )

        with patch(_PATCH_TARGET):
            provider = OpenAICompatibleGenerationProvider(_settings())
        assert provider.get_provider_name() == "gemini"

    def test_provider_name_for_other_models(self) -> None:
        from asash.providers.generation.openai_generation_provider import (
            OpenAICompatibleGenerationProvider,
        )

        with patch(_PATCH_TARGET):
            provider = OpenAICompatibleGenerationProvider(_settings(generation_model="gpt-4o-mini"))
        assert provider.get_provider_name() == "openai-compatible"

    def test_unavailable_without_key(self) -> None:
        from asash.providers.generation.openai_generation_provider import (
            OpenAICompatibleGenerationProvider,
        )

        provider = OpenAICompatibleGenerationProvider(_settings(gemini_api_key=""))
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_generate_sends_single_user_message(self) -> None:
        from asash.providers.generation.openai_generation_provider import (
            OpenAICompatibleGenerationProvider,
        )

        client = _client_returning(_completion("  **Office Name:** Registrar  "))
        with patch(_PATCH_TARGET, return_value=client) as factory:
            provider = OpenAICompatibleGenerationProvider(_settings())
            answer = await provider.generate(SYSTEM_PROMPT, "\n\nctx", "How do I enroll?")

        assert answer == "**Office Name:** Registrar"
        assert factory.call_args.kwargs["max_retries"] == 0
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        messages = kwargs["messages"]
        assert len(messages) == 1
        assert messages[0]["role"] == "user"
        prompt = messages[0]["content"]
        assert prompt.startswith(SYSTEM_PROMPT)
        assert "Student Question: How do I enroll?" in prompt
        assert prompt.endswith("Assistant Response:")

    @pytest.mark.asyncio
    async def test_empty_context_uses_no_context_notice(self) -> None:
        from asash.providers.generation.openai_generation_provider import (
            OpenAICompatibleGenerationProvider,
        )

        client = _client_returning(_completion("answer"))
        with patch(_PATCH_TARGET, return_value=client):
            provider = OpenAICompatibleGenerationProvider(_settings())
            await provider.generate(SYSTEM_PROMPT, "", "Where is the cashier?")

        prompt = client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert NO_CONTEXT_NOTICE in prompt

    @pytest.mark.asyncio
    async def test_missing_key_raises_auth_error(self) -> None:
        from asash.providers.generation.openai_generation_provider import (
            OpenAICompatibleGenerationProvider,
        )

        provider = OpenAICompatibleGenerationProvider(_settings(gemini_api_key=""))
        with pytest.raises(GenerationAuthError):
            await provider.generate(SYSTEM_PROMPT, "", "question")

    @pytest.mark.asyncio
    async def test_rejected_key_raises_auth_error(self) -> None:
        from asash.providers.generation.openai_generation_provider import (
            OpenAICompatibleGenerationProvider,
        )

        error = openai.AuthenticationError(
            "invalid api key", response=_status_response(401), body=None
        )
        with patch(_PATCH_TARGET, return_value=_client_returning(error=error)):
            provider = OpenAICompatibleGenerationProvider(_settings())
            with pytest.raises(GenerationAuthError) as exc_info:
                await provider.generate(SYSTEM_PROMPT, "", "question")

        assert exc_info.value.provider_name == "gemini"

    @pytest.mark.asyncio
    async def test_timeout_raises_generation_error(self) -> None:
        from asash.providers.generation.openai_generation_provider import (
            OpenAICompatibleGenerationProvider,
        )

        error = openai.APITimeoutError(request=httpx.Request("POST", _URL))
        with patch(_PATCH_TARGET, return_value=_client_returning(error=error)):
            provider = OpenAICompatibleGenerationProvider(_settings())
            with pytest.raises(GenerationError) as exc_info:
                await provider.generate(SYSTEM_PROMPT, "", "question")

        assert not isinstance(exc_info.value, GenerationAuthError)
        assert "timed out" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_server_error_raises_generation_error(self) -> None:
        from asash.providers.generation.openai_generation_provider import (
            OpenAICompatibleGenerationProvider,
        )

        error = openai.InternalServerError("boom", response=_status_response(500), body=None)
        with patch(_PATCH_TARGET, return_value=_client_returning(error=error)):
            provider = OpenAICompatibleGenerationProvider(_settings())
            with pytest.raises(GenerationError):
                await provider.generate(SYSTEM_PROMPT, "", "question")

    @pytest.mark.asyncio
    async def test_empty_answer_raises_generation_error(self) -> None:
        from asash.providers.generation.openai_generation_provider import (
            OpenAICompatibleGenerationProvider,
        )

        with patch(_PATCH_TARGET, return_value=_client_returning(_completion("   "))):
            provider = OpenAICompatibleGenerationProvider(_settings())
            with pytest.raises(GenerationError):
                await provider.generate(SYSTEM_PROMPT, "", "question")
