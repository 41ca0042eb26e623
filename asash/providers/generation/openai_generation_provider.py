"""OpenAI-compatible generation provider adapter.

Wraps the ``openai`` async client to implement :class:`IGenerationProvider`.
Gemini exposes an OpenAI-compatible chat-completions endpoint, so the
default configuration points the client at Google's base URL with model
``gemini-2.5-flash``; any other OpenAI-compatible service works by changing
``GENERATION_BASE_URL`` and ``GENERATION_MODEL``.

The composed prompt is sent as a single user message.  The SDK's own retry
loop is disabled (``max_retries=0``): one question, one attempt.
"""

from __future__ import annotations

import openai
import structlog

from asash.config.prompts import compose_prompt
from asash.config.settings import Settings
from asash.interfaces.generation_provider import IGenerationProvider
from asash.utils.errors import GenerationAuthError, GenerationError

logger = structlog.get_logger(logger_name=__name__)


class OpenAICompatibleGenerationProvider(IGenerationProvider):
    """Answer generator backed by an OpenAI-compatible chat API."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.gemini_api_key
        self._model = settings.generation_model
        self._timeout_seconds = settings.generation_timeout
        self._temperature = settings.generation_temperature
        self._max_tokens = settings.generation_max_tokens
        self._client: openai.AsyncOpenAI | None = None
        if self._api_key:
            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=settings.generation_base_url,
                timeout=openai.Timeout(self._timeout_seconds, connect=5.0),
                max_retries=0,
            )

    # ------------------------------------------------------------------
    # IGenerationProvider implementation
    # ------------------------------------------------------------------

    async def generate(self, system_prompt: str, context: str, question: str) -> str:
        if self._client is None:
            raise GenerationAuthError(
                message="Generation API key is missing (set GEMINI_API_KEY)",
                provider_name=self.get_provider_name(),
            )

        prompt = compose_prompt(system_prompt, context, question)
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise GenerationAuthError(
                message="Generation API key is invalid or missing",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APITimeoutError as exc:
            raise GenerationError(
                message=f"Generation timed out after {self._timeout_seconds:g}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise GenerationError(
                message=f"Generation API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise GenerationError(
                message="Generation returned an empty response",
                provider_name=self.get_provider_name(),
            )

        logger.info(
            "generation_complete",
            model=self._model,
            prompt_chars=len(prompt),
            answer_chars=len(content),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content.strip()

    def get_provider_name(self) -> str:
        return "gemini" if self._model.startswith("gemini") else "openai-compatible"

    def is_available(self) -> bool:
        return self._client is not None
