"""
OpenAI Provider Implementation
==============================

OpenAI chat-completions classifier.
"""

import openai
from openai import AsyncOpenAI

from .base import ClassifierProvider
from ...config.settings import AIProvider
from ...utils.exceptions import ClassificationError, ErrorCode
from ...utils.logging import get_logger_for_component


class OpenAIProvider(ClassifierProvider):
    """OpenAI provider."""

    provider_type = AIProvider.OPENAI

    def __init__(self, api_key: str, model_name: str = "gpt-4o-mini",
                 max_tokens: int = 20, temperature: float = 0.0):
        super().__init__(api_key, model_name, max_tokens, temperature)

        self.async_client = AsyncOpenAI(api_key=api_key)
        self.logger = get_logger_for_component("openai_provider")

    async def classify(self, prompt: str) -> str:
        try:
            response = await self.async_client.chat.completions.create(
                model=self.model_name,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )

        except openai.APIConnectionError as e:
            self.logger.error(f"OpenAI connection error: {e}")
            raise ClassificationError(
                f"Connection to OpenAI failed: {e}",
                provider=self.name,
                error_code=ErrorCode.AI_CONNECTION_ERROR,
                retryable=True,
            ) from e

        except openai.APIStatusError as e:
            self.logger.error(f"OpenAI API error: {e.status_code} - {e.message}")
            raise self._status_error(e.status_code, e.message) from e

        except openai.APIError as e:
            raise ClassificationError(f"OpenAI request failed: {e}", provider=self.name) from e

        if not response.choices:
            raise self._empty_reply()

        reply = self._first_text(response.choices[0].message.content)
        if not reply:
            raise self._empty_reply()
        return reply

    async def close(self) -> None:
        await self.async_client.close()
