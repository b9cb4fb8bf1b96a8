"""
Groq Provider Implementation
============================

Groq chat-completions classifier for fast, low-cost inference.
"""

import groq
from groq import AsyncGroq

from .base import ClassifierProvider
from ...config.settings import AIProvider
from ...utils.exceptions import ClassificationError, ErrorCode
from ...utils.logging import get_logger_for_component


class GroqProvider(ClassifierProvider):
    """Groq provider with async support."""

    provider_type = AIProvider.GROQ

    def __init__(self, api_key: str, model_name: str = "llama-3.1-8b-instant",
                 max_tokens: int = 20, temperature: float = 0.0):
        super().__init__(api_key, model_name, max_tokens, temperature)

        self.async_client = AsyncGroq(api_key=api_key)
        self.logger = get_logger_for_component("groq_provider")
        self.logger.info(f"Groq provider initialized with model: {model_name}")

    async def classify(self, prompt: str) -> str:
        try:
            response = await self.async_client.chat.completions.create(
                model=self.model_name,
                messages=[
                    {
                        "role": "system",
                        "content": "You classify articles. Answer with a single category name."
                    },
                    {
                        "role": "user",
                        "content": prompt
                    }
                ],
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )

        except groq.APIConnectionError as e:
            self.logger.error(f"Groq connection error: {e}")
            raise ClassificationError(
                f"Connection to Groq failed: {e}",
                provider=self.name,
                error_code=ErrorCode.AI_CONNECTION_ERROR,
                retryable=True,
            ) from e

        except groq.APIStatusError as e:
            self.logger.error(f"Groq API error: {e.status_code} - {e.message}")
            raise self._status_error(e.status_code, e.message) from e

        except groq.APIError as e:
            self.logger.error(f"Groq error: {e}")
            raise ClassificationError(f"Groq request failed: {e}", provider=self.name) from e

        if not response.choices:
            raise self._empty_reply()

        reply = self._first_text(response.choices[0].message.content)
        if not reply:
            raise self._empty_reply()
        return reply

    async def close(self) -> None:
        await self.async_client.close()
