"""
Anthropic Provider Implementation
=================================

Claude-backed classifier. This is the default provider.
"""

import anthropic
from anthropic import AsyncAnthropic

from .base import ClassifierProvider
from ...config.settings import AIProvider
from ...utils.exceptions import ClassificationError, ErrorCode
from ...utils.logging import get_logger_for_component


class AnthropicProvider(ClassifierProvider):
    """Anthropic Messages API provider."""

    provider_type = AIProvider.ANTHROPIC

    def __init__(self, api_key: str, model_name: str = "claude-3-5-haiku-20241022",
                 max_tokens: int = 20, temperature: float = 0.0):
        super().__init__(api_key, model_name, max_tokens, temperature)

        self.async_client = AsyncAnthropic(api_key=api_key)
        self.logger = get_logger_for_component("anthropic_provider")
        self.logger.info(f"Anthropic provider initialized with model: {model_name}")

    async def classify(self, prompt: str) -> str:
        try:
            response = await self.async_client.messages.create(
                model=self.model_name,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=[{"role": "user", "content": prompt}],
            )

        except anthropic.APIConnectionError as e:
            self.logger.error(f"Anthropic connection error: {e}")
            raise ClassificationError(
                f"Connection to Anthropic failed: {e}",
                provider=self.name,
                error_code=ErrorCode.AI_CONNECTION_ERROR,
                retryable=True,
            ) from e

        except anthropic.APIStatusError as e:
            self.logger.error(f"Anthropic API error: {e.status_code} - {e.message}")
            raise self._status_error(e.status_code, e.message) from e

        except anthropic.APIError as e:
            self.logger.error(f"Anthropic error: {e}")
            raise ClassificationError(
                f"Anthropic request failed: {e}", provider=self.name
            ) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        reply = self._first_text(text)
        if not reply:
            raise self._empty_reply()

        self.logger.debug(f"Anthropic reply: {reply!r}")
        return reply

    async def close(self) -> None:
        await self.async_client.close()
