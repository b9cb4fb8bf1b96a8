"""
Base Classifier Provider Interface
==================================

Abstract base class for the external text classifiers used to categorize
articles. A provider exposes a single capability: send a prompt, get the raw
text reply back. Interpreting that reply is the categorizer's job.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ...config.settings import AIProvider
from ...utils.exceptions import ClassificationError, ErrorCode


class ClassifierProvider(ABC):
    """Abstract base class for classifier provider implementations."""

    provider_type: AIProvider

    def __init__(self, api_key: str, model_name: str, max_tokens: int = 20,
                 temperature: float = 0.0):
        """Initialize provider.

        Args:
            api_key: API key for the provider
            model_name: Model to use for requests
            max_tokens: Reply length cap
            temperature: Sampling temperature

        Raises:
            ClassificationError: If the API key is missing
        """
        if not api_key:
            raise ClassificationError(
                f"{self.provider_type.value} API key is required",
                provider=self.provider_type.value,
                error_code=ErrorCode.AI_INVALID_CREDENTIALS,
            )
        self.api_key = api_key
        self.model_name = model_name
        self.max_tokens = max_tokens
        self.temperature = temperature

    @property
    def name(self) -> str:
        return self.provider_type.value

    @abstractmethod
    async def classify(self, prompt: str) -> str:
        """Send a prompt and return the model's text reply.

        Raises:
            ClassificationError: If the request fails or the reply is empty
        """

    async def test_connection(self) -> bool:
        """Check the API answers with these credentials."""
        try:
            reply = await self.classify("Respond with exactly: OK")
            return bool(reply)
        except ClassificationError:
            return False

    async def close(self) -> None:
        """Release underlying HTTP resources."""

    def _status_error(self, status_code: int, message: str) -> ClassificationError:
        """Map an API status failure to a classification error."""
        if status_code == 401:
            return ClassificationError(
                f"Invalid {self.name} API key",
                provider=self.name,
                error_code=ErrorCode.AI_INVALID_CREDENTIALS,
            )
        if status_code == 429:
            return ClassificationError(
                f"{self.name} rate limit exceeded",
                provider=self.name,
                error_code=ErrorCode.AI_RATE_LIMIT,
                retryable=True,
            )
        return ClassificationError(
            f"{self.name} API error: {status_code} - {message}",
            provider=self.name,
            error_code=ErrorCode.AI_API_ERROR,
            retryable=status_code >= 500,
        )

    def _empty_reply(self) -> ClassificationError:
        return ClassificationError(
            f"{self.name} returned an empty reply",
            provider=self.name,
            error_code=ErrorCode.AI_INVALID_RESPONSE,
        )

    @staticmethod
    def _first_text(value: Optional[str]) -> str:
        return (value or "").strip()

    def __str__(self) -> str:
        return f"{type(self).__name__}(model={self.model_name})"
