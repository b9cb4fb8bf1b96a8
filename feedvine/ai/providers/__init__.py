"""
Classifier Providers Module
===========================

Interchangeable text classifiers behind the ``ClassifierProvider`` interface.
"""

from typing import Optional

from .base import ClassifierProvider
from .anthropic_provider import AnthropicProvider
from .groq_provider import GroqProvider
from .openai_provider import OpenAIProvider
from ...config.settings import AISettings, AIProvider

PROVIDER_CLASSES = {
    AIProvider.ANTHROPIC: AnthropicProvider,
    AIProvider.GROQ: GroqProvider,
    AIProvider.OPENAI: OpenAIProvider,
}


def create_provider(settings: AISettings, provider: Optional[AIProvider] = None) -> ClassifierProvider:
    """Build the classifier for the configured (or given) provider.

    Raises:
        ClassificationError: If the provider has no API key
    """
    provider = provider or settings.provider
    provider_cls = PROVIDER_CLASSES[provider]
    return provider_cls(
        api_key=settings.get_api_key(provider),
        model_name=settings.get_model(provider),
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
    )


__all__ = [
    'ClassifierProvider',
    'AnthropicProvider',
    'GroqProvider',
    'OpenAIProvider',
    'PROVIDER_CLASSES',
    'create_provider',
]
