"""
FeedVine AI Module
==================

Article categorization over a fixed vocabulary, backed by Anthropic, Groq or
OpenAI classifiers.
"""

from .providers import ClassifierProvider, create_provider
from .categorizer import Categorizer, build_prompt, parse_category

__all__ = [
    "ClassifierProvider",
    "create_provider",
    "Categorizer",
    "build_prompt",
    "parse_category",
]
