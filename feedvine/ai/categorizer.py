"""
Article Categorizer
===================

Assigns each article one label from the fixed category vocabulary using an
external classifier. ``categorize`` is total: when no classifier is
configured, when the classifier fails, or when its reply is not a known label,
the result is ``Uncategorized``.
"""

from collections import Counter
from typing import Any, Dict, Optional

from ..database.models import Category
from ..config.settings import AISettings, get_settings
from ..storage.article_repository import ArticleRepository
from ..utils.init_guard import SingleFlightInitializer, InitState
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ClassificationError, DatabaseError
from .providers import ClassifierProvider, create_provider

NO_DESCRIPTION = "No description available"

_LABELS_BY_KEY = {category.value.lower(): category for category in Category}
_STRIP_CHARS = " \t\r\n\"'`*."


def build_prompt(title: str, description: Optional[str] = None) -> str:
    """Build the constrained classification prompt."""
    return (
        f"Categorize this article into ONE of these categories: {', '.join(Category.labels())}\n\n"
        f"Title: {title}\n"
        f"Description: {description or NO_DESCRIPTION}\n\n"
        "Return ONLY the category name, nothing else. "
        "If unsure, return \"Uncategorized\"."
    )


def parse_category(reply: Any) -> Category:
    """Map a classifier reply to a category.

    Only the first line counts. Surrounding quotes, emphasis markers and a
    trailing period are ignored and the match is case-insensitive; anything
    else is ``Uncategorized``, including non-text replies.
    """
    if not isinstance(reply, str) or not reply.strip():
        return Category.UNCATEGORIZED

    first_line = reply.strip().splitlines()[0]
    key = first_line.strip(_STRIP_CHARS).lower()
    return _LABELS_BY_KEY.get(key, Category.UNCATEGORIZED)


class Categorizer:
    """Classifier-backed article categorizer."""

    def __init__(
        self,
        settings: Optional[AISettings] = None,
        provider: Optional[ClassifierProvider] = None,
        article_repository: Optional[ArticleRepository] = None,
    ):
        """Initialize the categorizer.

        Args:
            settings: AI settings (default from config)
            provider: Ready classifier; skips lazy creation from settings
            article_repository: Store used by ``categorize_pending``
        """
        self.settings = settings or get_settings().ai
        self.articles = article_repository
        self.logger = get_logger_for_component("categorizer")

        self._injected_provider = provider
        self._client: SingleFlightInitializer[ClassifierProvider] = SingleFlightInitializer(
            "classifier client", self._create_provider
        )

    async def _create_provider(self) -> ClassifierProvider:
        if self._injected_provider is not None:
            return self._injected_provider
        return create_provider(self.settings)

    @property
    def configured(self) -> bool:
        return self._injected_provider is not None or self.settings.has_credentials()

    async def categorize(self, title: str, description: Optional[str] = None) -> Category:
        """Categorize one article. Never raises."""
        if not title or not title.strip():
            return Category.UNCATEGORIZED

        if not self.configured:
            self.logger.warning(
                f"No API key configured for {self.settings.provider.value}, "
                "returning Uncategorized"
            )
            return Category.UNCATEGORIZED

        try:
            provider = await self._client.get()
        except Exception as e:
            self.logger.warning(f"Classifier unavailable: {e}")
            return Category.UNCATEGORIZED

        try:
            reply = await provider.classify(build_prompt(title.strip(), description))
        except ClassificationError as e:
            self.logger.warning(f"Classification failed: {e.message}")
            return Category.UNCATEGORIZED
        except Exception as e:
            self.logger.error(f"Unexpected classifier error: {e}", exc_info=True)
            return Category.UNCATEGORIZED

        category = parse_category(reply)
        if category is Category.UNCATEGORIZED and str(reply).strip().lower() != "uncategorized":
            self.logger.info(f"Classifier reply {reply!r} is not a known category")
        return category

    async def categorize_pending(self, limit: int = 50) -> Dict[str, int]:
        """Categorize stored articles that have no category yet.

        Each article is updated at most once.

        Returns:
            Number of articles assigned to each category
        """
        if self.articles is None:
            raise ValueError("categorize_pending requires an article repository")

        pending = self.articles.get_uncategorized(limit)
        counts: Counter = Counter()

        for article in pending:
            category = await self.categorize(article.title, article.description)
            try:
                if self.articles.set_category(article.id, category):
                    counts[category.value] += 1
            except DatabaseError as e:
                self.logger.error(f"Could not store category for article {article.id}: {e.message}")

        self.logger.info(f"Categorized {sum(counts.values())} of {len(pending)} pending articles")
        return dict(counts)

    async def close(self) -> None:
        if self._client.state == InitState.READY:
            provider = await self._client.get()
            await provider.close()
        await self._client.reset()
