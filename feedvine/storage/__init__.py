"""
FeedVine Storage Layer
======================

Repository pattern implementations for data access abstraction.

This module provides:
- Feed repository and status tracker for the feed registry
- Article repository with URL-keyed insert-or-ignore upserts
"""

from .article_repository import ArticleRepository
from .feed_repository import FeedRepository, FeedStatusTracker

__all__ = [
    "ArticleRepository",
    "FeedRepository",
    "FeedStatusTracker",
]
