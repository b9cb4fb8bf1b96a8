"""
FeedVine Ingestion Layer
========================

Fetching, parsing and normalization of RSS/Atom feeds, plus feed discovery.
"""

from .feed_fetcher import FeedFetcher, FetchedContent
from .feed_parser import FeedParser, ParsedFeed, RawEntry
from .normalizer import normalize, normalize_entries
from .discovery import FeedDiscovery, DiscoveredFeed

__all__ = [
    "FeedFetcher",
    "FetchedContent",
    "FeedParser",
    "ParsedFeed",
    "RawEntry",
    "normalize",
    "normalize_entries",
    "FeedDiscovery",
    "DiscoveredFeed",
]
