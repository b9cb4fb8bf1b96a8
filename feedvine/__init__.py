"""
FeedVine - Feed Ingestion & Enrichment Pipeline
===============================================

Aggregates articles from many RSS/Atom feeds into one store, deduplicated by
canonical URL, and tags each article with a topic category.

Main Components:
- Database: SQLite with connection pooling and schema management
- Configuration: environment variables with Pydantic validation
- Ingestion: fetching, parsing, normalization and feed discovery
- Processing: per-feed pipeline with isolated failures and run reports
- AI Integration: Anthropic/Groq/OpenAI article categorization
- API: aiohttp service for triggering runs and categorizing articles
"""

__version__ = "1.0.0"
__author__ = "FeedVine Development Team"
__description__ = "RSS/Atom feed ingestion and enrichment pipeline"

# Core imports for easy access
from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedVineError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedVineError",
]
