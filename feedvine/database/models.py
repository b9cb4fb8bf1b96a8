"""
FeedVine Data Models
====================

Pydantic data models for type safety and validation throughout the application.
These models correspond to the database schema and provide validation,
serialization, and type hints.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field
from pydantic import BaseModel, Field, field_validator
import uuid


FEED_TITLE_MAX_LENGTH = 500


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def truncate_title(title: Optional[str]) -> Optional[str]:
    if title and len(title) > FEED_TITLE_MAX_LENGTH:
        return title[:FEED_TITLE_MAX_LENGTH]
    return title


class FeedStatus(str, Enum):
    """Outcome of the most recent fetch attempt for a feed."""
    ACTIVE = "active"
    ERROR = "error"


class Category(str, Enum):
    """Fixed article category vocabulary. ``UNCATEGORIZED`` is the fallback."""
    AI_NEWS = "AI News"
    TOOLS = "Tools"
    OPINION = "Opinion"
    STARTUPS = "Startups"
    BACKEND = "Backend"
    TUTORIAL = "Tutorial"
    RESEARCH = "Research"
    UNCATEGORIZED = "Uncategorized"

    @classmethod
    def labels(cls) -> List[str]:
        """The categories a classifier may choose from (fallback excluded)."""
        return [c.value for c in cls if c is not cls.UNCATEGORIZED]


class FeedState(str, Enum):
    """Per-feed processing state within a single run."""
    PENDING = "pending"
    FETCHING = "fetching"
    PARSING = "parsing"
    NORMALIZING = "normalizing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (FeedState.DONE, FeedState.FAILED)


class Feed(BaseModel):
    """RSS/Atom feed source model."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique feed ID")
    url: str = Field(..., min_length=1, description="Feed source URL")
    title: Optional[str] = Field(default=None, description="Feed display title")
    status: FeedStatus = Field(default=FeedStatus.ACTIVE, description="Result of the last fetch attempt")
    last_fetched: Optional[datetime] = Field(default=None, description="Last successful fetch")
    error_message: Optional[str] = Field(default=None, description="Error from the last failed fetch")
    created_at: Optional[datetime] = Field(default_factory=utc_now)

    @field_validator('title')
    @classmethod
    def validate_title_length(cls, v):
        """Clip feed-declared titles to the display limit."""
        return truncate_title(v)

    def is_active(self) -> bool:
        return self.status == FeedStatus.ACTIVE

    @property
    def display_title(self) -> str:
        return self.title or self.url

    def __str__(self) -> str:
        return f"Feed({self.display_title})"


class Article(BaseModel):
    """Normalized article, deduplicated by canonical URL."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique article ID")
    feed_id: str = Field(..., description="Owning feed ID")
    title: str = Field(..., description="Article title")
    url: str = Field(default="", description="Canonical article URL (dedup key)")
    description: Optional[str] = Field(default=None, description="Summary or content body")
    published_at: datetime = Field(default_factory=utc_now, description="Publication time")
    guid: str = Field(default="", description="Source-supplied entry identifier")
    category: Optional[Category] = Field(default=None, description="Assigned category")
    created_at: Optional[datetime] = Field(default_factory=utc_now)

    @field_validator('description')
    @classmethod
    def validate_description_length(cls, v):
        """Validate description length to prevent excessive storage."""
        if v and len(v) > 50000:  # 50KB limit
            return v[:50000] + "... [truncated]"
        return v

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for API responses (camelCase keys)."""
        return {
            "id": self.id,
            "feedId": self.feed_id,
            "title": self.title,
            "url": self.url,
            "description": self.description,
            "publishedAt": self.published_at.isoformat(),
            "guid": self.guid,
        }

    def __str__(self) -> str:
        return f"Article({self.title[:50]}...)"


@dataclass
class UpsertOutcome:
    """Result of upserting one feed's batch of articles."""
    attempted: int = 0
    inserted: int = 0
    duplicates: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def rejected(self) -> int:
        return len(self.errors)


@dataclass
class FeedOutcome:
    """Result of processing one feed within a run."""
    feed_id: str
    success: bool
    state: FeedState = FeedState.PENDING
    articles_count: Optional[int] = None
    error: Optional[str] = None
    failed_stage: Optional[FeedState] = None
    feed_title: Optional[str] = None
    inserted_count: int = 0
    rejected_count: int = 0
    articles: Optional[List[Article]] = None

    def to_wire(self) -> Dict[str, Any]:
        """Serialize as a run report entry."""
        data: Dict[str, Any] = {"feedId": self.feed_id, "success": self.success}
        if self.success:
            data["articlesCount"] = self.articles_count or 0
            data["feedTitle"] = self.feed_title
            if self.articles is not None:
                data["articles"] = [article.to_wire() for article in self.articles]
        else:
            data["error"] = self.error
        return data


@dataclass
class RunReport:
    """Ordered per-feed outcomes of one ingestion run."""
    results: List[FeedOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=utc_now)
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> List[FeedOutcome]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> List[FeedOutcome]:
        return [r for r in self.results if not r.success]

    @property
    def total_articles(self) -> int:
        return sum(r.articles_count or 0 for r in self.succeeded)

    def to_wire(self) -> Dict[str, Any]:
        return {"success": True, "results": [r.to_wire() for r in self.results]}
