"""
Entry Normalizer
================

Maps a ``RawEntry`` to the canonical ``Article`` shape. Every field is an
ordered tuple of small extractors; the first one returning a value wins and
the field default applies when none does.
"""

from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from ..database.models import Article
from .feed_parser import ParsedFeed, RawEntry

T = TypeVar("T")
Extractor = Callable[[RawEntry], Optional[T]]

UNTITLED = "Untitled"


def _title(entry: RawEntry) -> Optional[str]:
    return entry.title


def _first_link(entry: RawEntry) -> Optional[str]:
    return entry.links[0] if entry.links else None


def _entry_id(entry: RawEntry) -> Optional[str]:
    return entry.entry_id


def _description(entry: RawEntry) -> Optional[str]:
    return entry.description


def _content(entry: RawEntry) -> Optional[str]:
    return entry.content


def _published(entry: RawEntry) -> Optional[datetime]:
    return entry.published


def _updated(entry: RawEntry) -> Optional[datetime]:
    return entry.updated


TITLE_CHAIN: Sequence[Extractor[str]] = (_title,)
URL_CHAIN: Sequence[Extractor[str]] = (_first_link, _entry_id)
DESCRIPTION_CHAIN: Sequence[Extractor[str]] = (_description, _content)
PUBLISHED_CHAIN: Sequence[Extractor[datetime]] = (_published, _updated)
GUID_CHAIN: Sequence[Extractor[str]] = (_entry_id, _first_link)


def first_value(entry: RawEntry, chain: Iterable[Extractor[T]]) -> Optional[T]:
    """Evaluate extractors in order and return the first non-empty value."""
    for extract in chain:
        value = extract(entry)
        if value:
            return value
    return None


def normalize(feed_id: str, raw_entry: RawEntry, now: Optional[datetime] = None) -> Article:
    """Build the canonical article for one entry.

    Args:
        feed_id: Owning feed
        raw_entry: Entry as parsed from the feed
        now: Timestamp used when the entry carries no date

    Returns:
        Article with every fallback applied
    """
    published = first_value(raw_entry, PUBLISHED_CHAIN)
    if published is None:
        published = now or datetime.now(timezone.utc)

    return Article(
        feed_id=feed_id,
        title=first_value(raw_entry, TITLE_CHAIN) or UNTITLED,
        url=first_value(raw_entry, URL_CHAIN) or "",
        description=first_value(raw_entry, DESCRIPTION_CHAIN),
        published_at=published,
        guid=first_value(raw_entry, GUID_CHAIN) or "",
    )


def normalize_entries(feed_id: str, parsed: ParsedFeed, now: Optional[datetime] = None) -> List[Article]:
    """Normalize every entry of a parsed feed, sharing one wall-clock time."""
    now = now or datetime.now(timezone.utc)
    return [normalize(feed_id, entry, now=now) for entry in parsed.entries]
