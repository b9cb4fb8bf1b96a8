"""
Feed Parser
===========

Parses raw RSS 2.0, RSS 1.0 (RDF) and Atom documents with feedparser into a
``ParsedFeed``: the feed's self-declared title plus one ``RawEntry`` per item.

Entries are kept close to the source document; choosing between alternative
fields (link vs. id, summary vs. content) is the normalizer's job.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional, Union

import feedparser

from ..utils.logging import get_logger_for_component
from ..utils.exceptions import ParseError

HTML_INSTEAD_OF_FEED = (
    "Feed URL returned HTML instead of RSS/XML. "
    "The URL may be incorrect or the feed may not exist."
)
CLOUDFLARE_PROTECTED = "Feed is protected by Cloudflare. Please contact support."

_CLOUDFLARE_MARKERS = ("Enable JavaScript and cookies to continue", "__cf_chl_opt")


@dataclass
class RawEntry:
    """One feed item as declared by the source."""

    title: Optional[str] = None
    links: List[str] = field(default_factory=list)
    entry_id: Optional[str] = None
    description: Optional[str] = None
    content: Optional[str] = None
    published: Optional[datetime] = None
    updated: Optional[datetime] = None


@dataclass
class ParsedFeed:
    """Parsed feed document."""

    title: Optional[str]
    entries: List[RawEntry] = field(default_factory=list)
    version: str = ""
    link: Optional[str] = None


class FeedParser:
    """Converts fetched documents into ``ParsedFeed`` values. Stateless."""

    def __init__(self):
        self.logger = get_logger_for_component("feed_parser")

    def parse(
        self,
        raw_content: Union[str, bytes],
        content_type: Optional[str] = None,
        feed_url: Optional[str] = None,
    ) -> ParsedFeed:
        """Parse a feed document.

        Args:
            raw_content: Response body
            content_type: Response Content-Type header, if known
            feed_url: Source URL, used for error context only

        Returns:
            Parsed feed; zero entries is a valid result

        Raises:
            ParseError: If the content is not a recognizable feed
        """
        text = raw_content.decode("utf-8", errors="replace") if isinstance(raw_content, bytes) else raw_content
        self._reject_non_feed(text, content_type, feed_url)

        feed_data = feedparser.parse(raw_content)

        if not feed_data.get("version"):
            reason = feed_data.get("bozo_exception") or "unrecognized document"
            raise ParseError(f"Not a valid RSS/Atom feed: {reason}", feed_url=feed_url)

        if feed_data.bozo:
            if not feed_data.entries:
                raise ParseError(
                    f"Feed parse error: {feed_data.get('bozo_exception', 'Invalid XML structure')}",
                    feed_url=feed_url,
                )
            # Many feeds have minor formatting issues; keep what parsed
            self.logger.warning(
                f"Feed has parse warnings but contains entries: {feed_data.get('bozo_exception')}"
            )

        feed_meta = feed_data.get("feed", {})
        title = (feed_meta.get("title") or "").strip() or None

        entries = [self._extract_entry(entry) for entry in feed_data.entries]

        self.logger.debug(
            f"Parsed {feed_data.version} feed with {len(entries)} entries"
        )
        return ParsedFeed(
            title=title,
            entries=entries,
            version=feed_data.version,
            link=feed_meta.get("link"),
        )

    def _reject_non_feed(self, text: str, content_type: Optional[str], feed_url: Optional[str]) -> None:
        """Raise for web pages served where a feed was expected."""
        head = text.lstrip()[:512].lower()

        if (content_type and "text/html" in content_type.lower()) or head.startswith(("<!doctype html", "<html")):
            raise ParseError(HTML_INSTEAD_OF_FEED, feed_url=feed_url)

        if any(marker in text for marker in _CLOUDFLARE_MARKERS):
            raise ParseError(CLOUDFLARE_PROTECTED, feed_url=feed_url)

    def _extract_entry(self, entry: Any) -> RawEntry:
        links = []
        primary = entry.get("link")
        if primary:
            links.append(primary)
        for link in entry.get("links", []) or []:
            href = link.get("href") if isinstance(link, dict) else None
            if href and href not in links:
                links.append(href)

        content = None
        content_blocks = entry.get("content") or []
        if isinstance(content_blocks, list) and content_blocks:
            content = content_blocks[0].get("value") or None

        return RawEntry(
            title=_clean(entry.get("title")),
            links=links,
            entry_id=_clean(entry.get("id")),
            description=_clean(entry.get("summary")),
            content=_clean(content),
            published=_to_datetime(entry.get("published_parsed")),
            updated=_to_datetime(entry.get("updated_parsed")),
        )


def _clean(value: Optional[str]) -> Optional[str]:
    if not value or not isinstance(value, str):
        return None
    return value.strip() or None


def _to_datetime(parsed_time) -> Optional[datetime]:
    """Convert a feedparser UTC time tuple to an aware datetime."""
    if not parsed_time:
        return None
    try:
        return datetime(*parsed_time[:6], tzinfo=timezone.utc)
    except (ValueError, TypeError):
        return None
