"""
Feed Discovery
==============

Finds RSS/Atom feeds for a website: first from ``<link rel="alternate">``
declarations in the page head, then by probing common feed paths.
"""

from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urljoin

import feedparser
import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config.settings import FetchSettings, get_settings
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FetchError
from ..utils.validators import URLValidator

FEED_LINK_TYPES = {
    "application/rss+xml",
    "application/atom+xml",
    "application/xml",
}

COMMON_FEED_PATHS = [
    "/feed",
    "/rss",
    "/feed.xml",
    "/rss.xml",
    "/atom.xml",
    "/index.xml",
    "/blog/feed",
    "/blog/rss",
]


@dataclass
class DiscoveredFeed:
    """A feed URL found for a website."""

    url: str
    title: Optional[str] = None
    source: str = "link"  # how it was found: "direct", "link" or "probe"


class FeedDiscovery:
    """Website-to-feed discovery over a retrying requests session."""

    def __init__(self, settings: Optional[FetchSettings] = None,
                 session: Optional[requests.Session] = None):
        self.settings = settings or get_settings().fetch
        self.logger = get_logger_for_component("feed_discovery")
        self.timeout = self.settings.request_timeout or 15

        if session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=2,
                backoff_factor=0.5,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["HEAD", "GET"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)

        session.headers.update(
            {"User-Agent": self.settings.user_agent, "Accept": self.settings.accept}
        )
        self.session = session

    def discover(self, site_url: str) -> List[DiscoveredFeed]:
        """Discover feeds for a website.

        Args:
            site_url: Website (or feed) URL

        Returns:
            Feeds found, declared alternates first; empty if none

        Raises:
            ValidationError: If the URL is malformed
            FetchError: If the website cannot be reached
        """
        site_url = URLValidator.validate_feed_url(site_url)

        try:
            response = self.session.get(site_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FetchError(
                f"HTTP error! status: {status}", feed_url=site_url, status_code=status
            ) from e
        except requests.RequestException as e:
            raise FetchError(f"Failed to fetch {site_url}: {e}", feed_url=site_url) from e

        # The URL may already be a feed
        if self._is_feed(response.content):
            parsed = feedparser.parse(response.content)
            title = parsed.feed.get("title") if parsed.get("feed") else None
            return [DiscoveredFeed(url=site_url, title=title, source="direct")]

        feeds = self._declared_feeds(response.text, str(response.url or site_url))
        if feeds:
            self.logger.info(f"Found {len(feeds)} declared feeds on {site_url}")
            return feeds

        probed = self._probe_common_paths(site_url)
        if probed:
            self.logger.info(f"Found feed at common path {probed.url}")
            return [probed]

        self.logger.info(f"No feeds found for {site_url}")
        return []

    def _declared_feeds(self, html_text: str, base_url: str) -> List[DiscoveredFeed]:
        soup = BeautifulSoup(html_text, "html.parser")
        feeds: List[DiscoveredFeed] = []
        seen = set()

        for link in soup.find_all("link", href=True):
            rel = link.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            if "alternate" not in [r.lower() for r in rel]:
                continue
            if (link.get("type") or "").lower() not in FEED_LINK_TYPES:
                continue

            url = urljoin(base_url, link["href"])
            if url in seen:
                continue
            seen.add(url)
            feeds.append(DiscoveredFeed(url=url, title=link.get("title"), source="link"))

        return feeds

    def _probe_common_paths(self, site_url: str) -> Optional[DiscoveredFeed]:
        for path in COMMON_FEED_PATHS:
            candidate = urljoin(site_url, path)
            try:
                response = self.session.get(candidate, timeout=self.timeout)
            except requests.RequestException as e:
                self.logger.debug(f"Probe failed for {candidate}: {e}")
                continue

            if response.ok and self._is_feed(response.content):
                parsed = feedparser.parse(response.content)
                return DiscoveredFeed(
                    url=candidate,
                    title=parsed.feed.get("title"),
                    source="probe",
                )

        return None

    @staticmethod
    def _is_feed(content: bytes) -> bool:
        """True when feedparser recognizes the document as RSS, RDF or Atom."""
        head = content[:1024].lstrip().lower()
        if head.startswith((b"<!doctype html", b"<html")):
            return False
        return bool(feedparser.parse(content).get("version"))
