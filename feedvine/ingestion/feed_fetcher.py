"""
Feed Fetcher
============

Retrieves raw feed documents over HTTP with a fixed identifying user agent.
Transport failures and non-2xx answers surface as ``FetchError``; there are
no retries.
"""

import asyncio
import ssl
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import aiohttp
import certifi

from ..config.settings import FetchSettings, get_settings
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import FetchError, ErrorCode


@dataclass
class FetchedContent:
    """Raw response body of one feed request."""

    url: str
    body: bytes
    status: int = 200
    content_type: Optional[str] = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class FeedFetcher:
    """HTTP client for feed documents."""

    def __init__(self, settings: Optional[FetchSettings] = None):
        """Initialize feed fetcher.

        Args:
            settings: Fetch settings (default from config)
        """
        self.settings = settings or get_settings().fetch
        self.logger = get_logger_for_component("feed_fetcher")

        # SSL context for secure requests
        self.ssl_context = ssl.create_default_context(cafile=certifi.where())

    @property
    def headers(self) -> dict:
        return {
            "User-Agent": self.settings.user_agent,
            "Accept": self.settings.accept,
        }

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[aiohttp.ClientSession]:
        """Get configured aiohttp session."""
        connector = aiohttp.TCPConnector(ssl=self.ssl_context, limit_per_host=5)

        session_kwargs = {"connector": connector, "headers": self.headers}
        if self.settings.request_timeout:
            session_kwargs["timeout"] = aiohttp.ClientTimeout(
                total=self.settings.request_timeout
            )

        async with aiohttp.ClientSession(**session_kwargs) as session:
            yield session

    async def fetch(
        self, feed_url: str, session: Optional[aiohttp.ClientSession] = None
    ) -> FetchedContent:
        """Fetch one feed document.

        Args:
            feed_url: URL of the feed
            session: Session to reuse; a private one is opened when omitted

        Returns:
            Response body and metadata

        Raises:
            FetchError: On transport failure or a status outside 2xx
        """
        if session is None:
            async with self.get_session() as own_session:
                return await self._fetch(feed_url, own_session)
        return await self._fetch(feed_url, session)

    async def _fetch(self, feed_url: str, session: aiohttp.ClientSession) -> FetchedContent:
        self.logger.debug(f"Fetching feed: {feed_url}")

        try:
            async with session.get(feed_url) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(
                        f"HTTP error! status: {response.status}",
                        feed_url=feed_url,
                        status_code=response.status,
                    )

                body = await response.read()
                return FetchedContent(
                    url=str(response.url),
                    body=body,
                    status=response.status,
                    content_type=response.headers.get("Content-Type"),
                )

        except asyncio.TimeoutError as e:
            raise FetchError(
                f"Request timeout after {self.settings.request_timeout}s",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e

        except aiohttp.ClientError as e:
            raise FetchError(
                f"Fetch error: {e}" if str(e) else f"Fetch error: {type(e).__name__}",
                feed_url=feed_url,
            ) from e
