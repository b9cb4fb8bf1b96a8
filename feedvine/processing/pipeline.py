"""
Ingestion Pipeline Orchestrator
===============================

Drives the per-feed fetch, parse, normalize and persist cycle for a run.

Feeds are processed one after another on a single task. Each feed moves
through ``PENDING -> FETCHING -> PARSING -> NORMALIZING -> PERSISTING`` and
ends ``DONE`` or ``FAILED``; a failure is recorded on that feed only and the
run moves on to the next one.
"""

from datetime import datetime, timezone
from typing import List, Optional

import aiohttp

from ..database.models import Feed, FeedOutcome, FeedState, RunReport
from ..database.connection import DatabaseConnection
from ..config.settings import FeedVineSettings, get_settings
from ..ingestion.feed_fetcher import FeedFetcher
from ..ingestion.feed_parser import FeedParser
from ..ingestion.normalizer import normalize_entries
from ..storage.article_repository import ArticleRepository
from ..storage.feed_repository import FeedRepository, FeedStatusTracker
from ..utils.logging import get_logger_for_component, PerformanceLogger
from ..utils.exceptions import (
    DatabaseError,
    FeedVineError,
    PersistenceError,
    SetupError,
    ErrorCode,
)
from .heartbeat import HeartbeatNotifier

PREVIEW_FEED_ID = "temp"


class IngestionPipeline:
    """Sequential feed ingestion with per-feed failure isolation."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        settings: Optional[FeedVineSettings] = None,
        fetcher: Optional[FeedFetcher] = None,
        parser: Optional[FeedParser] = None,
        heartbeat: Optional[HeartbeatNotifier] = None,
    ):
        """Initialize the pipeline.

        Args:
            db_connection: Database connection manager
            settings: Application settings (default from config)
            fetcher: Feed fetcher override
            parser: Feed parser override
            heartbeat: Heartbeat notifier override
        """
        self.db = db_connection
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("pipeline")

        self.fetcher = fetcher or FeedFetcher(self.settings.fetch)
        self.parser = parser or FeedParser()
        self.heartbeat = heartbeat or HeartbeatNotifier(self.settings.monitoring)

        self.feeds = FeedRepository(db_connection)
        self.articles = ArticleRepository(db_connection)
        self.status_tracker = FeedStatusTracker(self.feeds)

    async def run(self, feed_id: Optional[str] = None, url: Optional[str] = None) -> RunReport:
        """Execute one ingestion run.

        Args:
            feed_id: Process only this registered feed, whatever its status
            url: Preview an unregistered feed URL; nothing is stored.
                Ignored when ``feed_id`` is given.

        Returns:
            Per-feed outcomes in processing order

        Raises:
            SetupError: If the feeds to process cannot be determined
        """
        report = RunReport()

        with PerformanceLogger(self.logger, "ingestion run") as perf:
            if url and not feed_id:
                report.results.append(await self.preview(url))
            else:
                feeds = self._select_feeds(feed_id)
                self.logger.info(f"Processing {len(feeds)} feeds")

                async with self.fetcher.get_session() as session:
                    for feed in feeds:
                        report.results.append(await self.process_feed(feed, session))

        report.duration_seconds = perf.duration_seconds or 0.0

        self.logger.info(
            f"Run complete: {len(report.succeeded)}/{len(report.results)} feeds succeeded, "
            f"{report.total_articles} articles"
        )

        await self._send_heartbeat()
        return report

    def _select_feeds(self, feed_id: Optional[str]) -> List[Feed]:
        if not feed_id:
            return self.feeds.get_active_feeds()

        try:
            feed = self.feeds.get_feed_by_id(feed_id)
        except DatabaseError as e:
            raise SetupError(f"Failed to fetch feeds: {e.message}") from e

        if feed is None:
            raise SetupError(
                f"Feed not found: {feed_id}", error_code=ErrorCode.FEED_NOT_FOUND
            )
        return [feed]

    async def preview(self, url: str) -> FeedOutcome:
        """Fetch and normalize a feed URL without touching storage."""
        feed = Feed(id=PREVIEW_FEED_ID, url=url.strip())
        return await self.process_feed(feed, persist=False)

    async def process_feed(
        self,
        feed: Feed,
        session: Optional[aiohttp.ClientSession] = None,
        persist: bool = True,
    ) -> FeedOutcome:
        """Run one feed through every stage.

        Never raises: any error ends the feed in ``FAILED`` with the error
        message in the outcome.
        """
        logger = self.logger.bind(feed_id=feed.id)
        outcome = FeedOutcome(feed_id=feed.id, success=False)

        try:
            outcome.state = FeedState.FETCHING
            content = await self.fetcher.fetch(feed.url, session)

            outcome.state = FeedState.PARSING
            parsed = self.parser.parse(
                content.body, content_type=content.content_type, feed_url=feed.url
            )
            outcome.feed_title = parsed.title or feed.title

            outcome.state = FeedState.NORMALIZING
            articles = normalize_entries(feed.id, parsed, now=datetime.now(timezone.utc))
            outcome.articles_count = len(articles)

            outcome.state = FeedState.PERSISTING
            if persist:
                upsert = self.articles.upsert_many(feed.id, articles)
                outcome.inserted_count = upsert.inserted
                outcome.rejected_count = upsert.rejected
                self.status_tracker.record_success(feed.id, parsed.title)
            else:
                outcome.articles = articles

            outcome.state = FeedState.DONE
            outcome.success = True
            logger.info(
                f"Processed {len(articles)} articles from {feed.url} "
                f"({outcome.inserted_count} new)"
            )

        except Exception as e:
            message = e.message if isinstance(e, FeedVineError) else str(e) or type(e).__name__
            outcome.failed_stage = outcome.state
            outcome.state = FeedState.FAILED
            outcome.success = False
            outcome.error = message
            outcome.articles_count = None
            logger.error(
                f"Feed {feed.url} failed during {outcome.failed_stage.value}: {message}",
                exc_info=not isinstance(e, FeedVineError),
            )

            if persist:
                self._record_failure(feed.id, message)

        return outcome

    def _record_failure(self, feed_id: str, message: str) -> None:
        try:
            self.status_tracker.record_failure(feed_id, message)
        except PersistenceError as e:
            self.logger.error(f"Could not record failure for feed {feed_id}: {e.message}")

    async def _send_heartbeat(self) -> None:
        try:
            await self.heartbeat.ping()
        except Exception as e:
            self.logger.error(f"Heartbeat notifier raised: {e}")
