"""
Ingestion Pipeline Unit Tests
=============================

Run orchestration with a stub fetcher: per-feed failure isolation, status
tracking, previews and run report shapes.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from feedvine.database.models import FEED_TITLE_MAX_LENGTH, Feed, FeedState, FeedStatus
from feedvine.ingestion.feed_parser import CLOUDFLARE_PROTECTED, HTML_INSTEAD_OF_FEED
from feedvine.processing.pipeline import PREVIEW_FEED_ID, IngestionPipeline
from feedvine.utils.exceptions import ErrorCode, FetchError, SetupError

GOOD_URL = "https://blog.example.com/rss.xml"
ATOM_URL = "https://notes.example.org/atom.xml"
BAD_URL = "https://broken.example.com/rss.xml"


@pytest.fixture
def heartbeat():
    notifier = Mock()
    notifier.ping = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def make_pipeline(db_connection, test_settings, stub_fetcher, heartbeat):
    def build(responses):
        fetcher = stub_fetcher(responses)
        pipeline = IngestionPipeline(
            db_connection, settings=test_settings, fetcher=fetcher, heartbeat=heartbeat
        )
        return pipeline, fetcher

    return build


class TestRunAllFeeds:

    @pytest.mark.asyncio
    async def test_failure_is_isolated(self, make_pipeline, feed_repo, article_repo, rss_feed, atom_feed):
        good_id = feed_repo.create_feed(Feed(url=GOOD_URL))
        bad_id = feed_repo.create_feed(Feed(url=BAD_URL, title="Broken"))
        atom_id = feed_repo.create_feed(Feed(url=ATOM_URL))

        pipeline, _ = make_pipeline({
            GOOD_URL: rss_feed,
            BAD_URL: FetchError("HTTP error! status: 500", status_code=500),
            ATOM_URL: atom_feed,
        })

        report = await pipeline.run()

        assert [r.feed_id for r in report.results] == [good_id, bad_id, atom_id]
        assert [r.success for r in report.results] == [True, False, True]
        assert report.results[0].articles_count == 2
        assert report.results[2].articles_count == 1
        assert report.total_articles == 3

        failed = report.results[1]
        assert failed.error == "HTTP error! status: 500"
        assert failed.state == FeedState.FAILED
        assert failed.failed_stage == FeedState.FETCHING

        assert article_repo.count_articles(good_id) == 2
        assert article_repo.count_articles(atom_id) == 1
        assert article_repo.count_articles(bad_id) == 0

        bad = feed_repo.get_feed_by_id(bad_id)
        assert bad.status == FeedStatus.ERROR
        assert bad.error_message == "HTTP error! status: 500"
        assert bad.last_fetched is None

        good = feed_repo.get_feed_by_id(good_id)
        assert good.status == FeedStatus.ACTIVE
        assert good.title == "Example Tech Blog"
        assert good.last_fetched is not None

    @pytest.mark.asyncio
    async def test_errored_feeds_are_skipped(self, make_pipeline, feed_repo, rss_feed):
        feed_repo.create_feed(Feed(url=GOOD_URL))
        bad_id = feed_repo.create_feed(Feed(url=BAD_URL))
        feed_repo.update_feed(bad_id, status=FeedStatus.ERROR, error_message="old")

        pipeline, fetcher = make_pipeline({GOOD_URL: rss_feed})
        report = await pipeline.run()

        assert fetcher.requested == [GOOD_URL]
        assert len(report.results) == 1

    @pytest.mark.asyncio
    async def test_no_feeds(self, make_pipeline, heartbeat):
        pipeline, _ = make_pipeline({})
        report = await pipeline.run()

        assert report.results == []
        assert report.to_wire() == {"success": True, "results": []}
        heartbeat.ping.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rerun_inserts_nothing_new(self, make_pipeline, feed_repo, article_repo, rss_feed):
        feed_id = feed_repo.create_feed(Feed(url=GOOD_URL))
        pipeline, _ = make_pipeline({GOOD_URL: rss_feed})

        first = await pipeline.run()
        second = await pipeline.run()

        assert first.results[0].inserted_count == 2
        assert second.results[0].inserted_count == 0
        assert second.results[0].articles_count == 2
        assert article_repo.count_articles(feed_id) == 2

    @pytest.mark.asyncio
    async def test_empty_feed_succeeds(self, make_pipeline, feed_repo, empty_feed):
        feed_id = feed_repo.create_feed(Feed(url=GOOD_URL))
        pipeline, _ = make_pipeline({GOOD_URL: empty_feed})

        report = await pipeline.run()

        assert report.results[0].to_wire() == {
            "feedId": feed_id,
            "success": True,
            "articlesCount": 0,
            "feedTitle": "Quiet Feed",
        }
        assert feed_repo.get_feed_by_id(feed_id).status == FeedStatus.ACTIVE

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "document_fixture, message",
        [("html_page", HTML_INSTEAD_OF_FEED), ("cloudflare_page", CLOUDFLARE_PROTECTED)],
    )
    async def test_non_feed_content(self, make_pipeline, feed_repo, request, document_fixture, message):
        feed_id = feed_repo.create_feed(Feed(url=GOOD_URL))
        pipeline, _ = make_pipeline({GOOD_URL: request.getfixturevalue(document_fixture)})

        report = await pipeline.run()

        outcome = report.results[0]
        assert outcome.to_wire() == {"feedId": feed_id, "success": False, "error": message}
        assert outcome.failed_stage == FeedState.PARSING
        assert feed_repo.get_feed_by_id(feed_id).error_message == message

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, make_pipeline, feed_repo, rss_feed):
        first_id = feed_repo.create_feed(Feed(url=BAD_URL))
        feed_repo.create_feed(Feed(url=GOOD_URL))
        pipeline, _ = make_pipeline({BAD_URL: RuntimeError("socket exploded"), GOOD_URL: rss_feed})

        report = await pipeline.run()

        assert report.results[0].error == "socket exploded"
        assert report.results[1].success is True
        assert feed_repo.get_feed_by_id(first_id).status == FeedStatus.ERROR

    @pytest.mark.asyncio
    async def test_heartbeat_failure_does_not_fail_run(self, make_pipeline, feed_repo, heartbeat, rss_feed):
        feed_repo.create_feed(Feed(url=GOOD_URL))
        heartbeat.ping = AsyncMock(side_effect=RuntimeError("monitor down"))
        pipeline, _ = make_pipeline({GOOD_URL: rss_feed})

        report = await pipeline.run()

        assert report.results[0].success is True
        heartbeat.ping.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_long_feed_title_does_not_break_later_runs(self, make_pipeline, feed_repo, rss_feed):
        long_title = "Very Long Title " * 40
        long_feed = rss_feed.replace("<title>Example Tech Blog</title>", f"<title>{long_title}</title>", 1)
        long_id = feed_repo.create_feed(Feed(url=GOOD_URL))
        atom_id = feed_repo.create_feed(Feed(url=ATOM_URL))
        pipeline, _ = make_pipeline({GOOD_URL: long_feed, ATOM_URL: rss_feed})

        first = await pipeline.run()
        second = await pipeline.run()

        assert [r.success for r in first.results] == [True, True]
        assert [r.feed_id for r in second.results] == [long_id, atom_id]
        assert [r.success for r in second.results] == [True, True]
        assert len(feed_repo.get_feed_by_id(long_id).title) == FEED_TITLE_MAX_LENGTH

    @pytest.mark.asyncio
    async def test_feed_removed_mid_run_is_a_failure(self, make_pipeline, rss_feed):
        pipeline, _ = make_pipeline({GOOD_URL: rss_feed})

        outcome = await pipeline.process_feed(Feed(url=GOOD_URL))

        assert outcome.success is False
        assert outcome.state == FeedState.FAILED
        assert outcome.failed_stage == FeedState.PERSISTING


class TestSingleFeedRun:

    @pytest.mark.asyncio
    async def test_errored_feed_can_be_retried_by_id(self, make_pipeline, feed_repo, rss_feed):
        feed_id = feed_repo.create_feed(Feed(url=GOOD_URL))
        feed_repo.update_feed(feed_id, status=FeedStatus.ERROR, error_message="old")
        pipeline, _ = make_pipeline({GOOD_URL: rss_feed})

        report = await pipeline.run(feed_id=feed_id)

        assert report.results[0].success is True
        feed = feed_repo.get_feed_by_id(feed_id)
        assert feed.status == FeedStatus.ACTIVE
        assert feed.error_message is None

    @pytest.mark.asyncio
    async def test_only_requested_feed_runs(self, make_pipeline, feed_repo, rss_feed, atom_feed):
        feed_repo.create_feed(Feed(url=GOOD_URL))
        atom_id = feed_repo.create_feed(Feed(url=ATOM_URL))
        pipeline, fetcher = make_pipeline({GOOD_URL: rss_feed, ATOM_URL: atom_feed})

        report = await pipeline.run(feed_id=atom_id)

        assert fetcher.requested == [ATOM_URL]
        assert [r.feed_id for r in report.results] == [atom_id]

    @pytest.mark.asyncio
    async def test_unknown_feed_id(self, make_pipeline, heartbeat):
        pipeline, _ = make_pipeline({})

        with pytest.raises(SetupError) as exc_info:
            await pipeline.run(feed_id="missing")

        assert exc_info.value.error_code == ErrorCode.FEED_NOT_FOUND
        heartbeat.ping.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreadable_feed_list(self, make_pipeline, db_connection):
        pipeline, _ = make_pipeline({})
        with db_connection.get_connection() as conn:
            conn.execute("DROP TABLE articles")
            conn.execute("DROP TABLE feeds")
            conn.commit()

        with pytest.raises(SetupError) as exc_info:
            await pipeline.run()

        assert exc_info.value.message.startswith("Failed to fetch feeds")


class TestPreview:

    @pytest.mark.asyncio
    async def test_preview_stores_nothing(self, make_pipeline, feed_repo, article_repo, rss_feed):
        url = "https://unregistered.example.com/rss.xml"
        pipeline, _ = make_pipeline({url: rss_feed})

        report = await pipeline.run(url=f"  {url} ")

        outcome = report.results[0]
        assert outcome.feed_id == PREVIEW_FEED_ID == "temp"
        assert outcome.success is True
        assert outcome.articles_count == 2
        assert [a.title for a in outcome.articles] == [
            "Scaling Postgres Reads",
            "A Tour of Async Python",
        ]
        assert article_repo.count_articles() == 0
        assert feed_repo.list_feeds() == []

    @pytest.mark.asyncio
    async def test_preview_wire_shape(self, make_pipeline, atom_feed):
        url = "https://notes.example.org/atom.xml"
        pipeline, _ = make_pipeline({url: atom_feed})

        wire = (await pipeline.run(url=url)).to_wire()

        result = wire["results"][0]
        assert result["feedId"] == "temp"
        assert result["feedTitle"] == "Research Notes"
        assert result["articles"][0]["feedId"] == "temp"
        assert result["articles"][0]["url"] == "https://notes.example.org/attention"
        assert result["articles"][0]["publishedAt"].startswith("2025-01-08T12:00:00")

    @pytest.mark.asyncio
    async def test_preview_failure(self, make_pipeline, feed_repo):
        url = "https://unregistered.example.com/rss.xml"
        pipeline, _ = make_pipeline({url: FetchError("HTTP error! status: 404", status_code=404)})

        report = await pipeline.run(url=url)

        assert report.results[0].to_wire() == {
            "feedId": "temp",
            "success": False,
            "error": "HTTP error! status: 404",
        }
        assert feed_repo.list_feeds() == []

    @pytest.mark.asyncio
    async def test_feed_id_takes_precedence_over_url(self, make_pipeline, feed_repo, rss_feed):
        feed_id = feed_repo.create_feed(Feed(url=GOOD_URL))
        preview_url = "https://unregistered.example.com/rss.xml"
        pipeline, fetcher = make_pipeline({preview_url: rss_feed, GOOD_URL: rss_feed})

        report = await pipeline.run(feed_id=feed_id, url=preview_url)

        assert fetcher.requested == [GOOD_URL]
        assert report.results[0].feed_id == feed_id
