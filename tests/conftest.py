"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for FeedVine tests.

- Temporary file-backed SQLite databases (the connection pool needs a file)
- Sample feed documents in RSS 2.0, RSS 1.0, Atom and non-feed flavors
- A local aiohttp server standing in for remote feed hosts
- A stub fetcher for driving the pipeline without network access
"""

import pytest
import pytest_asyncio
import tempfile
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict, Union

from aiohttp import web
from aiohttp.test_utils import TestServer

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
_TEST_DIR = Path(tempfile.gettempdir()) / "feedvine_tests"
os.environ["FEEDVINE_DATABASE__PATH"] = str(_TEST_DIR / "feedvine_test.db")
os.environ["FEEDVINE_LOGGING__FILE_PATH"] = ""
os.environ["FEEDVINE_LOGGING__CONSOLE_LOGGING"] = "false"
os.environ["FEEDVINE_DEBUG"] = "true"
for _key in ("FEEDVINE_MONITORING__HEARTBEAT_URL", "FEEDVINE_AI__ANTHROPIC_API_KEY",
             "FEEDVINE_AI__GROQ_API_KEY", "FEEDVINE_AI__OPENAI_API_KEY"):
    os.environ.pop(_key, None)


# ============================================================================
# Sample feed documents
# ============================================================================

RSS_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Example Tech Blog</title>
    <link>https://blog.example.com/</link>
    <description>Posts about software</description>
    <item>
      <title>Scaling Postgres Reads</title>
      <link>https://blog.example.com/postgres-reads</link>
      <guid>https://blog.example.com/?p=101</guid>
      <description>How we added read replicas.</description>
      <pubDate>Mon, 06 Jan 2025 10:00:00 GMT</pubDate>
    </item>
    <item>
      <title>A Tour of Async Python</title>
      <link>https://blog.example.com/async-python</link>
      <guid>https://blog.example.com/?p=102</guid>
      <description>Coroutines, tasks and event loops.</description>
      <pubDate>Tue, 07 Jan 2025 09:30:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Research Notes</title>
  <id>urn:uuid:60a76c80-d399-11d9-b93C-0003939e0af6</id>
  <updated>2025-01-08T12:00:00Z</updated>
  <entry>
    <title>Attention Is Still All You Need</title>
    <link href="https://notes.example.org/attention"/>
    <id>urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a</id>
    <updated>2025-01-08T12:00:00Z</updated>
    <summary>A short survey of transformer variants.</summary>
  </entry>
</feed>
"""

RDF_FEED = """<?xml version="1.0"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns="http://purl.org/rss/1.0/">
  <channel rdf:about="https://old.example.net/">
    <title>Old School Feed</title>
    <link>https://old.example.net/</link>
    <description>RSS 1.0 still exists</description>
  </channel>
  <item rdf:about="https://old.example.net/first">
    <title>First Post</title>
    <link>https://old.example.net/first</link>
  </item>
</rdf:RDF>
"""

EMPTY_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Quiet Feed</title>
    <link>https://quiet.example.com/</link>
    <description>Nothing here yet</description>
  </channel>
</rss>
"""

HTML_PAGE = """<!DOCTYPE html>
<html><head><title>Not a feed</title></head><body><p>Hello</p></body></html>
"""

CLOUDFLARE_PAGE = """<?xml version="1.0"?>
<challenge><p>Enable JavaScript and cookies to continue</p>
<script>window._cf_chl_opt={};var __cf_chl_opt={}</script></challenge>
"""

NOT_A_FEED = "this is plain text, not xml at all"


@pytest.fixture
def rss_feed():
    return RSS_FEED


@pytest.fixture
def atom_feed():
    return ATOM_FEED


@pytest.fixture
def rdf_feed():
    return RDF_FEED


@pytest.fixture
def empty_feed():
    return EMPTY_FEED


@pytest.fixture
def html_page():
    return HTML_PAGE


@pytest.fixture
def cloudflare_page():
    return CLOUDFLARE_PAGE


@pytest.fixture
def not_a_feed():
    return NOT_A_FEED


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def temp_db():
    """Create a temporary database with the full schema."""
    from feedvine.database.schema import DatabaseSchema

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = f.name

    DatabaseSchema(db_path).create_tables()

    yield db_path

    # Cleanup (WAL mode leaves side files)
    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture
def db_connection(temp_db):
    """Create a database connection manager for testing."""
    from feedvine.database.connection import DatabaseConnection

    connection = DatabaseConnection(temp_db, pool_size=2)
    yield connection

    connection.close_all_connections()


@pytest.fixture
def feed_repo(db_connection):
    from feedvine.storage.feed_repository import FeedRepository

    return FeedRepository(db_connection)


@pytest.fixture
def article_repo(db_connection):
    from feedvine.storage.article_repository import ArticleRepository

    return ArticleRepository(db_connection)


@pytest.fixture
def status_tracker(feed_repo):
    from feedvine.storage.feed_repository import FeedStatusTracker

    return FeedStatusTracker(feed_repo)


@pytest.fixture
def sample_feeds():
    """Generate sample feeds for testing."""
    from feedvine.database.models import Feed

    return [
        Feed(url="https://blog.example.com/rss.xml", title="Example Tech Blog"),
        Feed(url="https://notes.example.org/atom.xml", title="Research Notes"),
    ]


@pytest.fixture
def sample_articles():
    """Generate sample articles for testing (feed_id filled in by tests)."""
    from feedvine.database.models import Article

    def build(feed_id: str):
        return [
            Article(
                feed_id=feed_id,
                title="Scaling Postgres Reads",
                url="https://blog.example.com/postgres-reads",
                description="How we added read replicas.",
                guid="https://blog.example.com/?p=101",
            ),
            Article(
                feed_id=feed_id,
                title="A Tour of Async Python",
                url="https://blog.example.com/async-python",
                description="Coroutines, tasks and event loops.",
                guid="https://blog.example.com/?p=102",
            ),
        ]

    return build


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def test_settings(temp_db):
    """Application settings pointing at the temporary database."""
    from feedvine.config.settings import (
        AISettings,
        FeedVineSettings,
        DatabaseSettings,
        LoggingSettings,
        MonitoringSettings,
    )

    return FeedVineSettings(
        database=DatabaseSettings(path=temp_db, pool_size=2),
        ai=AISettings(),
        logging=LoggingSettings(file_path=None, console_logging=False),
        monitoring=MonitoringSettings(heartbeat_url=None),
    )


# ============================================================================
# Fetching Fixtures
# ============================================================================


class StubFetcher:
    """Feed fetcher serving canned responses keyed by URL.

    A value may be a document string or an exception instance to raise.
    """

    def __init__(self, responses: Dict[str, Union[str, Exception]]):
        self.responses = responses
        self.requested = []

    @asynccontextmanager
    async def get_session(self):
        yield None

    async def fetch(self, feed_url, session=None):
        from feedvine.ingestion.feed_fetcher import FetchedContent

        self.requested.append(feed_url)
        response = self.responses[feed_url]
        if isinstance(response, Exception):
            raise response
        return FetchedContent(
            url=feed_url,
            body=response.encode("utf-8"),
            content_type="application/rss+xml",
        )


@pytest.fixture
def stub_fetcher():
    """Factory for stub fetchers: ``stub_fetcher({url: document})``."""
    return StubFetcher


def _feed_app() -> web.Application:
    def document(body: str, content_type: str):
        async def handler(request):
            return web.Response(text=body, content_type=content_type)
        return handler

    async def missing(request):
        return web.Response(status=404, text="not found")

    async def echo_headers(request):
        return web.json_response(
            {
                "user_agent": request.headers.get("User-Agent"),
                "accept": request.headers.get("Accept"),
            }
        )

    app = web.Application()
    app.router.add_get("/rss.xml", document(RSS_FEED, "application/rss+xml"))
    app.router.add_get("/atom.xml", document(ATOM_FEED, "application/atom+xml"))
    app.router.add_get("/empty.xml", document(EMPTY_FEED, "application/xml"))
    app.router.add_get("/page.html", document(HTML_PAGE, "text/html"))
    app.router.add_get("/missing.xml", missing)
    app.router.add_get("/headers", echo_headers)
    return app


@pytest_asyncio.fixture
async def feed_server():
    """Local HTTP server hosting sample feeds."""
    server = TestServer(_feed_app())
    await server.start_server()
    yield server
    await server.close()
