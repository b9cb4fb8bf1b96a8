#!/usr/bin/env python3
"""
FeedVine - Feed Ingestion & Enrichment Pipeline
===============================================

Main application entry point with CLI interface for operations.

Usage:
    python main.py --help                        # Show all commands
    python main.py check-config                  # Validate configuration
    python main.py init-db                       # Initialize database
    python main.py add-feed URL                  # Register a feed
    python main.py fetch                         # Ingest all active feeds
    python main.py fetch --url URL               # Preview a feed without storing it
    python main.py categorize-pending            # Categorize stored articles
    python main.py serve                         # Start the HTTP API
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from feedvine.config.settings import get_settings
from feedvine.database.schema import DatabaseSchema
from feedvine.database.connection import get_db_manager
from feedvine.database.models import Feed, FeedStatus
from feedvine.utils.logging import configure_application_logging
from feedvine.utils.exceptions import FeedVineError
from feedvine.utils.validators import URLValidator

console = Console()
logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """FeedVine - RSS/Atom ingestion and enrichment pipeline."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


def _setup(debug: bool = False):
    """Load settings, configure logging and return (settings, db manager)."""
    settings = get_settings()
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )
    DatabaseSchema(settings.database.path).create_tables()
    db_manager = get_db_manager(settings.database.path, settings.database.pool_size)
    return settings, db_manager


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking FeedVine Configuration[/bold blue]")

    try:
        settings = get_settings()
    except FeedVineError as e:
        console.print(f"[bold red]❌ Configuration error: {e.message}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    table.add_row("Database", "✅ Valid", f"Path: {settings.database.path}")
    table.add_row(
        "Logging", "✅ Valid",
        f"Level: {settings.logging.level.value}, Console: {settings.logging.console_logging}"
    )
    table.add_row(
        "Fetching", "✅ Valid",
        f"User-Agent: {settings.fetch.user_agent}, Timeout: {settings.fetch.request_timeout or 'transport default'}"
    )

    provider = settings.ai.provider.value
    if settings.ai.has_credentials():
        table.add_row("Classifier", "✅ Valid", f"{provider} ({settings.ai.get_model()})")
    else:
        table.add_row("Classifier", "⚠️ No key", f"{provider}: articles will be Uncategorized")

    heartbeat = settings.monitoring.heartbeat_url
    table.add_row("Heartbeat", "✅ Valid" if heartbeat else "➖ Off", heartbeat or "Not configured")

    console.print(table)
    console.print("[bold green]✅ Configuration loaded[/bold green]")


@cli.command()
def init_db():
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing FeedVine Database[/bold blue]")

    try:
        settings = get_settings()
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()

        if not schema.verify_schema():
            console.print("[bold red]❌ Database schema verification failed[/bold red]")
            sys.exit(1)

        console.print("[bold green]✅ Database initialized successfully![/bold green]")

        info = get_db_manager(settings.database.path).get_database_info()
        info_table = Table(title="Database Information")
        info_table.add_column("Property", style="cyan")
        info_table.add_column("Value", style="green")
        info_table.add_row("Database Path", settings.database.path)
        info_table.add_row("Size", f"{info['database_size_mb']:.2f} MB")
        for table_name, count in info['table_counts'].items():
            info_table.add_row(f"Rows in {table_name}", str(count))
        console.print(info_table)

    except FeedVineError as e:
        console.print(f"[bold red]❌ Database initialization error: {e.message}[/bold red]")
        sys.exit(1)


@cli.command()
@click.argument('url')
@click.option('--title', help='Display title (defaults to the feed\'s own title)')
@click.pass_context
def add_feed(ctx, url, title):
    """Register a feed URL."""
    from feedvine.storage.feed_repository import FeedRepository

    settings, db_manager = _setup(ctx.obj['debug'])

    try:
        url = URLValidator.validate_feed_url(url)
        feed_id = FeedRepository(db_manager).create_feed(Feed(url=url, title=title))
    except FeedVineError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    console.print(f"[bold green]✅ Feed registered:[/bold green] {feed_id}")


@cli.command()
@click.option('--status', type=click.Choice([s.value for s in FeedStatus]), help='Filter by status')
@click.pass_context
def list_feeds(ctx, status):
    """Show registered feeds with their status."""
    from feedvine.storage.feed_repository import FeedRepository

    settings, db_manager = _setup(ctx.obj['debug'])
    feeds = FeedRepository(db_manager).list_feeds(FeedStatus(status) if status else None)

    if not feeds:
        console.print("[yellow]⚠️ No feeds found in database[/yellow]")
        return

    feeds_table = Table(title="Feeds")
    feeds_table.add_column("Status")
    feeds_table.add_column("ID", style="dim")
    feeds_table.add_column("Title", style="cyan")
    feeds_table.add_column("URL", style="blue")
    feeds_table.add_column("Last Fetched")
    feeds_table.add_column("Error", style="red")

    for feed in feeds:
        title = feed.title or "Untitled"
        feeds_table.add_row(
            "🟢" if feed.is_active() else "🔴",
            feed.id,
            title[:30] + "..." if len(title) > 30 else title,
            feed.url,
            str(feed.last_fetched) if feed.last_fetched else "Never",
            feed.error_message or "",
        )

    console.print(feeds_table)


@cli.command()
@click.argument('feed_id')
@click.pass_context
def reactivate_feed(ctx, feed_id):
    """Move an errored feed back to active."""
    from feedvine.storage.feed_repository import FeedRepository, FeedStatusTracker

    settings, db_manager = _setup(ctx.obj['debug'])
    if FeedStatusTracker(FeedRepository(db_manager)).reactivate(feed_id):
        console.print(f"[bold green]✅ Feed {feed_id} reactivated[/bold green]")
    else:
        console.print(f"[bold red]❌ Feed not found: {feed_id}[/bold red]")
        sys.exit(1)


@cli.command()
@click.option('--feed-id', help='Process only this feed (any status)')
@click.option('--url', help='Preview a feed URL without storing anything')
@click.pass_context
def fetch(ctx, feed_id, url):
    """Run the ingestion pipeline."""
    from feedvine.processing.pipeline import IngestionPipeline

    settings, db_manager = _setup(ctx.obj['debug'])
    pipeline = IngestionPipeline(db_manager, settings=settings)

    try:
        report = asyncio.run(pipeline.run(feed_id=feed_id, url=url))
    except FeedVineError as e:
        console.print(f"[bold red]❌ {e.message}[/bold red]")
        sys.exit(1)

    results_table = Table(title=f"Run Report ({report.duration_seconds:.2f}s)")
    results_table.add_column("Feed", style="dim")
    results_table.add_column("Result")
    results_table.add_column("Title", style="cyan")
    results_table.add_column("Articles", justify="right")
    results_table.add_column("New", justify="right")
    results_table.add_column("Error", style="red")

    for outcome in report.results:
        results_table.add_row(
            outcome.feed_id,
            "✅" if outcome.success else f"❌ {outcome.failed_stage.value}",
            outcome.feed_title or "",
            str(outcome.articles_count or 0),
            str(outcome.inserted_count),
            outcome.error or "",
        )
    console.print(results_table)

    if url and report.results and report.results[0].articles:
        console.print("\n[bold blue]📰 Articles (first 5):[/bold blue]")
        for i, article in enumerate(report.results[0].articles[:5], 1):
            console.print(f"{i}. [bold]{article.title}[/bold]")
            console.print(f"   🔗 {article.url or 'no link'}  📅 {article.published_at:%Y-%m-%d}")


@cli.command()
@click.argument('title')
@click.option('--description', '-d', help='Article description')
@click.pass_context
def categorize(ctx, title, description):
    """Categorize a single title/description."""
    from feedvine.ai.categorizer import Categorizer

    settings, _ = _setup(ctx.obj['debug'])

    async def run():
        categorizer = Categorizer(settings.ai)
        try:
            return await categorizer.categorize(title, description)
        finally:
            await categorizer.close()

    category = asyncio.run(run())
    console.print(f"[bold]Category:[/bold] {category.value}")


@cli.command()
@click.option('--limit', default=50, show_default=True, help='Maximum articles to categorize')
@click.pass_context
def categorize_pending(ctx, limit):
    """Categorize stored articles that have no category yet."""
    from feedvine.ai.categorizer import Categorizer
    from feedvine.storage.article_repository import ArticleRepository

    settings, db_manager = _setup(ctx.obj['debug'])

    async def run():
        categorizer = Categorizer(settings.ai, article_repository=ArticleRepository(db_manager))
        try:
            return await categorizer.categorize_pending(limit)
        finally:
            await categorizer.close()

    counts = asyncio.run(run())
    if not counts:
        console.print("[yellow]⚠️ No articles were categorized[/yellow]")
        return

    table = Table(title="Categorized Articles")
    table.add_column("Category", style="cyan")
    table.add_column("Count", justify="right")
    for category, count in sorted(counts.items()):
        table.add_row(category, str(count))
    console.print(table)


@cli.command()
@click.argument('site_url')
@click.option('--add', 'register', is_flag=True, help='Register the first feed found')
@click.pass_context
def discover(ctx, site_url, register):
    """Find RSS/Atom feeds advertised by a website."""
    from feedvine.ingestion.discovery import FeedDiscovery
    from feedvine.storage.feed_repository import FeedRepository

    settings, db_manager = _setup(ctx.obj['debug'])

    try:
        feeds = FeedDiscovery(settings.fetch).discover(site_url)
    except FeedVineError as e:
        console.print(f"[bold red]❌ {e.message}[/bold red]")
        sys.exit(1)

    if not feeds:
        console.print(f"[yellow]⚠️ No feeds found for {site_url}[/yellow]")
        sys.exit(1)

    table = Table(title=f"Feeds for {site_url}")
    table.add_column("URL", style="blue")
    table.add_column("Title", style="cyan")
    table.add_column("Found via")
    for feed in feeds:
        table.add_row(feed.url, feed.title or "", feed.source)
    console.print(table)

    if register:
        try:
            feed_id = FeedRepository(db_manager).create_feed(Feed(url=feeds[0].url, title=feeds[0].title))
        except FeedVineError as e:
            console.print(f"[bold red]❌ {e.user_message}[/bold red]")
            sys.exit(1)
        console.print(f"[bold green]✅ Registered {feeds[0].url} as {feed_id}[/bold green]")


@cli.command()
@click.option('--host', help='Bind address (default from config)')
@click.option('--port', type=int, help='Bind port (default from config)')
@click.pass_context
def serve(ctx, host, port):
    """Start the HTTP API."""
    from feedvine.api.server import run_server

    settings, _ = _setup(ctx.obj['debug'])
    if host:
        settings.server.host = host
    if port:
        settings.server.port = port

    console.print(f"[bold blue]🚀 Serving on http://{settings.server.host}:{settings.server.port}[/bold blue]")
    run_server(settings)


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 FeedVine interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[bold red]❌ Unexpected error: {e}[/bold red]")
        sys.exit(1)
