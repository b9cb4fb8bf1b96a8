"""
FeedVine HTTP Service
=====================

aiohttp.web application exposing the ingestion trigger and the article
categorization endpoint.

Routes:
- POST /fetch-rss            run ingestion (all active feeds, one feed, or a URL preview)
- POST /categorize-article   categorize one title/description pair
- GET  /health               liveness probe

Every response carries permissive CORS headers and OPTIONS preflights are
answered with ``ok``.
"""

import json
from typing import Any, Dict, Optional

from aiohttp import web

from ..ai.categorizer import Categorizer
from ..config.settings import FeedVineSettings, get_settings
from ..database.connection import DatabaseConnection
from ..database.models import Category
from ..database.schema import DatabaseSchema
from ..processing.pipeline import IngestionPipeline
from ..storage.article_repository import ArticleRepository
from ..utils.exceptions import FeedVineError, ValidationError
from ..utils.logging import get_logger_for_component
from ..utils.validators import ContentValidator

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

PIPELINE_KEY = web.AppKey("pipeline", IngestionPipeline)
CATEGORIZER_KEY = web.AppKey("categorizer", Categorizer)

logger = get_logger_for_component("api")


@web.middleware
async def cors_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Answer preflights and add CORS headers to every response."""
    if request.method == "OPTIONS":
        return web.Response(text="ok", headers=CORS_HEADERS)

    try:
        response = await handler(request)
    except web.HTTPException as e:
        e.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


async def _read_json(request: web.Request) -> Dict[str, Any]:
    """Read a JSON object body; anything else counts as empty."""
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


async def fetch_rss(request: web.Request) -> web.Response:
    """Trigger an ingestion run and return its report."""
    body = await _read_json(request)
    feed_id = body.get("feedId") or request.query.get("feedId")
    url = body.get("url") or request.query.get("url")

    pipeline = request.app[PIPELINE_KEY]

    try:
        report = await pipeline.run(feed_id=feed_id, url=url)
    except FeedVineError as e:
        logger.error(f"Ingestion run could not start: {e.message}")
        return web.json_response({"error": e.message}, status=400)
    except Exception as e:
        logger.error(f"Ingestion run failed: {e}", exc_info=True)
        return web.json_response({"error": str(e)}, status=400)

    return web.json_response(report.to_wire())


async def categorize_article(request: web.Request) -> web.Response:
    """Categorize one article title/description."""
    categorizer = request.app[CATEGORIZER_KEY]

    try:
        body = await request.json()
        if not isinstance(body, dict):
            body = {}

        title = ContentValidator.validate_title(body.get("title"))
        description = ContentValidator.clean_description(body.get("description")) or None

        category = await categorizer.categorize(title, description)
        return web.json_response({"category": category.value})

    except ValidationError as e:
        return web.json_response(
            {"error": e.user_message, "category": Category.UNCATEGORIZED.value},
            status=400,
        )
    except Exception as e:
        logger.error(f"Error categorizing article: {e}", exc_info=True)
        return web.json_response(
            {"error": str(e) or type(e).__name__, "category": Category.UNCATEGORIZED.value},
            status=500,
        )


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


def create_app(pipeline: IngestionPipeline, categorizer: Categorizer) -> web.Application:
    """Build the web application around ready components."""
    app = web.Application(middlewares=[cors_middleware])
    app[PIPELINE_KEY] = pipeline
    app[CATEGORIZER_KEY] = categorizer

    app.router.add_post("/fetch-rss", fetch_rss)
    app.router.add_post("/categorize-article", categorize_article)
    app.router.add_route("OPTIONS", "/fetch-rss", fetch_rss)
    app.router.add_route("OPTIONS", "/categorize-article", categorize_article)
    app.router.add_get("/health", health)

    return app


def build_app(settings: Optional[FeedVineSettings] = None) -> web.Application:
    """Build the application with components wired from settings."""
    settings = settings or get_settings()

    DatabaseSchema(settings.database.path).create_tables()
    db = DatabaseConnection(settings.database.path, pool_size=settings.database.pool_size)

    pipeline = IngestionPipeline(db, settings=settings)
    categorizer = Categorizer(settings.ai, article_repository=ArticleRepository(db))
    app = create_app(pipeline, categorizer)

    async def close_resources(app: web.Application) -> None:
        await categorizer.close()
        db.close_all_connections()

    app.on_cleanup.append(close_resources)
    return app


def run_server(settings: Optional[FeedVineSettings] = None) -> None:
    """Serve the API until interrupted."""
    settings = settings or get_settings()
    logger.info(f"Starting {settings.app_name} API on {settings.server.host}:{settings.server.port}")
    web.run_app(
        build_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        print=None,
    )
