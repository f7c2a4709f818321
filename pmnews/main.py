"""
Private-market news ingestion - Main Entry Point.
FastAPI server and CLI interface.

    pmnews crawl --start 2026-02-01 --end 2026-02-07
    pmnews deep-scrape <id> [<id> ...]
    pmnews summarize --summarizer mypkg.llm:summarize [--ids <id> ...]
    pmnews serve --port 8000
"""

import argparse
import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pmnews import __version__
from pmnews.api import health, news
from pmnews.api.dependencies import verify_api_key
from pmnews.config import Settings, get_settings
from pmnews.database import Database, get_database
from pmnews.errors import InvalidRequestError, NotConfiguredError, PMNewsError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)
logger = logging.getLogger(__name__)

# Suppress noisy loggers
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None, db: Optional[Database] = None) -> FastAPI:
    """Build the API app. Tests pass their own settings and database."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.settings = settings or get_settings()
        if db is not None:
            db.create_tables()
            app.state.db = db
        else:
            app.state.db = get_database()
        logger.info(
            f"Starting Private Market News API "
            f"(Firecrawl {'configured' if app.state.settings.render_enabled else 'not configured'})"
        )
        yield

    app = FastAPI(
        title="Private Market News API",
        description="Crawl, classify and store private-market news",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=(settings or get_settings()).cors_origin_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(InvalidRequestError)
    async def _invalid_request(request: Request, exc: InvalidRequestError):
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    @app.exception_handler(NotConfiguredError)
    async def _not_configured(request: Request, exc: NotConfiguredError):
        return JSONResponse(status_code=503, content={"success": False, "error": str(exc)})

    @app.exception_handler(PMNewsError)
    async def _internal(request: Request, exc: PMNewsError):
        logger.error(f"Unhandled service error: {exc}")
        return JSONResponse(status_code=500, content={"success": False, "error": "Internal error"})

    protected = [Depends(verify_api_key)]

    app.include_router(health.router)
    app.include_router(news.router, prefix="/api/v1/news", tags=["news"], dependencies=protected)
    app.include_router(news.sources_router, prefix="/api/v1/sources", tags=["sources"], dependencies=protected)
    return app


# CLI Runner
def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Private-market news ingestion")
    sub = parser.add_subparsers(dest="command", required=True)

    crawl = sub.add_parser("crawl", help="Crawl all sources for a date window")
    crawl.add_argument("--start", required=True, help="Start date (YYYY-MM-DD)")
    crawl.add_argument("--end", required=True, help="End date (YYYY-MM-DD)")
    crawl.add_argument("--source", action="append", dest="sources", help="Limit to a source id (repeatable)")

    deep = sub.add_parser("deep-scrape", help="Fetch full text for stored articles")
    deep.add_argument("ids", nargs="+", help="Article ids (max 10)")

    summarize = sub.add_parser("summarize", help="Summarize pending articles with a pluggable summarizer")
    summarize.add_argument("--summarizer", required=True, help="Async callable as module:callable")
    summarize.add_argument("--ids", nargs="+", help="Only these article ids (any status)")
    summarize.add_argument("--batch-size", type=int, help="Pending articles per run")

    serve = sub.add_parser("serve", help="Start the FastAPI server")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000, help="Server port (default: 8000)")
    return parser


async def cli_main(args: argparse.Namespace) -> int:
    """Run a crawl, deep scrape or summary pass and print the JSON result."""
    from pmnews.news.crawler import run_crawl
    from pmnews.news.scraper import deep_scrape
    from pmnews.news import summaries

    try:
        if args.command == "crawl":
            result = await run_crawl(args.start, args.end, source_ids=args.sources)
            print(json.dumps(result.model_dump(mode="json", by_alias=True), indent=2))
        elif args.command == "deep-scrape":
            result = await deep_scrape(args.ids)
            print(json.dumps(result.model_dump(mode="json"), indent=2))
        else:
            summarizer = summaries.load_summarizer(args.summarizer)
            result = await summaries.run_summarization(
                summarizer, article_ids=args.ids, batch_size=args.batch_size
            )
            print(json.dumps(result.model_dump(mode="json"), indent=2))
    except (InvalidRequestError, NotConfiguredError) as e:
        logger.error(str(e))
        return 2
    return 0


def main():
    """Entry point for CLI."""
    args = _build_parser().parse_args()

    if args.command == "serve":
        import uvicorn
        logger.info(f"Starting server on port {args.port}...")
        uvicorn.run(create_app(), host=args.host, port=args.port)
        return

    sys.exit(asyncio.run(cli_main(args)))


if __name__ == "__main__":
    main()
