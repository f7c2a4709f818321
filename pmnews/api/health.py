"""Health check router -- DB status and config summary."""

from datetime import datetime, timezone

from fastapi import APIRouter
from sqlalchemy import text

from pmnews import __version__
from pmnews.api.dependencies import DB, AppSettings

router = APIRouter()


@router.get("/")
async def root():
    return {"service": "Private Market News API", "version": __version__}


@router.get("/health")
async def health(db: DB, settings: AppSettings):
    try:
        with db.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database = "ok"
    except Exception as e:
        database = f"error: {e}"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": database,
        "config": {
            "firecrawl_enabled": settings.render_enabled,
            "max_crawl_span_days": settings.max_crawl_span_days,
            "min_crawl_start_date": settings.min_crawl_start_date or None,
            "crawl_max_links_per_source": settings.crawl_max_links_per_source,
            "crawl_max_feed_items": settings.crawl_max_feed_items,
            "deep_scrape_max_ids": settings.deep_scrape_max_ids,
        },
    }
